import logging
from datetime import datetime
from typing import Optional

from django.db import IntegrityError, transaction

from habits.errors import ConflictError, NotFoundError, ValidationError
from habits.models import Habit
from habits.presets import PRESETS, find_preset
from habits.services.ledger import get_active_habit, reset_today
from habits.validators import non_blank, positive_number

logger = logging.getLogger(__name__)

# changing any of these makes today's accumulated value meaningless
RESET_FIELDS = ("unit", "target_amount", "increment_amount")


def _name_taken(user, name: str, exclude_pk=None) -> bool:
    qs = Habit.objects.filter(owner=user, name=name, is_active=True)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()


def create_habit(
        user,
        *,
        name: str,
        origin: str,
        category: str,
        icon: Optional[str] = None,
        unit: Optional[str] = None,
        target_amount=None,
        increment_amount=None,
        available_units=None,
) -> Habit:
    if not name or not origin or not category:
        raise ValidationError("Name, category and origin are required.")
    if category not in Habit.Category.values:
        raise ValidationError(
            f"Unknown category '{category}'. Available categories: {', '.join(Habit.Category.values)}"
        )

    if origin == Habit.Origin.PRESET:
        if not unit or target_amount is None or increment_amount is None:
            raise ValidationError("Preset habits need unit, targetAmount and incrementAmount.")
        preset = find_preset(name)
        if preset is None:
            names = ", ".join(p.name for presets in PRESETS.values() for p in presets)
            raise ValidationError(f"Preset habit '{name}' not found. Available presets: {names}")
        if unit not in preset.available_units:
            raise ValidationError(
                f"Invalid unit '{unit}' for {preset.name}. Available units: {', '.join(preset.available_units)}"
            )
        fields = {
            "name": preset.name,
            "icon": preset.icon,
            "unit": unit,
            "available_units": list(preset.available_units),
        }
    elif origin == Habit.Origin.CUSTOM:
        if not icon or not unit or target_amount is None or increment_amount is None:
            raise ValidationError("Custom habits need icon, unit, targetAmount and incrementAmount.")
        fields = {
            "name": non_blank(name, "Name"),
            "icon": icon,
            "unit": non_blank(unit, "Unit"),
            "available_units": [u for u in (available_units or []) if u],
        }
    else:
        raise ValidationError("Origin must be 'preset' or 'custom'.")

    target = positive_number(target_amount, "Target amount")
    step = positive_number(increment_amount, "Increment amount")

    if _name_taken(user, fields["name"]):
        raise ConflictError("A habit with this name already exists.")

    try:
        with transaction.atomic():
            habit = Habit.objects.create(
                owner=user,
                origin=origin,
                category=category,
                target_amount=target,
                increment_amount=step,
                **fields,
            )
    except IntegrityError:
        raise ConflictError("A habit with this name already exists.")
    return habit


def update_habit(
        habit_id,
        user,
        *,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        unit: Optional[str] = None,
        target_amount=None,
        increment_amount=None,
        now: Optional[datetime] = None,
) -> Habit:
    """
    Apply a partial update. If the unit, target or increment actually
    change, today's progress for the habit is reset.
    """
    habit = get_active_habit(habit_id, user)
    is_preset = habit.origin == Habit.Origin.PRESET
    changes = {}

    if target_amount is not None:
        changes["target_amount"] = positive_number(target_amount, "Target amount")
    if increment_amount is not None:
        changes["increment_amount"] = positive_number(increment_amount, "Increment amount")

    if unit is not None:
        unit = non_blank(unit, "Unit")
        if is_preset and habit.available_units and unit not in habit.available_units:
            raise ValidationError(
                f"Invalid unit '{unit}' for this preset habit. "
                f"Available units: {', '.join(habit.available_units)}"
            )
        changes["unit"] = unit

    if icon is not None:
        if is_preset:
            raise ValidationError("Icon cannot be changed for preset habits.")
        changes["icon"] = non_blank(icon, "Icon")

    if name is not None:
        if is_preset:
            raise ValidationError("Name cannot be changed for preset habits.")
        name = non_blank(name, "Name")
        if _name_taken(user, name, exclude_pk=habit.pk):
            raise ConflictError("A habit with this name already exists.")
        changes["name"] = name

    needs_reset = any(
        f in changes and changes[f] != getattr(habit, f) for f in RESET_FIELDS
    )

    if changes:
        with transaction.atomic():
            for attr, value in changes.items():
                setattr(habit, attr, value)
            try:
                with transaction.atomic():
                    habit.save(update_fields=[*changes, "updated_at"])
            except IntegrityError:
                raise ConflictError("A habit with this name already exists.")
            if needs_reset:
                removed = reset_today(habit.pk, user, now=now)
                logger.info(
                    "Habit %s reconfigured (%s), cleared %d log(s) for today",
                    habit.pk, ", ".join(f for f in RESET_FIELDS if f in changes), removed,
                )
    return habit


def set_habit_active(habit_id, user, is_active: bool) -> Habit:
    try:
        habit = Habit.objects.get(pk=habit_id, owner=user)
    except (Habit.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Habit not found.")

    if is_active and not habit.is_active and _name_taken(user, habit.name, exclude_pk=habit.pk):
        raise ConflictError("An active habit with this name already exists.")

    habit.is_active = is_active
    habit.save(update_fields=["is_active", "updated_at"])
    return habit


def delete_habit(habit_id, user) -> int:
    """Hard delete; ledger rows and goals go with the habit."""
    try:
        habit = Habit.objects.get(pk=habit_id, owner=user)
    except (Habit.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Habit not found.")
    pk = habit.pk
    habit.delete()
    return pk
