import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from habits.errors import NotFoundError
from habits.models import Habit, HabitLog
from habits.services.timezones import DayWindow, day_range, resolve_user_timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncrementResult:
    habit_id: int
    new_value: float
    target_amount: float
    progress: float
    completed: bool
    unit: str
    incremented_by: float


def progress_fraction(value: float, target: float) -> float:
    if target <= 0:
        return 0.0
    return min(value / target, 1.0)


def is_completed(value: float, target: float) -> bool:
    return progress_fraction(value, target) >= 1


def get_active_habit(habit_id, user) -> Habit:
    try:
        return Habit.objects.get(pk=habit_id, owner=user, is_active=True)
    except (Habit.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Habit not found.")


def today_window(user, now: Optional[datetime] = None) -> DayWindow:
    tz_name = resolve_user_timezone(user.pk)
    return day_range(now or timezone.now(), tz_name)


def query_logs(user, start: datetime, end: datetime, habit_id=None):
    """Ledger rows of ``user`` with ``start <= date < end``. Never creates rows."""
    qs = HabitLog.objects.filter(owner=user, date__gte=start, date__lt=end)
    if habit_id is not None:
        qs = qs.filter(habit_id=habit_id)
    return qs


def _bump(habit: Habit, day_start: datetime, amount: float) -> int:
    # single UPDATE ... SET value = value + amount, no read-modify-write
    return HabitLog.objects.filter(
        habit=habit,
        owner_id=habit.owner_id,
        date=day_start,
    ).update(value=F("value") + amount, updated_at=timezone.now())


def _add_to_day(habit: Habit, day_start: datetime, amount: float) -> None:
    if _bump(habit, day_start, amount):
        return
    try:
        with transaction.atomic():
            HabitLog.objects.create(
                habit=habit,
                owner_id=habit.owner_id,
                date=day_start,
                value=amount,
            )
    except IntegrityError:
        # another request created the row between our UPDATE and INSERT
        logger.info("Lost first-increment race for habit %s at %s, retrying as update", habit.pk, day_start)
        _bump(habit, day_start, amount)


def increment(habit_id, user, *, now: Optional[datetime] = None) -> IncrementResult:
    """
    Add the habit's ``increment_amount`` to today's ledger row, creating the
    row on the first increment of the day.
    """
    habit = get_active_habit(habit_id, user)
    window = today_window(user, now)
    amount = habit.increment_amount

    with transaction.atomic():
        _add_to_day(habit, window.start, amount)

        log = HabitLog.objects.get(habit=habit, date=window.start)
        completed = is_completed(log.value, habit.target_amount)
        if log.completed != completed:
            HabitLog.objects.filter(pk=log.pk).update(completed=completed)

    logger.debug(
        "Habit %s +%g %s on %s -> %g/%g",
        habit.pk, amount, habit.unit, window.local_date, log.value, habit.target_amount,
    )
    return IncrementResult(
        habit_id=habit.pk,
        new_value=log.value,
        target_amount=habit.target_amount,
        progress=progress_fraction(log.value, habit.target_amount),
        completed=completed,
        unit=habit.unit,
        incremented_by=amount,
    )


def reset_today(habit_id, user, *, now: Optional[datetime] = None) -> int:
    """Delete today's ledger row for the habit. Earlier days are left alone."""
    habit = get_active_habit(habit_id, user)
    window = today_window(user, now)
    deleted, _ = query_logs(user, window.start, window.end, habit_id=habit.pk).delete()
    if deleted:
        logger.info("Reset today's progress for habit %s (%s)", habit.pk, window.local_date)
    return deleted
