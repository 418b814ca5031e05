from __future__ import annotations
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import Q


class Profile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    # IANA name; blank means "use HABITS_DEFAULT_TIMEZONE"
    timezone = models.CharField(max_length=64, blank=True, default="")

    def __str__(self) -> str:
        return f"{self.user} ({self.timezone or 'default tz'})"


class Habit(models.Model):
    class Origin(models.TextChoices):
        PRESET = "preset", "Preset"
        CUSTOM = "custom", "Custom"

    class Category(models.TextChoices):
        HEALTH = "health", "Health"
        EDUCATION = "education", "Education"
        PRODUCTIVITY = "productivity", "Productivity"
        SOCIAL = "social", "Social"
        WELLNESS = "wellness", "Wellness"
        OTHER = "other", "Other"

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='habits',
    )
    name = models.CharField(max_length=120)
    origin = models.CharField(max_length=10, choices=Origin.choices, default=Origin.CUSTOM)
    category = models.CharField(max_length=20, choices=Category.choices, default=Category.OTHER)
    icon = models.CharField(max_length=32, blank=True)
    unit = models.CharField(max_length=40)
    target_amount = models.FloatField()
    increment_amount = models.FloatField(default=1)
    available_units = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['owner', 'name'],
                condition=Q(is_active=True),
                name='unique_active_habit_name_per_user',
            ),
            models.CheckConstraint(condition=Q(target_amount__gt=0), name='habit_target_amount_positive'),
            models.CheckConstraint(condition=Q(increment_amount__gt=0), name='habit_increment_amount_positive'),
        ]
        indexes = [
            models.Index(fields=['owner', 'is_active'], name='habit_owner_active_idx'),
        ]

    if TYPE_CHECKING:
        # Django dynamically injects this via related_name="logs"
        logs = None

    def __str__(self) -> str:
        return self.name


class HabitLog(models.Model):
    """One accumulated value per habit per local day.

    ``date`` is the UTC instant at which the owner's local day starts, never a
    local wall-clock value.
    """

    habit = models.ForeignKey(Habit, on_delete=models.CASCADE,
                              related_name="logs")
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="habit_logs",
    )
    date = models.DateTimeField()
    value = models.FloatField(default=0)
    completed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["habit", "date"], name="unique_log_per_habit_per_day"),
            models.CheckConstraint(condition=Q(value__gte=0), name="habit_log_value_non_negative"),
        ]
        indexes = [
            models.Index(fields=["owner", "date"], name="habitlog_owner_date_idx"),
            models.Index(fields=["owner", "date", "completed"], name="habitlog_owner_done_idx"),
        ]
        ordering = ["-date", "-created_at"]

    def __str__(self) -> str:
        return f"{self.habit.name} @ {self.date:%Y-%m-%d} = {self.value:g}"


class Goal(models.Model):
    class Type(models.TextChoices):
        COMPLETE = "complete", "Complete a habit N times"
        REACH = "reach", "Reach a streak or rate"
        MAINTAIN = "maintain", "Maintain completion"

    class Metric(models.TextChoices):
        STREAK = "streak", "Streak"
        RATE = "rate", "Completion rate"

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="goals",
    )
    type = models.CharField(max_length=10, choices=Type.choices)
    habit = models.ForeignKey(
        Habit,
        on_delete=models.CASCADE,
        related_name="goals",
        null=True,
        blank=True,
    )
    repeat = models.PositiveIntegerField(null=True, blank=True)
    metric = models.CharField(max_length=10, choices=Metric.choices, blank=True, default="")
    value = models.FloatField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "type"], name="goal_owner_type_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_type_display()} #{self.pk}"
