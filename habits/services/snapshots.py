import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from django.utils import timezone

from habits.models import Habit, HabitLog
from habits.services.ledger import progress_fraction, query_logs
from habits.services.timezones import DayWindow, day_range, resolve_user_timezone


def percent(numerator: float, denominator: float) -> int:
    """Integer percentage rounded half up; 0 when there is nothing to divide by."""
    if denominator <= 0:
        return 0
    return int(math.floor(100 * numerator / denominator + 0.5))


@dataclass(frozen=True)
class HabitDayProgress:
    habit: Habit
    log: Optional[HabitLog]
    value: float
    target_amount: float
    progress: float
    completed: bool


@dataclass(frozen=True)
class DaySummary:
    date: date
    total_habits: int
    completed_habits: int
    in_progress_habits: int
    not_started_habits: int

    @property
    def completion_rate(self) -> float:
        """completed / (completed + in progress), as a 0-1 fraction."""
        started = self.completed_habits + self.in_progress_habits
        if started <= 0:
            return 0.0
        return self.completed_habits / started

    @property
    def completion_rate_percent(self) -> int:
        return percent(self.completed_habits, self.completed_habits + self.in_progress_habits)


@dataclass(frozen=True)
class DailySnapshot:
    summary: DaySummary
    habits: list

    @property
    def date(self) -> date:
        return self.summary.date


def active_habits(user):
    return Habit.objects.filter(owner=user, is_active=True).order_by("-created_at", "-pk")


def summarize_day(window: DayWindow, habits: Iterable[Habit], logs: Iterable[HabitLog]) -> DailySnapshot:
    """
    Join habits against one day's ledger rows.

    Habits created after the day ended are left out so they do not count
    against days they did not exist on. A missing row and a row holding 0
    produce the same numbers.
    """
    logs_by_habit = {log.habit_id: log for log in logs}

    rows = []
    completed = in_progress = not_started = 0
    for habit in habits:
        if habit.created_at >= window.end:
            continue

        log = logs_by_habit.get(habit.pk)
        value = log.value if log is not None else 0.0
        done = bool(log is not None and log.completed)
        rows.append(
            HabitDayProgress(
                habit=habit,
                log=log,
                value=value,
                target_amount=habit.target_amount,
                progress=progress_fraction(value, habit.target_amount),
                completed=done,
            )
        )

        if done:
            completed += 1
        elif value > 0:
            in_progress += 1
        else:
            not_started += 1

    summary = DaySummary(
        date=window.local_date,
        total_habits=len(rows),
        completed_habits=completed,
        in_progress_habits=in_progress,
        not_started_habits=not_started,
    )
    return DailySnapshot(summary=summary, habits=rows)


def build_snapshot(
        user,
        local_date=None,
        *,
        tz_name: Optional[str] = None,
        now: Optional[datetime] = None,
) -> DailySnapshot:
    """Progress of every active habit of ``user`` on one local day (today by default)."""
    tz_name = tz_name or resolve_user_timezone(user.pk)
    window = day_range(local_date if local_date is not None else (now or timezone.now()), tz_name)
    logs = query_logs(user, window.start, window.end)
    return summarize_day(window, active_habits(user), logs)
