"""
History over ranges of local days.

The whole range is read with one habit query and one ledger query; rows are
bucketed by local day and run through the same ``summarize_day`` the daily
snapshot uses, so a month view always agrees with the individual days.
"""
from calendar import monthrange
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from habits.errors import ValidationError
from habits.services.ledger import get_active_habit, progress_fraction, query_logs
from habits.services.snapshots import DailySnapshot, DaySummary, active_habits, percent, summarize_day
from habits.services.timezones import (
    day_range,
    iter_days,
    local_date_of,
    local_today,
    parse_date_param,
    resolve_user_timezone,
)


@dataclass(frozen=True)
class RangeStats:
    total_days: int = 0
    completed_days: int = 0
    completion_rate: int = 0  # percent
    current_streak: int = 0
    total_completed: int = 0


@dataclass(frozen=True)
class RangeAggregate:
    start_date: date
    end_date: date
    per_day: dict = field(default_factory=dict)
    stats: RangeStats = field(default_factory=RangeStats)


@dataclass(frozen=True)
class HabitDayEntry:
    date: date
    value: float
    target_amount: float
    progress: float
    completed: bool
    unit: str


@dataclass(frozen=True)
class HabitProgressStats:
    completed_days: int
    total_days: int
    completion_rate: int
    current_streak: int
    average_value: float


@dataclass(frozen=True)
class HabitProgressReport:
    habit: object
    start_date: date
    end_date: date
    days: list
    statistics: HabitProgressStats


def day_qualifies(summary: DaySummary) -> bool:
    return summary.completion_rate > 0 and summary.completed_habits > 0


def trailing_streak(flags: Iterable[bool]) -> int:
    """Count of True values at the end of ``flags``, stopping at the first False."""
    streak = 0
    for flag in reversed(list(flags)):
        if not flag:
            break
        streak += 1
    return streak


def compute_range_stats(snapshots: Iterable[DailySnapshot]) -> RangeStats:
    """Stats over day snapshots given in ascending date order."""
    evaluated = [s for s in snapshots if s.summary.total_habits > 0]
    qualifying = [day_qualifies(s.summary) for s in evaluated]
    completed_days = sum(qualifying)
    return RangeStats(
        total_days=len(evaluated),
        completed_days=completed_days,
        completion_rate=percent(completed_days, len(evaluated)),
        current_streak=trailing_streak(qualifying),
        total_completed=sum(s.summary.completed_habits for s in evaluated),
    )


def month_bounds(year: int, month: int):
    try:
        year, month = int(year), int(month)
    except (TypeError, ValueError):
        raise ValidationError("Year and month must be numbers.")
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise ValidationError(f"Invalid month {year}-{month}.")
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def _as_local_date(value, tz_name: str) -> date:
    parsed = parse_date_param(value)
    if isinstance(parsed, datetime):
        return day_range(parsed, tz_name).local_date
    return parsed


def resolve_range(
        tz_name: str,
        *,
        year=None,
        month=None,
        start_date=None,
        end_date=None,
        now: Optional[datetime] = None,
):
    """
    Inclusive local-day bounds from either a year/month pair or a
    startDate/endDate pair. Defaults to the current month.
    """
    if start_date is not None or end_date is not None:
        if start_date is None or end_date is None:
            raise ValidationError("Both startDate and endDate are required.")
        first, last = _as_local_date(start_date, tz_name), _as_local_date(end_date, tz_name)
        if first > last:
            raise ValidationError("startDate must not be after endDate.")
        return first, last

    if year is not None or month is not None:
        if year is None or month is None:
            raise ValidationError("Both year and month are required.")
        return month_bounds(year, month)

    today = local_today(tz_name, now)
    return month_bounds(today.year, today.month)


def aggregate_range(
        user,
        start_date: date,
        end_date: date,
        *,
        tz_name: Optional[str] = None,
        now: Optional[datetime] = None,
) -> RangeAggregate:
    """
    Per-day snapshots and streak/rate stats for ``[start_date, end_date]``.

    Days after the user's local today are not evaluated.
    """
    if start_date > end_date:
        raise ValidationError("startDate must not be after endDate.")

    tz_name = tz_name or resolve_user_timezone(user.pk)
    last = min(end_date, local_today(tz_name, now))
    if last < start_date:
        return RangeAggregate(start_date=start_date, end_date=end_date)

    habits = list(active_habits(user))
    logs_by_day = defaultdict(list)
    for log in query_logs(user, day_range(start_date, tz_name).start, day_range(last, tz_name).end):
        logs_by_day[local_date_of(log.date, tz_name)].append(log)

    per_day = {}
    for day in iter_days(start_date, last):
        snapshot = summarize_day(day_range(day, tz_name), habits, logs_by_day.get(day, ()))
        if snapshot.summary.total_habits:
            per_day[day] = snapshot

    return RangeAggregate(
        start_date=start_date,
        end_date=end_date,
        per_day=per_day,
        stats=compute_range_stats(per_day.values()),
    )


def aggregate_month(user, year: int, month: int, *, tz_name: Optional[str] = None,
                    now: Optional[datetime] = None) -> RangeAggregate:
    first, last = month_bounds(year, month)
    return aggregate_range(user, first, last, tz_name=tz_name, now=now)


def aggregate_current_month(user, *, now: Optional[datetime] = None) -> RangeAggregate:
    tz_name = resolve_user_timezone(user.pk)
    first, last = resolve_range(tz_name, now=now)
    return aggregate_range(user, first, last, tz_name=tz_name, now=now)


def habit_progress(
        habit_id,
        user,
        *,
        year=None,
        month=None,
        start_date=None,
        end_date=None,
        now: Optional[datetime] = None,
) -> HabitProgressReport:
    """Day-by-day values of one habit plus completion stats for the range."""
    habit = get_active_habit(habit_id, user)
    tz_name = resolve_user_timezone(user.pk)
    first, last = resolve_range(
        tz_name, year=year, month=month, start_date=start_date, end_date=end_date, now=now,
    )

    begin = max(first, local_date_of(habit.created_at, tz_name))
    finish = min(last, local_today(tz_name, now))

    logs = {}
    if begin <= finish:
        rows = query_logs(
            user,
            day_range(begin, tz_name).start,
            day_range(finish, tz_name).end,
            habit_id=habit.pk,
        )
        logs = {local_date_of(log.date, tz_name): log for log in rows}

    days = []
    for day in iter_days(begin, finish):
        log = logs.get(day)
        value = log.value if log is not None else 0.0
        days.append(
            HabitDayEntry(
                date=day,
                value=value,
                target_amount=habit.target_amount,
                progress=progress_fraction(value, habit.target_amount),
                completed=bool(log is not None and log.completed),
                unit=habit.unit,
            )
        )

    completed_days = sum(1 for d in days if d.completed)
    statistics = HabitProgressStats(
        completed_days=completed_days,
        total_days=len(days),
        completion_rate=percent(completed_days, len(days)),
        current_streak=trailing_streak(d.completed for d in days),
        average_value=round(sum(d.value for d in days) / len(days), 2) if days else 0.0,
    )
    return HabitProgressReport(
        habit=habit,
        start_date=first,
        end_date=last,
        days=days,
        statistics=statistics,
    )
