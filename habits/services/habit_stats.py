from typing import Optional

from django.db.models import Count, Exists, FloatField, OuterRef, Q, Subquery, Value
from django.db.models.functions import Coalesce

from habits.models import Habit, HabitLog
from habits.services.ledger import progress_fraction, today_window
from habits.services.timezones import DayWindow


def with_habit_stats(qs, window: DayWindow):
    """
    Adds annotations used by derived GraphQL fields.

    - today_value_anno
    - completed_today_anno
    - completed_days_anno
    """
    today_log = HabitLog.objects.filter(
        habit_id=OuterRef("pk"),
        date__gte=window.start,
        date__lt=window.end,
    )

    return qs.annotate(
        today_value_anno=Coalesce(
            Subquery(today_log.values("value")[:1]),
            Value(0.0),
            output_field=FloatField(),
        ),
        completed_today_anno=Exists(today_log.filter(completed=True)),
        completed_days_anno=Count(
            "logs",
            filter=Q(logs__completed=True),
            distinct=True,
        ),
    )


def _today_log(habit: Habit, window: Optional[DayWindow]):
    window = window or today_window(habit.owner)
    return habit.logs.filter(date__gte=window.start, date__lt=window.end).first()


def today_value(habit: Habit, window: Optional[DayWindow] = None) -> float:
    val = getattr(habit, "today_value_anno", None)
    if val is not None:
        return float(val)
    log = _today_log(habit, window)
    return log.value if log is not None else 0.0


def today_progress(habit: Habit, window: Optional[DayWindow] = None) -> float:
    return progress_fraction(today_value(habit, window), habit.target_amount)


def completed_today(habit: Habit, window: Optional[DayWindow] = None) -> bool:
    val = getattr(habit, "completed_today_anno", None)
    if val is not None:
        return bool(val)
    log = _today_log(habit, window)
    return bool(log is not None and log.completed)


def completed_days(habit: Habit) -> int:
    val = getattr(habit, "completed_days_anno", None)
    if val is not None:
        return int(val)
    return habit.logs.filter(completed=True).count()
