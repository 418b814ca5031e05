from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from habits.errors import NotFoundError, ValidationError
from habits.models import Goal
from habits.services.aggregation import RangeAggregate, aggregate_current_month
from habits.services.ledger import get_active_habit
from habits.validators import positive_int, positive_number


@dataclass(frozen=True)
class GoalProgress:
    progress: float
    completed: bool


def _capped(current: float, target) -> float:
    if not target or target <= 0:
        return 0.0
    return min(current / target, 1.0)


def habit_completed_days(aggregate: RangeAggregate, habit_id) -> int:
    """Distinct days in the aggregate on which the habit was completed."""
    return sum(
        1
        for snapshot in aggregate.per_day.values()
        if any(row.habit.pk == habit_id and row.completed for row in snapshot.habits)
    )


def evaluate(goal: Goal, aggregate: RangeAggregate) -> GoalProgress:
    stats = aggregate.stats

    if goal.type == Goal.Type.COMPLETE:
        progress = _capped(habit_completed_days(aggregate, goal.habit_id), goal.repeat)
    elif goal.type == Goal.Type.REACH and goal.metric == Goal.Metric.RATE:
        # both sides are percentages
        progress = _capped(stats.completion_rate, goal.value)
    elif goal.type == Goal.Type.REACH and goal.metric == Goal.Metric.STREAK:
        progress = _capped(stats.current_streak, goal.value)
    elif goal.type == Goal.Type.MAINTAIN:
        progress = stats.completion_rate / 100
    else:
        progress = 0.0

    return GoalProgress(progress=progress, completed=progress >= 1)


def validate_goal_input(user, *, goal_type, habit_id=None, repeat=None, metric=None, value=None) -> dict:
    """
    Check a goal definition and return the model fields to store.

    complete: habitId (active, owned) and a positive whole repeat count
    reach:    metric in {streak, rate} and a positive value
    maintain: nothing
    """
    if goal_type not in Goal.Type.values:
        raise ValidationError(f"Goal type must be one of: {', '.join(Goal.Type.values)}")

    if goal_type == Goal.Type.COMPLETE:
        if habit_id in (None, "") or repeat is None:
            raise ValidationError("Complete goals need habitId and repeat.")
        count = positive_int(repeat, "Repeat")
        try:
            habit = get_active_habit(habit_id, user)
        except NotFoundError:
            raise ValidationError("Goal habit must be one of your active habits.")
        return {"type": goal_type, "habit": habit, "repeat": count}

    if goal_type == Goal.Type.REACH:
        if metric not in Goal.Metric.values:
            raise ValidationError(f"Metric must be one of: {', '.join(Goal.Metric.values)}")
        if value is None:
            raise ValidationError("Reach goals need a value.")
        return {"type": goal_type, "metric": metric, "value": positive_number(value, "Value")}

    return {"type": goal_type}


def create_goal(user, **fields) -> Goal:
    cleaned = validate_goal_input(user, **fields)
    return Goal.objects.create(owner=user, **cleaned)


def delete_goal(goal_id, user) -> int:
    try:
        deleted, _ = Goal.objects.filter(pk=goal_id, owner=user).delete()
    except (ValueError, TypeError):
        deleted = 0
    if not deleted:
        raise NotFoundError("Goal not found.")
    return int(goal_id)


def with_goal_progress(goals, user, *, now: Optional[datetime] = None) -> list:
    """
    Evaluate goals against one current-month aggregate and stash the result
    on each goal as ``progress_anno``.
    """
    goals = list(goals)
    if not goals:
        return goals
    aggregate = aggregate_current_month(user, now=now)
    for goal in goals:
        goal.progress_anno = evaluate(goal, aggregate)
    return goals


def goal_progress(goal: Goal) -> GoalProgress:
    val = getattr(goal, "progress_anno", None)
    if val is not None:
        return val
    return evaluate(goal, aggregate_current_month(goal.owner))


def list_goals(user, *, now: Optional[datetime] = None) -> list:
    qs = Goal.objects.filter(owner=user).select_related("habit")
    return with_goal_progress(qs, user, now=now)
