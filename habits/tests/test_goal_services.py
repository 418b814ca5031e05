from datetime import date, datetime, timezone as dt_timezone

import pytest

from habits.errors import NotFoundError, ValidationError
from habits.models import Goal, Habit, HabitLog
from habits.services import goals
from habits.services.aggregation import RangeAggregate, RangeStats, aggregate_month
from habits.services.timezones import day_start

pytestmark = pytest.mark.django_db

UTC = dt_timezone.utc
TZ = "Europe/Istanbul"
AFTER_APRIL = datetime(2024, 5, 15, 12, 0, tzinfo=UTC)
MID_APRIL = datetime(2024, 4, 20, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def istanbul_default(settings):
    settings.HABITS_DEFAULT_TIMEZONE = TZ


@pytest.fixture()
def user(django_user_model):
    return django_user_model.objects.create_user(
        username="u1",
        password="pass12345",
        email="u1@example.com",
    )


@pytest.fixture()
def habit(user):
    habit = Habit.objects.create(owner=user, name="Read", unit="pages", target_amount=20, increment_amount=5)
    Habit.objects.filter(pk=habit.pk).update(created_at=datetime(2024, 3, 1, tzinfo=UTC))
    habit.refresh_from_db()
    return habit


def _complete(habit, day):
    HabitLog.objects.create(
        habit=habit,
        owner=habit.owner,
        date=day_start(day, TZ),
        value=habit.target_amount,
        completed=True,
    )


def _stats_only(**stats):
    return RangeAggregate(
        start_date=date(2024, 4, 1),
        end_date=date(2024, 4, 30),
        stats=RangeStats(**stats),
    )


def test_evaluate__complete_goal_counts_distinct_completed_days(user, habit):
    for day in (3, 9, 17):
        _complete(habit, date(2024, 4, day))
    aggregate = aggregate_month(user, 2024, 4, now=AFTER_APRIL)

    result = goals.evaluate(Goal(owner=user, type=Goal.Type.COMPLETE, habit=habit, repeat=5), aggregate)

    assert result.progress == pytest.approx(0.6)
    assert result.completed is False


def test_evaluate__complete_goal_caps_at_one(user, habit):
    for day in range(1, 8):
        _complete(habit, date(2024, 4, day))
    aggregate = aggregate_month(user, 2024, 4, now=AFTER_APRIL)

    result = goals.evaluate(Goal(owner=user, type=Goal.Type.COMPLETE, habit=habit, repeat=5), aggregate)

    assert result.progress == 1
    assert result.completed is True


def test_evaluate__complete_goal_ignores_other_habits(user, habit):
    other = Habit.objects.create(owner=user, name="Walk", unit="steps", target_amount=1)
    Habit.objects.filter(pk=other.pk).update(created_at=datetime(2024, 3, 1, tzinfo=UTC))
    other.refresh_from_db()
    _complete(other, date(2024, 4, 4))
    aggregate = aggregate_month(user, 2024, 4, now=AFTER_APRIL)

    result = goals.evaluate(Goal(owner=user, type=Goal.Type.COMPLETE, habit=habit, repeat=2), aggregate)

    assert result.progress == 0


def test_evaluate__reach_rate_is_monotonic_and_capped():
    goal = Goal(type=Goal.Type.REACH, metric=Goal.Metric.RATE, value=80)

    previous = -1
    for rate in range(0, 101, 5):
        progress = goals.evaluate(goal, _stats_only(completion_rate=rate)).progress
        assert progress >= previous
        assert progress <= 1
        previous = progress

    assert goals.evaluate(goal, _stats_only(completion_rate=40)).progress == 0.5
    assert goals.evaluate(goal, _stats_only(completion_rate=95)).completed is True


def test_evaluate__reach_streak():
    goal = Goal(type=Goal.Type.REACH, metric=Goal.Metric.STREAK, value=10)

    assert goals.evaluate(goal, _stats_only(current_streak=4)).progress == 0.4
    assert goals.evaluate(goal, _stats_only(current_streak=12)).progress == 1


def test_evaluate__maintain_is_completion_rate_fraction():
    goal = Goal(type=Goal.Type.MAINTAIN)

    assert goals.evaluate(goal, _stats_only(completion_rate=33)).progress == 0.33
    assert goals.evaluate(goal, _stats_only(completion_rate=100)).completed is True


def test_create_goal__valid_definitions(user, habit):
    complete = goals.create_goal(user, goal_type="complete", habit_id=habit.pk, repeat=5)
    reach = goals.create_goal(user, goal_type="reach", metric="streak", value=7)
    maintain = goals.create_goal(user, goal_type="maintain")

    assert (complete.habit_id, complete.repeat) == (habit.pk, 5)
    assert (reach.metric, reach.value) == ("streak", 7)
    assert maintain.type == "maintain"
    assert Goal.objects.filter(owner=user).count() == 3


@pytest.mark.parametrize(
    "fields",
    [
        {"goal_type": "bogus"},
        {"goal_type": None},
        {"goal_type": "complete", "repeat": 3},
        {"goal_type": "complete", "habit_id": "HABIT"},
        {"goal_type": "complete", "habit_id": "HABIT", "repeat": 0},
        {"goal_type": "complete", "habit_id": "HABIT", "repeat": 2.5},
        {"goal_type": "complete", "habit_id": "HABIT", "repeat": "many"},
        {"goal_type": "complete", "habit_id": 987654, "repeat": 3},
        {"goal_type": "reach", "metric": "speed", "value": 3},
        {"goal_type": "reach", "metric": "rate"},
        {"goal_type": "reach", "metric": "rate", "value": 0},
        {"goal_type": "reach", "metric": "rate", "value": -10},
    ],
)
def test_create_goal__rejects_invalid_definitions(user, habit, fields):
    fields = {k: (habit.pk if v == "HABIT" else v) for k, v in fields.items()}

    with pytest.raises(ValidationError):
        goals.create_goal(user, **fields)

    assert not Goal.objects.exists()


def test_create_goal__habit_must_be_active_and_owned(user, habit, django_user_model):
    other = django_user_model.objects.create_user(username="u2", password="pass12345")
    theirs = Habit.objects.create(owner=other, name="Theirs", unit="x", target_amount=1)
    Habit.objects.filter(pk=habit.pk).update(is_active=False)

    for habit_id in (theirs.pk, habit.pk):
        with pytest.raises(ValidationError):
            goals.create_goal(user, goal_type="complete", habit_id=habit_id, repeat=2)


def test_list_goals__attaches_progress_from_current_month(user, habit):
    for day in (3, 9, 17):
        _complete(habit, date(2024, 4, day))
    goals.create_goal(user, goal_type="complete", habit_id=habit.pk, repeat=5)
    goals.create_goal(user, goal_type="reach", metric="rate", value=50)

    listed = goals.list_goals(user, now=MID_APRIL)
    by_type = {g.type: goals.goal_progress(g) for g in listed}

    assert by_type["complete"].progress == pytest.approx(0.6)
    # 3 of 20 evaluated days -> 15%
    assert by_type["reach"].progress == pytest.approx(15 / 50)


def test_delete_goal__only_owner_can_delete(user, django_user_model):
    goal = goals.create_goal(user, goal_type="maintain")
    other = django_user_model.objects.create_user(username="u2", password="pass12345")

    with pytest.raises(NotFoundError):
        goals.delete_goal(goal.pk, other)
    with pytest.raises(NotFoundError):
        goals.delete_goal("nope", user)

    assert goals.delete_goal(goal.pk, user) == goal.pk
    assert not Goal.objects.exists()
