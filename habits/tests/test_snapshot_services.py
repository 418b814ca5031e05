from datetime import date, datetime, timezone as dt_timezone

import pytest

from habits.models import Habit, HabitLog
from habits.services.snapshots import build_snapshot, percent
from habits.services.timezones import day_start

pytestmark = pytest.mark.django_db

UTC = dt_timezone.utc
TZ = "Europe/Istanbul"
DAY = date(2024, 4, 5)


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


def _habit(user, name, target=4, created_at=datetime(2024, 1, 1, tzinfo=UTC), **extra):
    habit = Habit.objects.create(owner=user, name=name, unit="times", target_amount=target, **extra)
    Habit.objects.filter(pk=habit.pk).update(created_at=created_at)
    habit.refresh_from_db()
    return habit


def _log(habit, day, value):
    return HabitLog.objects.create(
        habit=habit,
        owner=habit.owner,
        date=day_start(day, TZ),
        value=value,
        completed=value >= habit.target_amount,
    )


def test_build_snapshot__counts_completed_in_progress_and_not_started(user):
    done = _habit(user, "Done")
    halfway = _habit(user, "Halfway")
    untouched = _habit(user, "Untouched")
    zero_row = _habit(user, "ZeroRow")
    _log(done, DAY, 4)
    _log(halfway, DAY, 2)
    _log(zero_row, DAY, 0)

    snapshot = build_snapshot(user, DAY)
    summary = snapshot.summary

    assert summary.date == DAY
    assert summary.total_habits == 4
    assert summary.completed_habits == 1
    assert summary.in_progress_habits == 1
    assert summary.not_started_habits == 2
    assert summary.completion_rate == 0.5
    assert summary.completion_rate_percent == 50

    rows = {row.habit.name: row for row in snapshot.habits}
    assert rows["Done"].progress == 1 and rows["Done"].completed is True
    assert rows["Halfway"].progress == 0.5 and rows["Halfway"].completed is False
    # a missing row and a row holding 0 look the same
    assert (rows["Untouched"].value, rows["Untouched"].progress, rows["Untouched"].completed) == (0, 0, False)
    assert (rows["ZeroRow"].value, rows["ZeroRow"].progress, rows["ZeroRow"].completed) == (0, 0, False)
    assert rows["Untouched"].log is None
    assert rows["ZeroRow"].log is not None
    assert untouched.pk in {row.habit.pk for row in snapshot.habits}


def test_build_snapshot__habit_created_after_the_day_is_excluded(user):
    _habit(user, "Old")
    # created 00:30 Istanbul on the 6th, i.e. after the 5th ended
    _habit(user, "New", created_at=datetime(2024, 4, 5, 21, 30, tzinfo=UTC))

    assert build_snapshot(user, DAY).summary.total_habits == 1
    assert build_snapshot(user, date(2024, 4, 6)).summary.total_habits == 2


def test_build_snapshot__inactive_habits_and_other_days_are_ignored(user):
    active = _habit(user, "Active")
    inactive = _habit(user, "Inactive", is_active=False)
    _log(inactive, DAY, 4)
    _log(active, date(2024, 4, 4), 4)

    summary = build_snapshot(user, DAY).summary

    assert summary.total_habits == 1
    assert summary.completed_habits == 0
    assert summary.not_started_habits == 1
    assert summary.completion_rate == 0


def test_build_snapshot__defaults_to_today(user):
    habit = _habit(user, "Today")
    now = datetime(2024, 4, 5, 12, 0, tzinfo=UTC)
    _log(habit, DAY, 1)

    snapshot = build_snapshot(user, now=now)

    assert snapshot.date == DAY
    assert snapshot.summary.in_progress_habits == 1


def test_build_snapshot__is_scoped_to_owner(user, django_user_model):
    other = django_user_model.objects.create_user(username="u2", password="pass12345")
    theirs = _habit(other, "Theirs")
    _log(theirs, DAY, 4)

    summary = build_snapshot(user, DAY).summary
    assert summary.total_habits == 0
    assert summary.completion_rate_percent == 0


@pytest.mark.parametrize(
    "numerator, denominator, expected",
    [(0, 0, 0), (1, 8, 13), (10, 30, 33), (2, 3, 67), (1, 2, 50), (5, 5, 100)],
)
def test_percent__rounds_half_up(numerator, denominator, expected):
    assert percent(numerator, denominator) == expected
