from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.db import connection

from habits.errors import NotFoundError
from habits.models import Habit, HabitLog
from habits.services import ledger
from habits.services.definitions import update_habit
from habits.services.timezones import day_start

pytestmark = pytest.mark.django_db

UTC = dt_timezone.utc
TZ = "Europe/Istanbul"
# 10:00 in Istanbul on 2024-03-10
NOW = datetime(2024, 3, 10, 7, 0, tzinfo=UTC)


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
def other_user(django_user_model):
    return django_user_model.objects.create_user(
        username="u2",
        password="pass12345",
        email="u2@example.com",
    )


@pytest.fixture()
def water(user):
    return Habit.objects.create(
        owner=user,
        name="Water Drinking",
        origin=Habit.Origin.PRESET,
        category=Habit.Category.HEALTH,
        icon="💧",
        unit="glasses",
        target_amount=8,
        increment_amount=1,
        available_units=["glasses", "liters", "cups"],
    )


def test_increment__water_scenario_reaches_completion_on_eighth_glass(user, water):
    for _ in range(6):
        result = ledger.increment(water.pk, user, now=NOW)

    assert result.new_value == 6
    assert result.progress == 0.75
    assert result.completed is False
    assert result.incremented_by == 1
    assert result.unit == "glasses"

    ledger.increment(water.pk, user, now=NOW)
    result = ledger.increment(water.pk, user, now=NOW)

    assert result.new_value == 8
    assert result.progress == 1
    assert result.completed is True

    log = HabitLog.objects.get(habit=water)
    assert log.date == day_start(NOW, TZ)
    assert log.value == 8
    assert log.completed is True


def test_increment__two_increments_same_day_add_up_in_one_row(user):
    habit = Habit.objects.create(owner=user, name="Run", unit="km", target_amount=10, increment_amount=2.5)

    ledger.increment(habit.pk, user, now=NOW)
    result = ledger.increment(habit.pk, user, now=NOW + timedelta(hours=5))

    assert result.new_value == 5.0
    assert HabitLog.objects.filter(habit=habit).count() == 1


def test_increment__progress_and_completed_always_agree(user):
    habit = Habit.objects.create(owner=user, name="Pages", unit="pages", target_amount=20, increment_amount=7)

    for _ in range(5):
        result = ledger.increment(habit.pk, user, now=NOW)
        assert result.progress == min(result.new_value / 20, 1)
        assert result.completed == (result.progress >= 1)

    assert result.new_value == 35
    assert result.progress == 1


def test_increment__local_midnight_splits_rows(user, water):
    # 23:30 and 00:30 Istanbul time, on consecutive local days
    ledger.increment(water.pk, user, now=datetime(2024, 3, 10, 20, 30, tzinfo=UTC))
    ledger.increment(water.pk, user, now=datetime(2024, 3, 10, 21, 30, tzinfo=UTC))

    dates = sorted(HabitLog.objects.filter(habit=water).values_list("date", flat=True))
    assert dates == [
        datetime(2024, 3, 9, 21, 0, tzinfo=UTC),
        datetime(2024, 3, 10, 21, 0, tzinfo=UTC),
    ]


def test_increment__row_created_concurrently_still_receives_increment(user, water, monkeypatch):
    # Another request inserts the row after our UPDATE matched nothing.
    HabitLog.objects.create(habit=water, owner=user, date=day_start(NOW, TZ), value=3)

    real_bump = ledger._bump
    calls = []

    def racing_bump(habit, start, amount):
        calls.append(start)
        if len(calls) == 1:
            return 0
        return real_bump(habit, start, amount)

    monkeypatch.setattr(ledger, "_bump", racing_bump)

    result = ledger.increment(water.pk, user, now=NOW)

    assert len(calls) == 2
    assert result.new_value == 4
    assert HabitLog.objects.filter(habit=water).count() == 1


@pytest.mark.django_db(transaction=True)
def test_increment__parallel_calls_lose_no_updates(user, water):
    workers, per_worker = 8, 5

    def run():
        try:
            return [ledger.increment(water.pk, user, now=NOW).new_value for _ in range(per_worker)]
        finally:
            connection.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(run) for _ in range(workers)]
        seen = [value for future in futures for value in future.result()]

    log = HabitLog.objects.get(habit=water)
    assert log.value == workers * per_worker
    assert log.completed is True
    # every call observed its own increment
    assert sorted(seen) == list(range(1, workers * per_worker + 1))


def test_increment__inactive_missing_or_foreign_habit_is_not_found(user, other_user, water):
    foreign = Habit.objects.create(owner=other_user, name="Theirs", unit="x", target_amount=1)
    inactive = Habit.objects.create(owner=user, name="Old", unit="x", target_amount=1, is_active=False)

    for habit_id in (foreign.pk, inactive.pk, 987654, "abc"):
        with pytest.raises(NotFoundError):
            ledger.increment(habit_id, user, now=NOW)

    assert not HabitLog.objects.exists()


def test_reset_today__removes_only_todays_row(user, water):
    yesterday = NOW - timedelta(days=1)
    ledger.increment(water.pk, user, now=yesterday)
    ledger.increment(water.pk, user, now=NOW)

    removed = ledger.reset_today(water.pk, user, now=NOW)

    assert removed == 1
    remaining = list(HabitLog.objects.filter(habit=water))
    assert len(remaining) == 1
    assert remaining[0].date == day_start(yesterday, TZ)
    assert remaining[0].value == 1


def test_reset_today__without_row_is_a_noop(user, water):
    assert ledger.reset_today(water.pk, user, now=NOW) == 0


def test_update_habit__target_change_resets_today_but_keeps_history(user, water):
    yesterday = NOW - timedelta(days=1)
    for _ in range(8):
        ledger.increment(water.pk, user, now=yesterday)
    for _ in range(3):
        ledger.increment(water.pk, user, now=NOW)

    update_habit(water.pk, user, target_amount=10, now=NOW)

    logs = list(HabitLog.objects.filter(habit=water))
    assert len(logs) == 1
    assert logs[0].date == day_start(yesterday, TZ)
    assert logs[0].value == 8
    assert logs[0].completed is True


@pytest.mark.parametrize("changes", [{"unit": "cups"}, {"increment_amount": 2}])
def test_update_habit__unit_or_increment_change_resets_today(user, water, changes):
    ledger.increment(water.pk, user, now=NOW)

    update_habit(water.pk, user, now=NOW, **changes)

    assert not HabitLog.objects.filter(habit=water).exists()


def test_update_habit__unchanged_values_keep_today(user, water):
    ledger.increment(water.pk, user, now=NOW)

    update_habit(water.pk, user, target_amount=8, unit="glasses", now=NOW)

    assert HabitLog.objects.get(habit=water).value == 1


def test_query_logs__is_read_only_and_scoped_to_owner(user, other_user, water):
    theirs = Habit.objects.create(owner=other_user, name="Water Drinking", unit="glasses", target_amount=8)
    ledger.increment(theirs.pk, other_user, now=NOW)
    window = ledger.today_window(user, NOW)

    assert list(ledger.query_logs(user, window.start, window.end)) == []
    assert HabitLog.objects.count() == 1
