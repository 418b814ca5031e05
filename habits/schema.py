from dataclasses import asdict

import graphene
from django.contrib.auth import get_user_model
from graphene_django import DjangoObjectType

from .errors import NotFoundError, UnauthorizedError
from .models import Goal, Habit, HabitLog
from .presets import all_presets
from habits.services import aggregation, definitions, goals, habit_stats, ledger, snapshots
from habits.services.timezones import parse_date_param, resolve_user_timezone


def _require_user(info):
    user = info.context.user
    if user.is_anonymous:
        raise UnauthorizedError("Authentication required")
    return user


class HabitType(DjangoObjectType):
    available_units = graphene.List(graphene.NonNull(graphene.String))
    today_value = graphene.Float()
    today_progress = graphene.Float()
    completed_today = graphene.Boolean()
    completed_days = graphene.Int()

    class Meta:
        model = Habit
        fields = (
            "id", "name", "origin", "category", "icon", "unit", "target_amount",
            "increment_amount", "is_active", "created_at", "updated_at",
        )
        convert_choices_to_enum = False

    def resolve_available_units(self, info):
        return list(self.available_units or [])

    def resolve_today_value(self, info):
        return habit_stats.today_value(self)

    def resolve_today_progress(self, info):
        return habit_stats.today_progress(self)

    def resolve_completed_today(self, info):
        return habit_stats.completed_today(self)

    def resolve_completed_days(self, info):
        return habit_stats.completed_days(self)


class HabitLogType(DjangoObjectType):
    progress = graphene.Float()

    class Meta:
        model = HabitLog
        fields = ("id", "date", "value", "completed")

    def resolve_progress(self, info):
        return ledger.progress_fraction(self.value, self.habit.target_amount)


class GoalType(DjangoObjectType):
    progress = graphene.Float()
    completed = graphene.Boolean()

    class Meta:
        model = Goal
        fields = ("id", "type", "habit", "repeat", "metric", "value", "created_at")
        convert_choices_to_enum = False

    def resolve_progress(self, info):
        return goals.goal_progress(self).progress

    def resolve_completed(self, info):
        return goals.goal_progress(self).completed


class UserType(DjangoObjectType):
    timezone = graphene.String()

    class Meta:
        model = get_user_model()
        fields = ("id", "username", "email")

    def resolve_timezone(self, info):
        return resolve_user_timezone(self.pk)


class PresetType(graphene.ObjectType):
    category = graphene.String()
    name = graphene.String()
    icon = graphene.String()
    unit = graphene.String()
    target_amount = graphene.Float()
    increment_amount = graphene.Float()
    available_units = graphene.List(graphene.String)


class DaySummaryType(graphene.ObjectType):
    date = graphene.Date()
    total_habits = graphene.Int()
    completed_habits = graphene.Int()
    in_progress_habits = graphene.Int()
    not_started_habits = graphene.Int()
    completion_rate = graphene.Int(description="Completed share of started habits, in percent")

    def resolve_completion_rate(self, info):
        return self.completion_rate_percent


class HabitDayProgressType(graphene.ObjectType):
    habit = graphene.Field(HabitType)
    log = graphene.Field(HabitLogType)
    value = graphene.Float()
    target_amount = graphene.Float()
    progress = graphene.Float()
    completed = graphene.Boolean()


class DailySnapshotType(graphene.ObjectType):
    summary = graphene.Field(DaySummaryType)
    habits = graphene.List(HabitDayProgressType)


class RangeStatsType(graphene.ObjectType):
    total_days = graphene.Int()
    completed_days = graphene.Int()
    completion_rate = graphene.Int()
    current_streak = graphene.Int()
    total_completed = graphene.Int()


class MonthHistoryType(graphene.ObjectType):
    start_date = graphene.Date()
    end_date = graphene.Date()
    days = graphene.List(DaySummaryType)
    stats = graphene.Field(RangeStatsType)

    def resolve_days(self, info):
        return [snapshot.summary for snapshot in self.per_day.values()]


class HabitDayEntryType(graphene.ObjectType):
    date = graphene.Date()
    value = graphene.Float()
    target_amount = graphene.Float()
    progress = graphene.Float()
    completed = graphene.Boolean()
    unit = graphene.String()


class HabitProgressStatsType(graphene.ObjectType):
    completed_days = graphene.Int()
    total_days = graphene.Int()
    completion_rate = graphene.Int()
    current_streak = graphene.Int()
    average_value = graphene.Float()


class HabitProgressType(graphene.ObjectType):
    habit = graphene.Field(HabitType)
    start_date = graphene.Date()
    end_date = graphene.Date()
    progress = graphene.List(HabitDayEntryType)
    statistics = graphene.Field(HabitProgressStatsType)

    def resolve_progress(self, info):
        return self.days


class IncrementResultType(graphene.ObjectType):
    habit_id = graphene.ID()
    new_value = graphene.Float()
    target_amount = graphene.Float()
    progress = graphene.Float()
    completed = graphene.Boolean()
    unit = graphene.String()
    incremented_by = graphene.Float()


class Query(graphene.ObjectType):
    me = graphene.Field(UserType)
    habits = graphene.List(HabitType, active_only=graphene.Boolean(required=False))
    habit = graphene.Field(HabitType, id=graphene.ID(required=True))
    presets = graphene.List(PresetType, category=graphene.String(required=False))
    logs_by_date = graphene.Field(DailySnapshotType, date=graphene.String(required=False))
    habit_progress = graphene.Field(
        HabitProgressType,
        id=graphene.ID(required=True),
        year=graphene.Int(required=False),
        month=graphene.Int(required=False),
        start_date=graphene.String(required=False),
        end_date=graphene.String(required=False),
    )
    month_history = graphene.Field(
        MonthHistoryType,
        year=graphene.Int(required=False),
        month=graphene.Int(required=False),
    )
    goals = graphene.List(GoalType)

    def resolve_habits(self, info, active_only=None):
        user = info.context.user
        if user.is_anonymous:
            return Habit.objects.none()

        qs = Habit.objects.filter(owner=user).order_by("name")
        if active_only is True:
            qs = qs.filter(is_active=True)

        return habit_stats.with_habit_stats(qs, ledger.today_window(user))

    def resolve_habit(self, info, id):
        user = _require_user(info)

        qs = habit_stats.with_habit_stats(
            Habit.objects.filter(owner=user),
            ledger.today_window(user),
        )
        try:
            return qs.get(pk=id)
        except (Habit.DoesNotExist, ValueError):
            raise NotFoundError("Habit not found.")

    def resolve_presets(self, info, category=None):
        return [{"category": cat, **asdict(preset)} for cat, preset in all_presets(category)]

    def resolve_logs_by_date(self, info, date=None):
        user = _require_user(info)
        local_date = parse_date_param(date) if date is not None else None
        return snapshots.build_snapshot(user, local_date)

    def resolve_habit_progress(self, info, id, year=None, month=None, start_date=None, end_date=None):
        user = _require_user(info)
        return aggregation.habit_progress(
            id, user, year=year, month=month, start_date=start_date, end_date=end_date,
        )

    def resolve_month_history(self, info, year=None, month=None):
        user = _require_user(info)
        tz_name = resolve_user_timezone(user.pk)
        first, last = aggregation.resolve_range(tz_name, year=year, month=month)
        return aggregation.aggregate_range(user, first, last, tz_name=tz_name)

    def resolve_goals(self, info):
        user = info.context.user
        if user.is_anonymous:
            return []
        return goals.list_goals(user)

    def resolve_me(self, info):
        user = info.context.user
        return None if user.is_anonymous else user


class CreateHabit(graphene.Mutation):
    class Arguments:
        name = graphene.String(required=True)
        origin = graphene.String(required=True)
        category = graphene.String(required=True)
        icon = graphene.String(required=False)
        unit = graphene.String(required=False)
        target_amount = graphene.Float(required=False)
        increment_amount = graphene.Float(required=False)
        available_units = graphene.List(graphene.String, required=False)

    habit = graphene.Field(HabitType)

    def mutate(self, info, **kwargs):
        user = _require_user(info)
        habit = definitions.create_habit(user, **kwargs)
        return CreateHabit(habit=habit)


class UpdateHabit(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)
        name = graphene.String(required=False)
        icon = graphene.String(required=False)
        unit = graphene.String(required=False)
        target_amount = graphene.Float(required=False)
        increment_amount = graphene.Float(required=False)

    habit = graphene.Field(HabitType)

    def mutate(self, info, id, **changes):
        user = _require_user(info)
        habit = definitions.update_habit(id, user, **changes)
        return UpdateHabit(habit=habit)


class ToggleHabitActive(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)
        is_active = graphene.Boolean(required=True)

    habit = graphene.Field(HabitType)

    def mutate(self, info, id, is_active):
        user = _require_user(info)
        habit = definitions.set_habit_active(id, user, is_active)
        return ToggleHabitActive(habit=habit)


class IncrementHabit(graphene.Mutation):
    class Arguments:
        habit_id = graphene.ID(required=True)

    result = graphene.Field(IncrementResultType)

    @classmethod
    def mutate(cls, root, info, habit_id):
        user = _require_user(info)
        return cls(result=ledger.increment(habit_id, user))


class DeleteHabit(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)

    ok = graphene.Boolean(required=True)
    deleted_id = graphene.ID(required=True)

    def mutate(self, info, id):
        user = _require_user(info)
        definitions.delete_habit(id, user)
        return DeleteHabit(ok=True, deleted_id=id)


class CreateGoal(graphene.Mutation):
    class Arguments:
        type = graphene.String(required=True)
        habit_id = graphene.ID(required=False)
        repeat = graphene.Int(required=False)
        metric = graphene.String(required=False)
        value = graphene.Float(required=False)

    goal = graphene.Field(GoalType)

    def mutate(self, info, type, **fields):
        user = _require_user(info)
        goal = goals.create_goal(user, goal_type=type, **fields)
        goals.with_goal_progress([goal], user)
        return CreateGoal(goal=goal)


class DeleteGoal(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)

    ok = graphene.Boolean(required=True)
    deleted_id = graphene.ID(required=True)

    def mutate(self, info, id):
        user = _require_user(info)
        goals.delete_goal(id, user)
        return DeleteGoal(ok=True, deleted_id=id)


class Mutation(graphene.ObjectType):
    create_habit = CreateHabit.Field()
    update_habit = UpdateHabit.Field()
    toggle_habit_active = ToggleHabitActive.Field()
    delete_habit = DeleteHabit.Field()
    increment_habit = IncrementHabit.Field()
    create_goal = CreateGoal.Field()
    delete_goal = DeleteGoal.Field()
