from django.contrib import admin

from .models import Goal, Habit, HabitLog, Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "timezone")
    search_fields = ("user__username",)


@admin.register(Habit)
class HabitAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "origin", "category", "unit", "target_amount", "increment_amount", "is_active")
    list_filter = ("origin", "category", "is_active")
    search_fields = ("name", "owner__username")


@admin.register(HabitLog)
class HabitLogAdmin(admin.ModelAdmin):
    list_display = ("habit", "owner", "date", "value", "completed")
    list_filter = ("completed",)
    date_hierarchy = "date"


@admin.register(Goal)
class GoalAdmin(admin.ModelAdmin):
    list_display = ("owner", "type", "habit", "repeat", "metric", "value", "created_at")
    list_filter = ("type", "metric")
