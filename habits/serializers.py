"""camelCase JSON payloads for the REST endpoints."""


def _iso(value):
    return value.isoformat() if value is not None else None


def habit_brief(habit) -> dict:
    return {
        "id": habit.pk,
        "name": habit.name,
        "icon": habit.icon,
        "unit": habit.unit,
        "targetAmount": habit.target_amount,
    }


def habit_detail(habit) -> dict:
    return {
        **habit_brief(habit),
        "origin": habit.origin,
        "category": habit.category,
        "incrementAmount": habit.increment_amount,
        "availableUnits": list(habit.available_units or []),
        "isActive": habit.is_active,
        "createdAt": _iso(habit.created_at),
        "updatedAt": _iso(habit.updated_at),
    }


def increment_result(result) -> dict:
    return {
        "habitId": result.habit_id,
        "newValue": result.new_value,
        "targetAmount": result.target_amount,
        "progress": result.progress,
        "completed": result.completed,
        "unit": result.unit,
        "incrementedBy": result.incremented_by,
    }


def day_summary(summary) -> dict:
    return {
        "date": _iso(summary.date),
        "totalHabits": summary.total_habits,
        "completedHabits": summary.completed_habits,
        "inProgressHabits": summary.in_progress_habits,
        "notStartedHabits": summary.not_started_habits,
        "completionRate": summary.completion_rate_percent,
    }


def daily_snapshot(snapshot) -> dict:
    habits = []
    for row in snapshot.habits:
        log = None
        if row.log is not None:
            log = {
                "id": row.log.pk,
                "value": row.log.value,
                "completed": row.log.completed,
                "date": _iso(row.log.date),
                "progress": row.progress,
            }
        habits.append({
            "habit": habit_brief(row.habit),
            "log": log,
            "progress": row.progress,
            "completed": row.completed,
        })
    return {"summary": day_summary(snapshot.summary), "habits": habits}


def range_stats(stats) -> dict:
    return {
        "currentStreak": stats.current_streak,
        "completionRate": stats.completion_rate,
        "totalCompletedDays": stats.completed_days,
        "totalCompleted": stats.total_completed,
        "totalDays": stats.total_days,
    }


def month_history(aggregate) -> dict:
    return {
        "startDate": _iso(aggregate.start_date),
        "endDate": _iso(aggregate.end_date),
        "days": {
            day.isoformat(): day_summary(snapshot.summary)
            for day, snapshot in aggregate.per_day.items()
        },
        "stats": range_stats(aggregate.stats),
    }


def habit_progress(report) -> dict:
    stats = report.statistics
    return {
        "habit": habit_detail(report.habit),
        "progress": [
            {
                "date": _iso(entry.date),
                "value": entry.value,
                "targetAmount": entry.target_amount,
                "progress": entry.progress,
                "completed": entry.completed,
                "unit": entry.unit,
            }
            for entry in report.days
        ],
        "statistics": {
            "completedDays": stats.completed_days,
            "totalDays": stats.total_days,
            "completionRate": stats.completion_rate,
            "currentStreak": stats.current_streak,
            "averageValue": stats.average_value,
        },
    }


def goal(obj, progress) -> dict:
    return {
        "id": obj.pk,
        "type": obj.type,
        "habitId": obj.habit_id,
        "repeat": obj.repeat,
        "metric": obj.metric or None,
        "value": obj.value,
        "createdAt": _iso(obj.created_at),
        "progress": progress.progress,
        "completed": progress.completed,
    }


def preset(obj) -> dict:
    return {
        "name": obj.name,
        "icon": obj.icon,
        "unit": obj.unit,
        "targetAmount": obj.target_amount,
        "incrementAmount": obj.increment_amount,
        "availableUnits": list(obj.available_units),
    }
