import json
import logging
from functools import wraps

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import serializers
from .errors import HabitServiceError, ValidationError
from .presets import all_presets
from habits.services import aggregation, goals, ledger, snapshots
from habits.services.timezones import parse_date_param, resolve_user_timezone

logger = logging.getLogger(__name__)


def _success(message, data, status=200):
    return JsonResponse({"success": True, "message": message, "data": data}, status=status)


def _failure(message, status):
    return JsonResponse({"success": False, "message": message}, status=status)


def api_endpoint(view):
    """Reject anonymous callers and turn service errors into JSON failures."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if request.user.is_anonymous:
            return _failure("Authentication required.", 401)
        try:
            return view(request, *args, **kwargs)
        except HabitServiceError as exc:
            logger.debug("%s %s failed: %s", request.method, request.path, exc.message)
            return _failure(exc.message, exc.status_code)

    return wrapper


def _json_body(request) -> dict:
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("Request body must be JSON.")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


@csrf_exempt
@require_POST
@api_endpoint
def increment_habit(request, habit_id):
    result = ledger.increment(habit_id, request.user)
    return _success(
        f"{result.incremented_by:g} {result.unit} added successfully",
        serializers.increment_result(result),
    )


@require_GET
@api_endpoint
def logs_by_date(request):
    raw = request.GET.get("date")
    local_date = parse_date_param(raw) if raw is not None else None
    snapshot = snapshots.build_snapshot(request.user, local_date)
    return _success("Habit logs retrieved successfully", serializers.daily_snapshot(snapshot))


@require_GET
@api_endpoint
def habit_progress(request, habit_id):
    params = request.GET
    report = aggregation.habit_progress(
        habit_id,
        request.user,
        year=params.get("year"),
        month=params.get("month"),
        start_date=params.get("startDate"),
        end_date=params.get("endDate"),
    )
    return _success("Habit progress retrieved successfully", serializers.habit_progress(report))


@require_GET
@api_endpoint
def month_history(request):
    tz_name = resolve_user_timezone(request.user.pk)
    first, last = aggregation.resolve_range(
        tz_name,
        year=request.GET.get("year"),
        month=request.GET.get("month"),
    )
    aggregate = aggregation.aggregate_range(request.user, first, last, tz_name=tz_name)
    return _success("History retrieved successfully", serializers.month_history(aggregate))


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_endpoint
def goal_list(request):
    if request.method == "POST":
        body = _json_body(request)
        goal = goals.create_goal(
            request.user,
            goal_type=body.get("type"),
            habit_id=body.get("habitId"),
            repeat=body.get("repeat"),
            metric=body.get("metric"),
            value=body.get("value"),
        )
        goals.with_goal_progress([goal], request.user)
        return _success(
            "Goal created successfully",
            serializers.goal(goal, goals.goal_progress(goal)),
            status=201,
        )

    items = goals.list_goals(request.user)
    return _success(
        "Goals retrieved successfully",
        [serializers.goal(g, goals.goal_progress(g)) for g in items],
    )


@csrf_exempt
@require_http_methods(["DELETE"])
@api_endpoint
def goal_detail(request, goal_id):
    goals.delete_goal(goal_id, request.user)
    return _success("Goal deleted successfully", {"id": goal_id})


@require_GET
@api_endpoint
def habit_presets(request, category=None):
    grouped = {}
    for cat, item in all_presets(category):
        grouped.setdefault(cat, []).append(serializers.preset(item))
    if category is None:
        return _success("Habit presets retrieved successfully", grouped)
    return _success(
        f"{category.capitalize()} habit presets retrieved successfully",
        {"category": category, "presets": grouped[category]},
    )
