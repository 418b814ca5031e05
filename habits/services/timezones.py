"""
Local-day resolution.

Every "which day is it" question in the app goes through this module: a
user's day starts at local midnight in their IANA timezone and the ledger
stores that instant in UTC.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import Iterator, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from habits.errors import ValidationError
from habits.models import Profile

logger = logging.getLogger(__name__)

DateInput = Union[date, datetime, None]


@dataclass(frozen=True)
class DayWindow:
    """Half-open UTC range ``[start, end)`` covering one local calendar day."""

    local_date: date
    start: datetime
    end: datetime

    def __contains__(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


def default_timezone() -> str:
    return settings.HABITS_DEFAULT_TIMEZONE


def is_valid_timezone(tz_name: str) -> bool:
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def _zone(tz_name: Optional[str]) -> ZoneInfo:
    name = tz_name or default_timezone()
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone '{name}'.")


def resolve_user_timezone(user_id) -> str:
    """
    Timezone used for a user's day boundaries.

    Falls back to HABITS_DEFAULT_TIMEZONE when the user has no profile, the
    stored name is blank or unknown, or the lookup itself fails.
    """
    fallback = default_timezone()
    if not user_id:
        return fallback

    try:
        tz_name = (
            Profile.objects.filter(user_id=user_id)
            .values_list("timezone", flat=True)
            .first()
        )
    except (DatabaseError, ValueError, TypeError):
        logger.warning("Timezone lookup failed for user %s, using %s", user_id, fallback, exc_info=True)
        return fallback

    if not tz_name:
        return fallback
    if not is_valid_timezone(tz_name):
        logger.warning("User %s has unknown timezone %r, using %s", user_id, tz_name, fallback)
        return fallback
    return tz_name


def local_date_of(instant: datetime, tz_name: Optional[str]) -> date:
    return instant.astimezone(_zone(tz_name)).date()


def local_today(tz_name: Optional[str], now: Optional[datetime] = None) -> date:
    return local_date_of(now or timezone.now(), tz_name)


def day_range(value: DateInput = None, tz_name: Optional[str] = None) -> DayWindow:
    """
    Window for the local day containing ``value``.

    - None: the current local day
    - aware datetime: the local day that instant falls on
    - naive datetime: read as wall-clock time in ``tz_name``
    - date: that calendar day

    The end is the next calendar day's midnight, so DST days are 23h or 25h.
    """
    zone = _zone(tz_name)

    if value is not None and not isinstance(value, date):
        raise TypeError(f"day_range() expects a date or datetime, got {type(value).__name__}")

    # the first and last representable days can fall outside datetime's range in UTC
    try:
        if value is None:
            local_day = timezone.now().astimezone(zone).date()
        elif isinstance(value, datetime):
            if timezone.is_naive(value):
                local_day = value.date()
            else:
                local_day = value.astimezone(zone).date()
        else:
            local_day = value

        start = datetime.combine(local_day, time.min, tzinfo=zone)
        end = datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=zone)
        return DayWindow(
            local_date=local_day,
            start=start.astimezone(dt_timezone.utc),
            end=end.astimezone(dt_timezone.utc),
        )
    except OverflowError:
        raise ValidationError("Date out of range.")


def day_start(value: DateInput = None, tz_name: Optional[str] = None) -> datetime:
    return day_range(value, tz_name).start


def iter_days(start: date, end: date) -> Iterator[date]:
    """Calendar days from ``start`` to ``end`` inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def parse_date_param(raw) -> Union[date, datetime]:
    """
    Parse a ``YYYY-MM-DD`` day or an ISO-8601 datetime from request input.

    Malformed input raises ValidationError before any timezone math happens.
    """
    if isinstance(raw, (date, datetime)):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("A date is required (YYYY-MM-DD or ISO datetime).")

    raw = raw.strip()
    try:
        parsed = parse_date(raw) or parse_datetime(raw)
    except ValueError:
        # well-formed but impossible, e.g. 2024-02-30
        parsed = None
    if parsed is None:
        raise ValidationError(f"Invalid date '{raw}'. Use YYYY-MM-DD or an ISO datetime.")
    return parsed
