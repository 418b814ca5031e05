import math

from habits.errors import ValidationError


def positive_number(value, label: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number.")
    if not math.isfinite(number) or number <= 0:
        raise ValidationError(f"{label} must be greater than 0.")
    return number


def positive_int(value, label: str) -> int:
    number = positive_number(value, label)
    if not number.is_integer():
        raise ValidationError(f"{label} must be a whole number.")
    return int(number)


def non_blank(value, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required.")
    return value.strip()
