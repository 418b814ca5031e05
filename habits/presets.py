from dataclasses import dataclass
from typing import Optional

from habits.errors import NotFoundError


@dataclass(frozen=True)
class HabitPreset:
    name: str
    icon: str
    unit: str
    target_amount: float
    increment_amount: float
    available_units: tuple


PRESETS = {
    "health": (
        HabitPreset("Water Drinking", "💧", "glasses", 8, 1, ("glasses", "liters", "cups")),
        HabitPreset("Healthy Eating", "🥗", "meals", 3, 1, ("meals", "servings", "portions")),
        HabitPreset("Walking", "🚶", "steps", 10000, 1000, ("steps", "kilometers", "minutes")),
        HabitPreset("Exercise", "💪", "minutes", 30, 15, ("minutes", "hours", "sessions")),
        HabitPreset("Reading", "📚", "pages", 20, 5, ("pages", "minutes", "chapters")),
        HabitPreset("Sleep", "😴", "hours", 8, 1, ("hours", "minutes")),
    ),
}


def all_presets(category: Optional[str] = None):
    if category is None:
        categories = PRESETS
    elif category in PRESETS:
        categories = {category: PRESETS[category]}
    else:
        raise NotFoundError(
            f"Category '{category}' not found. Available categories: {', '.join(PRESETS)}"
        )
    for cat, presets in categories.items():
        for preset in presets:
            yield cat, preset


def find_preset(name: str) -> Optional[HabitPreset]:
    for _, preset in all_presets():
        if preset.name == name:
            return preset
    return None
