"""Typed dataclasses for the habitgrid data model.

Entities serialize with from_dict/to_dict (camelCase keys, ISO dates).
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


DEFAULT_DISPLAY_DAYS = 28
MIN_DISPLAY_DAYS = 1
MAX_DISPLAY_DAYS = 90


class ColorTag(str, Enum):
    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"

    @classmethod
    def parse(cls, value: Any) -> ColorTag:
        """Map a color name to a tag; anything unrecognized is green."""
        if isinstance(value, ColorTag):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GREEN


DEFAULT_COLOR = ColorTag.GREEN


def clamp_display_days(value: Any) -> int:
    try:
        days = int(value)
    except (TypeError, ValueError):
        return DEFAULT_DISPLAY_DAYS
    return max(MIN_DISPLAY_DAYS, min(MAX_DISPLAY_DAYS, days))


def validate_habit(name: Any, display_days: Any = DEFAULT_DISPLAY_DAYS) -> list[str]:
    """Validate user input for a new or renamed habit. Returns a list of errors."""
    errors = []
    if not isinstance(name, str) or not name.strip():
        errors.append("name must be a non-empty string")
    if isinstance(display_days, bool) or not isinstance(display_days, int):
        errors.append("display_days must be an integer")
    elif not MIN_DISPLAY_DAYS <= display_days <= MAX_DISPLAY_DAYS:
        errors.append(f"display_days must be within {MIN_DISPLAY_DAYS}-{MAX_DISPLAY_DAYS}")
    return errors


# ── Entities ──────────────────────────────────────────────────


@dataclass
class Habit:
    """A user-defined recurring activity. ``id`` is assigned by the store."""

    id: str
    name: str
    display_days: int = DEFAULT_DISPLAY_DAYS
    color_tag: ColorTag = DEFAULT_COLOR

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Habit:
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            display_days=clamp_display_days(d.get("display_days", d.get("displayDays", DEFAULT_DISPLAY_DAYS))),
            color_tag=ColorTag.parse(d.get("color_tag", d.get("colorTag", DEFAULT_COLOR))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "displayDays": self.display_days,
            "colorTag": self.color_tag.value,
        }


@dataclass
class CompletionRecord:
    """A dated marker that a habit was (or was not) done on a calendar day."""

    id: str
    habit_id: str
    day: date
    completed: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "habitId": self.habit_id,
            "day": self.day.isoformat(),
            "completed": self.completed,
        }


# ── Operation results ─────────────────────────────────────────


@dataclass
class Result:
    """Outcome of an asynchronous tracker operation: a value or an error."""

    ok: bool
    value: Any = None
    error: Exception | None = None

    @classmethod
    def success(cls, value: Any = None) -> Result:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: Exception) -> Result:
        return cls(ok=False, error=error)

    @property
    def error_kind(self) -> str | None:
        if self.error is None:
            return None
        return getattr(self.error, "kind", type(self.error).__name__)


@dataclass
class DeleteOutcome:
    """Two-phase result of deleting a habit and its completion records.

    Phase one deletes the habit record (and cleans the cache). Phase two
    queries and deletes the habit's completion records remotely; a failure
    there leaves orphaned records in the store.
    """

    habit_id: str
    habit_deleted: bool = False
    records_deleted: int = 0
    records_failed: list[str] = field(default_factory=list)
    cascade_error: Exception | None = None

    @property
    def orphaned(self) -> bool:
        return self.habit_deleted and (bool(self.records_failed) or self.cascade_error is not None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "habitId": self.habit_id,
            "habitDeleted": self.habit_deleted,
            "recordsDeleted": self.records_deleted,
            "recordsFailed": list(self.records_failed),
            "cascadeError": str(self.cascade_error) if self.cascade_error else None,
            "orphaned": self.orphaned,
        }


@dataclass
class HabitStats:
    habit: Habit
    current_streak: int = 0
    longest_streak: int = 0
    total_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "habit": self.habit.to_dict(),
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "totalDays": self.total_days,
        }
