"""Home-screen widget timelines.

Each provider builds a fresh tracker, runs the fetch chain it needs, and
returns one entry plus the time of the next refresh. Providers are
read-only consumers of the tracker and never raise: an empty habit list or
a failed fetch yields a placeholder entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Callable

from habitgrid import streaks
from habitgrid.tracker import HabitTracker

logger = logging.getLogger(__name__)

PROGRESS_WINDOW = 7
PLACEHOLDER_HABIT = "Meditation"
DEFAULT_REFRESH = timedelta(hours=1)

TrackerFactory = Callable[[], HabitTracker]


@dataclass
class Timeline:
    entry: Any
    next_refresh: datetime | None  # None: do not refresh on a schedule

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry": self.entry.to_dict(),
            "nextRefresh": self.next_refresh.isoformat() if self.next_refresh else None,
        }


@dataclass
class DaysLeftEntry:
    date: datetime
    days_left: int

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "daysLeft": self.days_left}


@dataclass
class HabitStreakEntry:
    date: datetime
    habit_name: str
    streak: int
    placeholder: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "habitName": self.habit_name,
            "streak": self.streak,
            "placeholder": self.placeholder,
        }


@dataclass
class HabitProgressEntry:
    date: datetime
    habit_name: str
    days: list[date] = field(default_factory=list)
    grid: list[bool] = field(default_factory=list)
    placeholder: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "habitName": self.habit_name,
            "days": [d.isoformat() for d in self.days],
            "grid": list(self.grid),
            "placeholder": self.placeholder,
        }


@dataclass
class HabitCount:
    name: str
    count: int


@dataclass
class HabitCompletionCountEntry:
    date: datetime
    counts: list[HabitCount] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "counts": [{"name": c.name, "count": c.count} for c in self.counts],
        }


def next_midnight(now: datetime) -> datetime:
    return datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)


def _now(tracker: HabitTracker, now: datetime | None) -> datetime:
    if now is not None:
        return now
    return datetime.now(tracker.tz) if tracker.tz is not None else datetime.now()


# ── Providers ─────────────────────────────────────────────────


def days_left_timeline(now: datetime) -> Timeline:
    """Days left in the year; refreshed at the next local midnight."""
    entry = DaysLeftEntry(date=now, days_left=streaks.days_left_in_year(now))
    return Timeline(entry, next_midnight(now))


async def habit_streak_timeline(
    factory: TrackerFactory,
    now: datetime | None = None,
    refresh: timedelta = DEFAULT_REFRESH,
) -> Timeline:
    """Current streak of the first habit."""
    tracker = factory()
    now = _now(tracker, now)
    placeholder = Timeline(HabitStreakEntry(now, PLACEHOLDER_HABIT, 3, placeholder=True), None)

    habits = await tracker.fetch_habits()
    if not habits.ok or not habits.value:
        return placeholder
    habit = habits.value[0]
    records = await tracker.fetch_records_for_habit(habit)
    if not records.ok:
        return placeholder
    streak = tracker.current_streak(habit, today=now.date())
    return Timeline(HabitStreakEntry(now, habit.name, streak), now + refresh)


async def habit_progress_timeline(
    factory: TrackerFactory,
    now: datetime | None = None,
    refresh: timedelta = DEFAULT_REFRESH,
) -> Timeline:
    """Last seven days of completions for the first habit."""
    tracker = factory()
    now = _now(tracker, now)
    today = now.date()
    placeholder = Timeline(
        HabitProgressEntry(
            now,
            PLACEHOLDER_HABIT,
            days=streaks.window_days(PROGRESS_WINDOW, today),
            grid=[False] * PROGRESS_WINDOW,
            placeholder=True,
        ),
        None,
    )

    habits = await tracker.fetch_habits()
    if not habits.ok or not habits.value:
        return placeholder
    habit = habits.value[0]
    records = await tracker.fetch_records_for_habit(habit)
    if not records.ok:
        return placeholder
    entry = HabitProgressEntry(
        now,
        habit.name,
        days=streaks.window_days(PROGRESS_WINDOW, today),
        grid=tracker.calendar_grid(habit, PROGRESS_WINDOW, today=today),
    )
    return Timeline(entry, now + refresh)


async def completion_count_timeline(
    factory: TrackerFactory,
    now: datetime | None = None,
    refresh: timedelta = DEFAULT_REFRESH,
) -> Timeline:
    """Distinct completed days per habit, for every habit."""
    tracker = factory()
    now = _now(tracker, now)
    result = await tracker.refresh()
    if not result.ok:
        logger.warning("Completion count widget: refresh failed: %s", result.error)
        return Timeline(HabitCompletionCountEntry(now), now + refresh)
    counts = [HabitCount(h.name, tracker.completion_count(h)) for h in tracker.habits]
    return Timeline(HabitCompletionCountEntry(now, counts), now + refresh)


async def build_timeline(name: str, factory: TrackerFactory, now: datetime | None = None, refresh: timedelta = DEFAULT_REFRESH) -> Timeline:
    """Dispatch by widget name: days-left, streak, progress, counts."""
    if name == "days-left":
        tracker_now = now or _now(factory(), None)
        return days_left_timeline(tracker_now)
    providers = {
        "streak": habit_streak_timeline,
        "progress": habit_progress_timeline,
        "counts": completion_count_timeline,
    }
    if name not in providers:
        raise KeyError(name)
    return await providers[name](factory, now, refresh)


WIDGET_NAMES = ("days-left", "streak", "progress", "counts")
