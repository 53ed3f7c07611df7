"""Streak and calendar math over sets of completion days.

Everything here is pure: inputs are iterables of dates (or datetimes,
normalized to their calendar day) plus an explicit ``today``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Iterable

ONE_DAY = timedelta(days=1)


def normalize_day(value: date | datetime | str, tz: tzinfo | None = None) -> date:
    """Truncate a date/datetime/ISO string to its calendar day.

    Aware datetimes are converted to ``tz`` first when one is given.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value) if "T" in value else date.fromisoformat(value)
    if isinstance(value, datetime):
        if tz is not None and value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"not a date: {value!r}")


def unique_days(days: Iterable[date | datetime], tz: tzinfo | None = None) -> set[date]:
    return {normalize_day(d, tz) for d in days}


def current_streak(days: Iterable[date | datetime], today: date) -> int:
    """Consecutive completed days ending today.

    A habit not completed today has a current streak of 0, even if
    yesterday was completed. Entries after today are ignored.
    """
    cursor = normalize_day(today)
    streak = 0
    for day in sorted(unique_days(days), reverse=True):
        if day == cursor:
            streak += 1
            cursor -= ONE_DAY
        elif day < cursor:
            break
    return streak


def longest_streak(days: Iterable[date | datetime]) -> int:
    """Length of the longest run of consecutive calendar days (0 if none)."""
    longest = 0
    current = 0
    previous: date | None = None
    for day in sorted(unique_days(days)):
        if previous is not None and day - previous == ONE_DAY:
            current += 1
        else:
            current = 1
        longest = max(longest, current)
        previous = day
    return longest


def streak_runs(days: Iterable[date | datetime]) -> list[dict[str, Any]]:
    """Every run of consecutive days, oldest first: {start, end, length}."""
    runs: list[dict[str, Any]] = []
    for day in sorted(unique_days(days)):
        if runs and day - runs[-1]["end"] == ONE_DAY:
            runs[-1]["end"] = day
            runs[-1]["length"] += 1
        else:
            runs.append({"start": day, "end": day, "length": 1})
    return runs


def window_days(window: int, today: date) -> list[date]:
    """The last ``window`` calendar days ending today, oldest first."""
    end = normalize_day(today)
    return [end - timedelta(days=offset) for offset in range(window - 1, -1, -1)]


def calendar_grid(days: Iterable[date | datetime], window: int, today: date) -> list[bool]:
    """One flag per day of the window (oldest first): was that day completed?"""
    if window <= 0:
        return []
    done = unique_days(days)
    return [d in done for d in window_days(window, today)]


def completions_in_window(days: Iterable[date | datetime], window: int, today: date) -> list[date]:
    """Distinct completion days inside the window, oldest first."""
    if window <= 0:
        return []
    end = normalize_day(today)
    start = end - timedelta(days=window - 1)
    return sorted(d for d in unique_days(days) if start <= d <= end)


def days_left_in_year(day: date | datetime) -> int:
    """Days remaining in the year after ``day`` (0 on December 31st)."""
    current = normalize_day(day)
    return (date(current.year, 12, 31) - current).days
