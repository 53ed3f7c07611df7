"""Tests for habitgrid/widgets.py — read-only widget timelines."""

from datetime import datetime, timedelta

import pytest

from habitgrid.adapter import RemoteStoreAdapter
from habitgrid.errors import Transient
from habitgrid.tracker import HabitTracker
from habitgrid.widgets import (
    build_timeline,
    completion_count_timeline,
    days_left_timeline,
    habit_progress_timeline,
    habit_streak_timeline,
    next_midnight,
)

from conftest import TODAY


NOW = datetime(2026, 2, 11, 15, 30)


@pytest.fixture
def factory(store):
    return lambda: HabitTracker(RemoteStoreAdapter(store), clock=lambda: TODAY)


async def seed(store, names=("Read", "Run")):
    seeder = HabitTracker(RemoteStoreAdapter(store), clock=lambda: TODAY)
    habits = [(await seeder.add_habit(n)).value for n in names]
    return seeder, habits


def test_days_left_refreshes_at_midnight():
    timeline = days_left_timeline(NOW)
    assert timeline.entry.days_left == 323
    assert timeline.next_refresh == datetime(2026, 2, 12, 0, 0)


def test_next_midnight_keeps_timezone():
    from zoneinfo import ZoneInfo
    now = datetime(2026, 12, 31, 23, 0, tzinfo=ZoneInfo("Europe/Berlin"))
    assert next_midnight(now) == datetime(2027, 1, 1, tzinfo=ZoneInfo("Europe/Berlin"))


@pytest.mark.asyncio
async def test_streak_placeholder_with_no_habits(factory):
    timeline = await habit_streak_timeline(factory, NOW)
    assert timeline.entry.placeholder
    assert timeline.next_refresh is None


@pytest.mark.asyncio
async def test_streak_for_first_habit(factory, store):
    seeder, (read, _) = await seed(store)
    await seeder.mark(read, TODAY)
    await seeder.mark(read, TODAY - timedelta(days=1))
    timeline = await habit_streak_timeline(factory, NOW)
    assert timeline.entry.habit_name == "Read"
    assert timeline.entry.streak == 2
    assert not timeline.entry.placeholder
    assert timeline.next_refresh == NOW + timedelta(hours=1)


@pytest.mark.asyncio
async def test_streak_placeholder_on_failure(factory, store):
    await seed(store)
    store.failures["query"] = Transient()
    timeline = await habit_streak_timeline(factory, NOW)
    assert timeline.entry.placeholder


@pytest.mark.asyncio
async def test_progress_grid_for_week(factory, store):
    seeder, (read, _) = await seed(store)
    await seeder.mark(read, TODAY)
    await seeder.mark(read, TODAY - timedelta(days=2))
    await seeder.mark(read, TODAY - timedelta(days=9))
    timeline = await habit_progress_timeline(factory, NOW)
    entry = timeline.entry
    assert entry.days[-1] == TODAY
    assert entry.grid == [False, False, False, False, True, False, True]


@pytest.mark.asyncio
async def test_progress_placeholder_with_no_habits(factory):
    timeline = await habit_progress_timeline(factory, NOW)
    assert timeline.entry.placeholder
    assert timeline.entry.grid == [False] * 7


@pytest.mark.asyncio
async def test_completion_counts(factory, store):
    seeder, (read, run) = await seed(store)
    await seeder.mark(read, TODAY)
    await seeder.mark(read, TODAY)
    await seeder.mark(read, TODAY - timedelta(days=3))
    timeline = await completion_count_timeline(factory, NOW)
    counts = {c.name: c.count for c in timeline.entry.counts}
    assert counts == {"Read": 2, "Run": 0}


@pytest.mark.asyncio
async def test_completion_counts_empty(factory):
    timeline = await completion_count_timeline(factory, NOW)
    assert timeline.entry.counts == []
    assert timeline.to_dict()["entry"]["counts"] == []


@pytest.mark.asyncio
async def test_build_timeline_dispatch(factory):
    timeline = await build_timeline("days-left", factory, NOW)
    assert timeline.entry.days_left == 323
    with pytest.raises(KeyError):
        await build_timeline("weather", factory, NOW)
