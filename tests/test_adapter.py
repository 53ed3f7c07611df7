"""Tests for habitgrid/adapter.py — field conversion and partial-success decoding."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from habitgrid.adapter import (
    COMPLETION_KIND,
    HABIT_KIND,
    RemoteStoreAdapter,
    decode_batch,
    decode_completion,
    decode_habit,
)
from habitgrid.errors import FieldDecodeError
from habitgrid.models import ColorTag
from habitgrid.store import InMemoryRecordStore, Record, Reference


def test_decode_habit_defaults_optional_fields():
    result = decode_habit(Record("h1", HABIT_KIND, {"name": "Read"}))
    assert result.ok
    assert result.value.display_days == 28
    assert result.value.color_tag is ColorTag.GREEN


def test_decode_habit_unknown_color_is_green():
    result = decode_habit(Record("h1", HABIT_KIND, {"name": "Read", "days": 7, "color": "teal"}))
    assert result.value.color_tag is ColorTag.GREEN
    assert result.value.display_days == 7


def test_decode_habit_missing_name():
    result = decode_habit(Record("h1", HABIT_KIND, {"days": 7}))
    assert not result.ok
    assert isinstance(result.error, FieldDecodeError)
    assert result.error.field == "name"


def test_decode_completion_requires_reference_when_fetching_all():
    record = Record("r1", COMPLETION_KIND, {"date": date(2026, 2, 11), "completed": True})
    assert not decode_completion(record).ok
    assert decode_completion(record, habit_id="h1").value.habit_id == "h1"


def test_decode_completion_rejects_missing_completed_flag():
    record = Record("r1", COMPLETION_KIND, {"habit": Reference("h1"), "date": date(2026, 2, 11)})
    result = decode_completion(record)
    assert result.error.field == "completed"


def test_decode_completion_keeps_false_flag():
    record = Record(
        "r1", COMPLETION_KIND,
        {"habit": Reference("h1"), "date": date(2026, 2, 11), "completed": False},
    )
    assert decode_completion(record).value.completed is False


def test_decode_completion_normalizes_timestamp_in_zone():
    record = Record(
        "r1", COMPLETION_KIND,
        {
            "habit": Reference("h1"),
            "date": datetime(2026, 2, 11, 2, 0, tzinfo=timezone.utc),
            "completed": True,
        },
    )
    result = decode_completion(record, tz=ZoneInfo("America/New_York"))
    assert result.value.day == date(2026, 2, 10)


def test_decode_batch_drops_only_malformed_records():
    records = [
        Record("h1", HABIT_KIND, {"name": "Read"}),
        Record("h2", HABIT_KIND, {"name": 42}),
        Record("h3", HABIT_KIND, {"name": "Run"}),
    ]
    habits = decode_batch(records, decode_habit)
    assert [h.id for h in habits] == ["h1", "h3"]


@pytest.mark.asyncio
async def test_create_and_query_habits():
    adapter = RemoteStoreAdapter(InMemoryRecordStore())
    habit = await adapter.create_habit("Read", 14, "blue")
    assert habit.id
    habits = await adapter.query_habits()
    assert habits == [habit]


@pytest.mark.asyncio
async def test_query_completions_filters_by_habit_reference():
    store = InMemoryRecordStore()
    adapter = RemoteStoreAdapter(store)
    await adapter.create_completion("h1", date(2026, 2, 10))
    await adapter.create_completion("h2", date(2026, 2, 10))
    store.put_raw(COMPLETION_KIND, {"habit": Reference("h1"), "date": "not a date", "completed": True})

    mine = await adapter.query_completions("h1")
    assert [r.habit_id for r in mine] == ["h1"]
    everything = await adapter.query_completions()
    assert {r.habit_id for r in everything} == {"h1", "h2"}
    # Malformed records are still found for deletion
    assert len(await adapter.query_completion_ids("h1")) == 2
