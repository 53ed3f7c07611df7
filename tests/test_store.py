"""Tests for habitgrid/store.py — in-memory and JSON file record stores."""

from datetime import date, datetime

import pytest

from habitgrid.errors import NotFound, Transient
from habitgrid.store import (
    InMemoryRecordStore,
    JsonFileRecordStore,
    Predicate,
    Reference,
)


def test_predicate_matching():
    fields = {"habit": Reference("h1"), "completed": True}
    assert Predicate.always().matches(fields)
    assert Predicate.equals("habit", Reference("h1")).matches(fields)
    assert not Predicate.equals("habit", Reference("h2")).matches(fields)
    assert not Predicate.equals("missing", 1).matches(fields)


@pytest.mark.asyncio
async def test_in_memory_crud():
    store = InMemoryRecordStore()
    record = await store.create("Habit", {"name": "Read"})
    fetched = await store.fetch(record.record_id)
    fetched.fields["name"] = "Write"
    await store.save(fetched)
    assert (await store.fetch(record.record_id)).fields["name"] == "Write"
    assert await store.delete(record.record_id) == record.record_id
    with pytest.raises(NotFound):
        await store.fetch(record.record_id)
    with pytest.raises(NotFound):
        await store.delete(record.record_id)


@pytest.mark.asyncio
async def test_in_memory_returns_copies():
    store = InMemoryRecordStore()
    record = await store.create("Habit", {"name": "Read"})
    record.fields["name"] = "changed"
    assert (await store.fetch(record.record_id)).fields["name"] == "Read"


@pytest.mark.asyncio
async def test_json_store_persists_references_and_dates(tmp_path):
    path = tmp_path / "store.json"
    store = JsonFileRecordStore(path)
    habit = await store.create("Habit", {"name": "Read", "days": 28, "color": "green"})
    await store.create(
        "CompletionRecord",
        {"habit": Reference(habit.record_id), "date": date(2026, 2, 11), "completed": True},
    )
    await store.create(
        "CompletionRecord",
        {"habit": Reference(habit.record_id), "date": datetime(2026, 2, 10, 7, 30), "completed": True},
    )

    reopened = JsonFileRecordStore(path)
    records = await reopened.query(
        "CompletionRecord", Predicate.equals("habit", Reference(habit.record_id))
    )
    assert len(records) == 2
    assert records[0].fields["date"] == date(2026, 2, 11)
    assert records[1].fields["date"] == datetime(2026, 2, 10, 7, 30)
    assert records[0].fields["habit"] == Reference(habit.record_id)


@pytest.mark.asyncio
async def test_json_store_save_and_delete(tmp_path):
    store = JsonFileRecordStore(tmp_path / "store.json")
    record = await store.create("Habit", {"name": "Read"})
    record.fields["name"] = "Run"
    await store.save(record)
    assert (await store.fetch(record.record_id)).fields["name"] == "Run"
    await store.delete(record.record_id)
    assert await store.query("Habit", Predicate.always()) == []
    with pytest.raises(NotFound):
        await store.save(record)


@pytest.mark.asyncio
async def test_json_store_missing_file_is_empty(tmp_path):
    store = JsonFileRecordStore(tmp_path / "nothing.json")
    assert await store.query("Habit", Predicate.always()) == []


@pytest.mark.asyncio
async def test_json_store_corrupt_file_is_transient(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileRecordStore(path)
    with pytest.raises(Transient):
        await store.query("Habit", Predicate.always())


@pytest.mark.asyncio
async def test_json_store_non_list_records_is_transient(tmp_path):
    path = tmp_path / "store.json"
    path.write_text('{"records": 5}', encoding="utf-8")
    store = JsonFileRecordStore(path)
    with pytest.raises(Transient):
        await store.query("Habit", Predicate.always())
