"""Remote store adapter: habits and completion records over a generic RecordStore.

Schema (two record kinds)::

    Habit             name: str (required), days: int = 28, color: str = "green"
    CompletionRecord  habit: Reference, date: date/datetime, completed: bool

Reads decode each record independently into a tagged Result. A record with
missing or malformed required fields is logged and dropped; the rest of the
batch is still returned.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import Any, Callable, Iterable

from habitgrid.errors import FieldDecodeError
from habitgrid.models import (
    DEFAULT_COLOR,
    DEFAULT_DISPLAY_DAYS,
    ColorTag,
    CompletionRecord,
    Habit,
    Result,
    clamp_display_days,
)
from habitgrid.store import Predicate, Record, RecordStore, Reference
from habitgrid.streaks import normalize_day

logger = logging.getLogger(__name__)

HABIT_KIND = "Habit"
COMPLETION_KIND = "CompletionRecord"


# ── Field conversion ──────────────────────────────────────────


def habit_fields(name: str, display_days: int = DEFAULT_DISPLAY_DAYS, color_tag: Any = DEFAULT_COLOR) -> dict[str, Any]:
    return {
        "name": name,
        "days": int(display_days),
        "color": ColorTag.parse(color_tag).value,
    }


def completion_fields(habit_id: str, day: date, completed: bool = True) -> dict[str, Any]:
    return {
        "habit": Reference(habit_id),
        "date": day,
        "completed": bool(completed),
    }


def decode_habit(record: Record) -> Result:
    """Decode a Habit record. Only ``name`` is required."""
    name = record.fields.get("name")
    if not isinstance(name, str) or not name.strip():
        return Result.failure(
            FieldDecodeError("missing or empty 'name'", record.record_id, field="name")
        )
    return Result.success(
        Habit(
            id=record.record_id,
            name=name,
            display_days=clamp_display_days(record.fields.get("days", DEFAULT_DISPLAY_DAYS)),
            color_tag=ColorTag.parse(record.fields.get("color", DEFAULT_COLOR)),
        )
    )


def decode_completion(record: Record, habit_id: str | None = None, tz: tzinfo | None = None) -> Result:
    """Decode a CompletionRecord.

    When ``habit_id`` is given (single-habit query) the record is attributed
    to it directly; otherwise the ``habit`` reference must be present.
    """
    raw_day = record.fields.get("date")
    if not isinstance(raw_day, (date, datetime)):
        return Result.failure(
            FieldDecodeError("missing or invalid 'date'", record.record_id, field="date")
        )
    completed = record.fields.get("completed")
    if not isinstance(completed, bool):
        return Result.failure(
            FieldDecodeError("missing or invalid 'completed'", record.record_id, field="completed")
        )
    if habit_id is None:
        ref = record.fields.get("habit")
        if not isinstance(ref, Reference):
            return Result.failure(
                FieldDecodeError("missing 'habit' reference", record.record_id, field="habit")
            )
        habit_id = ref.record_id
    return Result.success(
        CompletionRecord(
            id=record.record_id,
            habit_id=habit_id,
            day=normalize_day(raw_day, tz),
            completed=completed,
        )
    )


def decode_batch(records: Iterable[Record], decoder: Callable[[Record], Result]) -> list[Any]:
    """Decode every record, keeping successes and dropping failures."""
    decoded = []
    for record in records:
        result = decoder(record)
        if result.ok:
            decoded.append(result.value)
        else:
            logger.warning(
                "Dropping %s record %s: %s", record.kind, record.record_id, result.error
            )
    return decoded


# ── Adapter ───────────────────────────────────────────────────


class RemoteStoreAdapter:
    """Domain-level operations against a RecordStore. Errors propagate as StoreError."""

    def __init__(self, store: RecordStore, tz: tzinfo | None = None) -> None:
        self.store = store
        self.tz = tz

    async def create_habit(self, name: str, display_days: int = DEFAULT_DISPLAY_DAYS, color_tag: Any = DEFAULT_COLOR) -> Habit:
        fields = habit_fields(name, display_days, color_tag)
        record = await self.store.create(HABIT_KIND, fields)
        return Habit(
            id=record.record_id,
            name=name,
            display_days=int(display_days),
            color_tag=ColorTag.parse(color_tag),
        )

    async def create_completion(self, habit_id: str, day: date, completed: bool = True) -> CompletionRecord:
        record = await self.store.create(COMPLETION_KIND, completion_fields(habit_id, day, completed))
        return CompletionRecord(id=record.record_id, habit_id=habit_id, day=day, completed=bool(completed))

    async def fetch(self, record_id: str) -> Record:
        return await self.store.fetch(record_id)

    async def save(self, record: Record) -> Record:
        return await self.store.save(record)

    async def delete(self, record_id: str) -> str:
        return await self.store.delete(record_id)

    async def query_habits(self) -> list[Habit]:
        records = await self.store.query(HABIT_KIND, Predicate.always())
        return decode_batch(records, decode_habit)

    async def query_completions(self, habit_id: str | None = None) -> list[CompletionRecord]:
        """Completion records for one habit, or for every habit when ``habit_id`` is None."""
        if habit_id is None:
            records = await self.store.query(COMPLETION_KIND, Predicate.always())
            return decode_batch(records, lambda r: decode_completion(r, tz=self.tz))
        records = await self.store.query(
            COMPLETION_KIND, Predicate.equals("habit", Reference(habit_id))
        )
        return decode_batch(records, lambda r: decode_completion(r, habit_id=habit_id, tz=self.tz))

    async def query_completion_ids(self, habit_id: str) -> list[str]:
        """Ids of every completion record referencing the habit, decodable or not."""
        records = await self.store.query(
            COMPLETION_KIND, Predicate.equals("habit", Reference(habit_id))
        )
        return [r.record_id for r in records]
