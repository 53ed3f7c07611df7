"""Generic record store contract and local implementations.

The store knows nothing about habits: it holds records of a ``kind`` with
a flat mapping of fields, and answers equality-predicate queries. Field
values are strings, ints, bools, dates/datetimes, or ``Reference`` objects
pointing at another record.

``JsonFileRecordStore`` stands in for the managed cloud database when running
locally. Its disk I/O runs in a worker thread so callers on the event loop
are never blocked.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

from habitgrid.errors import NotFound, Transient
from habitgrid.fileio import read_json, write_json_atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reference:
    """A pointer from one record to another (by record id)."""

    record_id: str


@dataclass
class Record:
    record_id: str
    kind: str
    fields: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> Record:
        return Record(self.record_id, self.kind, dict(self.fields))


@dataclass(frozen=True)
class Predicate:
    """Equality filter over record fields. No conditions matches everything."""

    conditions: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def always(cls) -> Predicate:
        return cls()

    @classmethod
    def equals(cls, field_name: str, value: Any) -> Predicate:
        return cls(((field_name, value),))

    def matches(self, fields: dict[str, Any]) -> bool:
        return all(
            name in fields and fields[name] == value for name, value in self.conditions
        )


class RecordStore(ABC):
    """Minimal asynchronous CRUD + query contract. No retries are performed."""

    @abstractmethod
    async def create(self, kind: str, fields: dict[str, Any]) -> Record:
        """Persist a new record and return it with its store-assigned id."""

    @abstractmethod
    async def fetch(self, record_id: str) -> Record:
        """Return the record, or raise NotFound."""

    @abstractmethod
    async def save(self, record: Record) -> Record:
        """Overwrite an existing record's fields. Raises NotFound if absent."""

    @abstractmethod
    async def delete(self, record_id: str) -> str:
        """Delete a record and return its id. Raises NotFound if absent."""

    @abstractmethod
    async def query(self, kind: str, predicate: Predicate) -> list[Record]:
        """All records of ``kind`` matching ``predicate``, in store order."""


def _new_record_id() -> str:
    return uuid.uuid4().hex


# ── In-memory ─────────────────────────────────────────────────


class InMemoryRecordStore(RecordStore):
    """Process-local store; returned records are copies, never live references."""

    def __init__(self) -> None:
        self._records: dict[str, Record] = {}

    async def create(self, kind: str, fields: dict[str, Any]) -> Record:
        record = Record(_new_record_id(), kind, dict(fields))
        self._records[record.record_id] = record
        logger.debug("create %s %s", kind, record.record_id)
        return record.copy()

    async def fetch(self, record_id: str) -> Record:
        record = self._records.get(record_id)
        if record is None:
            raise NotFound(f"record not found: {record_id}", record_id)
        return record.copy()

    async def save(self, record: Record) -> Record:
        if record.record_id not in self._records:
            raise NotFound(f"record not found: {record.record_id}", record.record_id)
        self._records[record.record_id] = record.copy()
        logger.debug("save %s %s", record.kind, record.record_id)
        return record.copy()

    async def delete(self, record_id: str) -> str:
        if self._records.pop(record_id, None) is None:
            raise NotFound(f"record not found: {record_id}", record_id)
        logger.debug("delete %s", record_id)
        return record_id

    async def query(self, kind: str, predicate: Predicate) -> list[Record]:
        return [
            r.copy()
            for r in self._records.values()
            if r.kind == kind and predicate.matches(r.fields)
        ]

    def put_raw(self, kind: str, fields: dict[str, Any], record_id: str | None = None) -> Record:
        """Insert a record as-is, bypassing any validation (e.g. for seeding)."""
        record = Record(record_id or _new_record_id(), kind, dict(fields))
        self._records[record.record_id] = record
        return record.copy()

    def __len__(self) -> int:
        return len(self._records)


# ── JSON file ─────────────────────────────────────────────────


def _encode_value(value: Any) -> Any:
    if isinstance(value, Reference):
        return {"$ref": value.record_id}
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    return value


def _decode_value(value: Any) -> Any:
    """Inverse of _encode_value. Unparseable tagged values are passed through."""
    if isinstance(value, dict) and len(value) == 1:
        try:
            if "$ref" in value:
                return Reference(str(value["$ref"]))
            if "$datetime" in value:
                return datetime.fromisoformat(value["$datetime"])
            if "$date" in value:
                return date.fromisoformat(value["$date"])
        except (TypeError, ValueError):
            return value
    return value


class JsonFileRecordStore(RecordStore):
    """Record store persisted to a single JSON document.

    Layout::

        {"records": [{"id": ..., "kind": ..., "fields": {...}}, ...]}

    Records keep insertion order. OS-level failures surface as Transient.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    # sync helpers run in a worker thread

    def _load(self) -> list[dict[str, Any]]:
        try:
            data = read_json(self.path)
        except ValueError as e:
            raise Transient(f"store file unreadable: {e}") from e
        records = data.get("records") or []
        if not isinstance(records, list):
            raise Transient(f"store file unreadable: records is {type(records).__name__}")
        return [r for r in records if isinstance(r, dict) and "id" in r]

    def _dump(self, records: list[dict[str, Any]]) -> None:
        write_json_atomic(self.path, {"records": records})

    @staticmethod
    def _to_record(raw: dict[str, Any]) -> Record:
        fields = raw.get("fields") if isinstance(raw.get("fields"), dict) else {}
        return Record(
            record_id=str(raw["id"]),
            kind=str(raw.get("kind", "")),
            fields={k: _decode_value(v) for k, v in fields.items()},
        )

    @staticmethod
    def _to_raw(record: Record) -> dict[str, Any]:
        return {
            "id": record.record_id,
            "kind": record.kind,
            "fields": {k: _encode_value(v) for k, v in record.fields.items()},
        }

    def _create_sync(self, kind: str, fields: dict[str, Any]) -> Record:
        with self._lock:
            records = self._load()
            record = Record(_new_record_id(), kind, dict(fields))
            records.append(self._to_raw(record))
            self._dump(records)
            return record

    def _fetch_sync(self, record_id: str) -> Record:
        with self._lock:
            for raw in self._load():
                if str(raw["id"]) == record_id:
                    return self._to_record(raw)
        raise NotFound(f"record not found: {record_id}", record_id)

    def _save_sync(self, record: Record) -> Record:
        with self._lock:
            records = self._load()
            for i, raw in enumerate(records):
                if str(raw["id"]) == record.record_id:
                    records[i] = self._to_raw(record)
                    self._dump(records)
                    return copy.deepcopy(record)
        raise NotFound(f"record not found: {record.record_id}", record.record_id)

    def _delete_sync(self, record_id: str) -> str:
        with self._lock:
            records = self._load()
            kept = [r for r in records if str(r["id"]) != record_id]
            if len(kept) == len(records):
                raise NotFound(f"record not found: {record_id}", record_id)
            self._dump(kept)
            return record_id

    def _query_sync(self, kind: str, predicate: Predicate) -> list[Record]:
        with self._lock:
            out = []
            for raw in self._load():
                if raw.get("kind") != kind:
                    continue
                record = self._to_record(raw)
                if predicate.matches(record.fields):
                    out.append(record)
            return out

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except OSError as e:
            raise Transient(f"store I/O failed: {e}") from e

    async def create(self, kind: str, fields: dict[str, Any]) -> Record:
        record = await self._run(self._create_sync, kind, fields)
        logger.debug("create %s %s", kind, record.record_id)
        return record

    async def fetch(self, record_id: str) -> Record:
        return await self._run(self._fetch_sync, record_id)

    async def save(self, record: Record) -> Record:
        saved = await self._run(self._save_sync, record)
        logger.debug("save %s %s", record.kind, record.record_id)
        return saved

    async def delete(self, record_id: str) -> str:
        deleted = await self._run(self._delete_sync, record_id)
        logger.debug("delete %s", record_id)
        return deleted

    async def query(self, kind: str, predicate: Predicate) -> list[Record]:
        return await self._run(self._query_sync, kind, predicate)
