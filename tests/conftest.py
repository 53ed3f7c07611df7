"""Shared test fixtures for habitgrid tests."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path

import pytest
import yaml

from habitgrid.account import AccountStatus, static_account
from habitgrid.adapter import RemoteStoreAdapter
from habitgrid.store import InMemoryRecordStore
from habitgrid.tracker import HabitTracker


TODAY = date(2026, 2, 11)


class FlakyStore(InMemoryRecordStore):
    """In-memory store with per-operation failure injection and pre-call hooks.

    ``failures[op]`` is raised instead of running ``op``; ``before[op]`` is
    called with the operation's arguments before it runs.
    """

    def __init__(self) -> None:
        super().__init__()
        self.failures: dict[str, Exception] = {}
        self.before: dict[str, object] = {}
        self.calls: list[str] = []

    def _enter(self, op: str, *args) -> None:
        self.calls.append(op)
        hook = self.before.get(op)
        if hook is not None:
            hook(*args)
        error = self.failures.get(op)
        if error is not None:
            raise error

    async def create(self, kind, fields):
        self._enter("create", kind, fields)
        return await super().create(kind, fields)

    async def fetch(self, record_id):
        self._enter("fetch", record_id)
        return await super().fetch(record_id)

    async def save(self, record):
        self._enter("save", record)
        return await super().save(record)

    async def delete(self, record_id):
        self._enter("delete", record_id)
        return await super().delete(record_id)

    async def query(self, kind, predicate):
        self._enter("query", kind, predicate)
        return await super().query(kind, predicate)


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def tracker(store: FlakyStore) -> HabitTracker:
    """Tracker over the flaky in-memory store with today pinned to TODAY."""
    return HabitTracker(
        RemoteStoreAdapter(store),
        account=static_account(AccountStatus.AVAILABLE),
        clock=lambda: TODAY,
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with settings.yaml and an empty store."""
    root = tmp_path / "workspace"
    root.mkdir(parents=True)

    settings = {
        "timezone": "UTC",
        "store_path": "store.json",
        "log_level": "DEBUG",
        "account": "available",
        "refresh_minutes": 60,
    }
    (root / "settings.yaml").write_text(
        yaml.dump(settings, default_flow_style=False), encoding="utf-8"
    )

    # Set env var
    os.environ["HABITGRID_ROOT"] = str(root)
    yield root
    # Cleanup
    if "HABITGRID_ROOT" in os.environ:
        del os.environ["HABITGRID_ROOT"]
