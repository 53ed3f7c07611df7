"""Habit tracker engine: owns the habit/record cache and derives statistics.

The cache mirrors confirmed remote state. It is only mutated after the
remote store confirms an operation, and only from coroutines running on the
event loop that first used the tracker. Remote I/O may happen elsewhere
(e.g. in worker threads), but results are awaited back onto the owning loop
before the cache changes.

Every public async operation returns a ``Result``; store failures never
escape as exceptions. Observers registered with ``subscribe`` are told about
each cache mutation.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Any, Awaitable, Callable

from habitgrid import streaks
from habitgrid.account import AccountChecker, AccountStatus, static_account
from habitgrid.adapter import RemoteStoreAdapter
from habitgrid.errors import AccountUnavailable, NotFound, StoreError, Transient
from habitgrid.models import (
    DEFAULT_COLOR,
    DEFAULT_DISPLAY_DAYS,
    CompletionRecord,
    DeleteOutcome,
    Habit,
    HabitStats,
    Result,
    validate_habit,
)
from habitgrid.store import JsonFileRecordStore, RecordStore
from habitgrid.workspace import Settings, load_settings

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING_HABITS = "fetching_habits"
    FETCHING_RECORDS = "fetching_records"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class CacheChange:
    collection: str  # habits, records, state
    action: str  # append, replace, remove, reorder, update


Observer = Callable[[CacheChange], None]


class HabitTracker:
    """Single-writer cache of habits and completion records."""

    def __init__(
        self,
        adapter: RemoteStoreAdapter,
        account: AccountChecker | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.adapter = adapter
        self._account = account or static_account(AccountStatus.AVAILABLE)
        self._clock = clock
        self._habits: list[Habit] = []
        self._records: list[CompletionRecord] = []
        self._observers: list[Observer] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self.state = SyncState.IDLE
        self.last_error: Exception | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None, store: RecordStore | None = None) -> HabitTracker:
        """Build a tracker over the configured local store and account status."""
        if settings is None:
            settings = load_settings()
        tz = settings.zone()
        if store is None:
            store = JsonFileRecordStore(settings.store_path)
        return cls(
            RemoteStoreAdapter(store, tz=tz),
            account=static_account(settings.account),
            clock=lambda: datetime.now(tz).date(),
        )

    # ── Read-only views ───────────────────────────────────────

    @property
    def habits(self) -> tuple[Habit, ...]:
        return tuple(self._habits)

    @property
    def records(self) -> tuple[CompletionRecord, ...]:
        return tuple(self._records)

    @property
    def tz(self) -> tzinfo | None:
        return self.adapter.tz

    def today(self) -> date:
        if self._clock is not None:
            return self._clock()
        if self.tz is not None:
            return datetime.now(self.tz).date()
        return date.today()

    def find_habit(self, habit_id: str) -> Habit | None:
        for h in self._habits:
            if h.id == habit_id:
                return h
        return None

    # ── Observers ─────────────────────────────────────────────

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register for cache change notifications. Returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, collection: str, action: str) -> None:
        change = CacheChange(collection, action)
        for observer in list(self._observers):
            try:
                observer(change)
            except Exception:
                logger.exception("Observer %r failed on %s", observer, change)

    def _set_state(self, state: SyncState) -> None:
        if state is not self.state:
            logger.info("Sync state %s -> %s", self.state.value, state.value)
            self.state = state
            self._notify("state", "update")

    # ── Remote call plumbing ──────────────────────────────────

    def _bind_loop(self) -> None:
        """Pin the cache to the first event loop that uses it."""
        loop = asyncio.get_running_loop()
        if self._loop is None:
            self._loop = loop
        elif self._loop is not loop:
            raise RuntimeError("HabitTracker cache is owned by a different event loop")

    async def _check_account(self) -> AccountUnavailable | None:
        try:
            status = await self._account()
        except Exception:
            logger.exception("Account status check failed")
            status = AccountStatus.COULD_NOT_DETERMINE
        if not isinstance(status, AccountStatus):
            status = AccountStatus.parse(status)
        if status.usable:
            return None
        logger.warning("Skipping remote call: account status is %s", status.value)
        return AccountUnavailable(status)

    async def _remote(self, awaitable: Awaitable[Any]) -> Any:
        """Await a store call; any non-store failure counts as transient."""
        try:
            return await awaitable
        except StoreError:
            raise
        except Exception as e:
            raise Transient(str(e) or type(e).__name__) from e

    def _fail(self, operation: str, error: Exception) -> Result:
        logger.warning("%s failed (%s): %s", operation, getattr(error, "kind", "error"), error)
        self.last_error = error
        return Result.failure(error)

    async def _preflight(self, operation: str) -> Result | None:
        self._bind_loop()
        unavailable = await self._check_account()
        if unavailable is not None:
            return self._fail(operation, unavailable)
        return None

    # ── CRUD ──────────────────────────────────────────────────

    async def add_habit(
        self,
        name: str,
        display_days: int = DEFAULT_DISPLAY_DAYS,
        color_tag: Any = DEFAULT_COLOR,
    ) -> Result:
        """Create a habit remotely; on success append it to the cache."""
        errors = validate_habit(name, display_days)
        if errors:
            return Result.failure(ValueError("; ".join(errors)))
        failed = await self._preflight("add_habit")
        if failed:
            return failed
        try:
            habit = await self._remote(self.adapter.create_habit(name, display_days, color_tag))
        except StoreError as e:
            return self._fail("add_habit", e)
        self._habits.append(habit)
        logger.info("Added habit %s (%s)", habit.id, habit.name)
        self._notify("habits", "append")
        return Result.success(habit)

    async def mark(self, habit: Habit, day: date | datetime | None = None, completed: bool = True) -> Result:
        """Record a completion for ``day`` (default today). Duplicates are allowed."""
        target = streaks.normalize_day(day, self.tz) if day is not None else self.today()
        failed = await self._preflight("mark")
        if failed:
            return failed
        try:
            record = await self._remote(
                self.adapter.create_completion(habit.id, target, completed)
            )
        except StoreError as e:
            return self._fail("mark", e)
        self._records.append(record)
        logger.info("Marked habit %s on %s (completed=%s)", habit.id, target, completed)
        self._notify("records", "append")
        return Result.success(record)

    async def fetch_habits(self) -> Result:
        """Replace the habit cache with every habit in the store."""
        failed = await self._preflight("fetch_habits")
        if failed:
            return failed
        try:
            habits = await self._remote(self.adapter.query_habits())
        except StoreError as e:
            return self._fail("fetch_habits", e)
        self._habits = list(habits)
        logger.debug("Fetched %d habits", len(habits))
        self._notify("habits", "replace")
        return Result.success(list(habits))

    async def fetch_records_for_habit(self, habit: Habit) -> Result:
        """Replace the record cache with this habit's records only.

        Records of every other habit are dropped from the cache; use
        ``fetch_all_records`` when the full set is needed.
        """
        failed = await self._preflight("fetch_records_for_habit")
        if failed:
            return failed
        try:
            records = await self._remote(self.adapter.query_completions(habit.id))
        except StoreError as e:
            return self._fail("fetch_records_for_habit", e)
        self._records = list(records)
        logger.debug("Fetched %d records for habit %s", len(records), habit.id)
        self._notify("records", "replace")
        return Result.success(list(records))

    async def fetch_all_records(self) -> Result:
        """Replace the record cache with every completion record in the store."""
        failed = await self._preflight("fetch_all_records")
        if failed:
            return failed
        try:
            records = await self._remote(self.adapter.query_completions())
        except StoreError as e:
            return self._fail("fetch_all_records", e)
        self._records = list(records)
        logger.debug("Fetched %d records", len(records))
        self._notify("records", "replace")
        return Result.success(list(records))

    async def refresh(self) -> Result:
        """Fetch habits, then (only once that succeeded) all records."""
        self._set_state(SyncState.FETCHING_HABITS)
        habits = await self.fetch_habits()
        if not habits.ok:
            self._set_state(SyncState.FAILED)
            return habits
        self._set_state(SyncState.FETCHING_RECORDS)
        records = await self.fetch_all_records()
        if not records.ok:
            self._set_state(SyncState.FAILED)
            return records
        self.last_error = None
        self._set_state(SyncState.READY)
        return Result.success((habits.value, records.value))

    async def update_habit(self, habit: Habit, new_name: str) -> Result:
        """Rename a habit with a fetch-then-save round trip.

        The cached entry is replaced with the previously cached value carrying
        the new name; other fields are not re-read from the store.
        """
        errors = validate_habit(new_name)
        if errors:
            return Result.failure(ValueError("; ".join(errors)))
        failed = await self._preflight("update_habit")
        if failed:
            return failed
        try:
            record = await self._remote(self.adapter.fetch(habit.id))
            record.fields["name"] = new_name
            await self._remote(self.adapter.save(record))
        except StoreError as e:
            return self._fail("update_habit", e)
        for i, cached in enumerate(self._habits):
            if cached.id == habit.id:
                updated = dataclasses.replace(cached, name=new_name)
                self._habits[i] = updated
                logger.info("Renamed habit %s to %s", habit.id, new_name)
                self._notify("habits", "update")
                return Result.success(updated)
        logger.info("Renamed habit %s (not cached) to %s", habit.id, new_name)
        return Result.success(dataclasses.replace(habit, name=new_name))

    async def delete_habit(self, habit: Habit) -> Result:
        """Delete a habit, then cascade to its completion records.

        The two remote steps are not transactional. The cache drops the habit
        and its records as soon as the habit deletion is confirmed; the
        returned DeleteOutcome reports what the cascade managed to remove.
        """
        failed = await self._preflight("delete_habit")
        if failed:
            return failed
        try:
            await self._remote(self.adapter.delete(habit.id))
        except StoreError as e:
            return self._fail("delete_habit", e)

        outcome = DeleteOutcome(habit_id=habit.id, habit_deleted=True)
        self._habits = [h for h in self._habits if h.id != habit.id]
        self._records = [r for r in self._records if r.habit_id != habit.id]
        logger.info("Deleted habit %s", habit.id)
        self._notify("habits", "remove")
        self._notify("records", "remove")

        try:
            record_ids = await self._remote(self.adapter.query_completion_ids(habit.id))
        except StoreError as e:
            outcome.cascade_error = e
            logger.warning("Completion records of habit %s may be orphaned: %s", habit.id, e)
            return Result.success(outcome)
        for record_id in record_ids:
            try:
                await self._remote(self.adapter.delete(record_id))
            except NotFound:
                outcome.records_deleted += 1
            except StoreError as e:
                outcome.records_failed.append(record_id)
                logger.warning("Failed to delete completion record %s: %s", record_id, e)
            else:
                outcome.records_deleted += 1
        if outcome.orphaned:
            logger.warning(
                "Habit %s deleted with %d orphaned completion records",
                habit.id,
                len(outcome.records_failed),
            )
        return Result.success(outcome)

    def move_habit(self, from_index: int, to_index: int) -> bool:
        """Reorder the cached habit list. Local only; never sent to the store."""
        if not (0 <= from_index < len(self._habits) and 0 <= to_index < len(self._habits)):
            return False
        if from_index == to_index:
            return True
        habit = self._habits.pop(from_index)
        self._habits.insert(to_index, habit)
        self._notify("habits", "reorder")
        return True

    # ── Derived statistics ────────────────────────────────────

    def completion_dates(self, habit: Habit) -> set[date]:
        """Distinct days on which the habit was completed, per the cache."""
        return {
            streaks.normalize_day(r.day, self.tz)
            for r in self._records
            if r.habit_id == habit.id and r.completed
        }

    def current_streak(self, habit: Habit, today: date | None = None) -> int:
        return streaks.current_streak(self.completion_dates(habit), today or self.today())

    def longest_streak(self, habit: Habit) -> int:
        return streaks.longest_streak(self.completion_dates(habit))

    def completion_count(self, habit: Habit) -> int:
        return len(self.completion_dates(habit))

    def calendar_grid(self, habit: Habit, window: int | None = None, today: date | None = None) -> list[bool]:
        """Completion flags for the habit's display window (oldest first)."""
        return streaks.calendar_grid(
            self.completion_dates(habit),
            window if window is not None else habit.display_days,
            today or self.today(),
        )

    def completions_in_window(self, habit: Habit, window: int | None = None, today: date | None = None) -> list[date]:
        return streaks.completions_in_window(
            self.completion_dates(habit),
            window if window is not None else habit.display_days,
            today or self.today(),
        )

    def streak_runs(self, habit: Habit) -> list[dict[str, Any]]:
        return streaks.streak_runs(self.completion_dates(habit))

    def stats(self, today: date | None = None) -> list[HabitStats]:
        """Per-habit streak summary in cache order."""
        today = today or self.today()
        out = []
        for habit in self._habits:
            dates = self.completion_dates(habit)
            out.append(
                HabitStats(
                    habit=habit,
                    current_streak=streaks.current_streak(dates, today),
                    longest_streak=streaks.longest_streak(dates),
                    total_days=len(dates),
                )
            )
        return out
