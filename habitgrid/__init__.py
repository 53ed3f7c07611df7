"""habitgrid core library — habit data layer and streak engine.

Public API re-exports for convenient imports:
    from habitgrid import HabitTracker, current_streak, load_settings, ...
"""

# Workspace & settings
from habitgrid.workspace import (
    Settings,
    workspace_root,
    settings_path,
    load_settings,
    init_workspace,
)

# Logging
from habitgrid.logconfig import setup_logging

# Errors
from habitgrid.errors import (
    StoreError,
    NotFound,
    Transient,
    FieldDecodeError,
    AccountUnavailable,
)

# Models
from habitgrid.models import (
    ColorTag,
    Habit,
    CompletionRecord,
    Result,
    DeleteOutcome,
    HabitStats,
    validate_habit,
)

# Record store
from habitgrid.store import (
    Record,
    Reference,
    Predicate,
    RecordStore,
    InMemoryRecordStore,
    JsonFileRecordStore,
)

# Adapter
from habitgrid.adapter import (
    HABIT_KIND,
    COMPLETION_KIND,
    RemoteStoreAdapter,
    decode_habit,
    decode_completion,
    decode_batch,
)

# Streaks
from habitgrid.streaks import (
    normalize_day,
    current_streak,
    longest_streak,
    streak_runs,
    calendar_grid,
    completions_in_window,
    days_left_in_year,
)

# Account
from habitgrid.account import AccountStatus, static_account

# Tracker
from habitgrid.tracker import HabitTracker, SyncState, CacheChange
