from __future__ import annotations

import os
import secrets
from datetime import date, timedelta
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from habitgrid import (
    AccountUnavailable,
    FieldDecodeError,
    Habit,
    HabitTracker,
    NotFound,
    Result,
    load_settings,
    setup_logging,
)
from habitgrid.widgets import WIDGET_NAMES, build_timeline

app = FastAPI(title="habitgrid", version="0.1.0")

security = HTTPBasic(auto_error=False)

setup_logging(load_settings().log_level)


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("HABITGRID_USERNAME", "")
    expected_password = os.environ.get("HABITGRID_PASSWORD", "")

    if not expected_username or not expected_password:
        return "guest"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


def get_tracker() -> HabitTracker:
    """A fresh tracker per request, over the configured store."""
    return HabitTracker.from_settings(load_settings())


# ── Helpers ───────────────────────────────────────────────────


def _raise_for(result: Result) -> None:
    """Map a failed tracker Result onto an HTTP error."""
    if result.ok:
        return
    err = result.error
    if isinstance(err, ValueError):
        raise HTTPException(status_code=400, detail=str(err))
    if isinstance(err, AccountUnavailable):
        raise HTTPException(status_code=503, detail=str(err))
    if isinstance(err, NotFound):
        raise HTTPException(status_code=404, detail=str(err))
    if isinstance(err, FieldDecodeError):
        raise HTTPException(status_code=500, detail=str(err))
    raise HTTPException(status_code=502, detail=str(err))


async def _load(tracker: HabitTracker) -> None:
    _raise_for(await tracker.refresh())


def _find(tracker: HabitTracker, habit_id: str) -> Habit:
    habit = tracker.find_habit(habit_id)
    if habit is None:
        raise HTTPException(status_code=404, detail=f"Habit not found: {habit_id}")
    return habit


def _habit_view(tracker: HabitTracker, habit: Habit) -> dict[str, Any]:
    today = tracker.today()
    return {
        **habit.to_dict(),
        "currentStreak": tracker.current_streak(habit, today),
        "longestStreak": tracker.longest_streak(habit),
        "totalDays": tracker.completion_count(habit),
        "grid": tracker.calendar_grid(habit, today=today),
        "completions": [d.isoformat() for d in tracker.completions_in_window(habit, today=today)],
    }


# ── Endpoints ─────────────────────────────────────────────────


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.get("/api/habits")
async def api_list_habits(
    username: str = Depends(get_current_user),
    tracker: HabitTracker = Depends(get_tracker),
) -> dict[str, Any]:
    """Every habit with streaks and its display-window grid."""
    await _load(tracker)
    return {
        "today": tracker.today().isoformat(),
        "habits": [_habit_view(tracker, h) for h in tracker.habits],
    }


@app.post("/api/habits")
async def api_create_habit(
    payload: dict[str, Any] = Body(...),
    username: str = Depends(get_current_user),
    tracker: HabitTracker = Depends(get_tracker),
) -> dict[str, Any]:
    result = await tracker.add_habit(
        payload.get("name", ""),
        payload.get("displayDays", 28),
        payload.get("colorTag", "green"),
    )
    _raise_for(result)
    return {"ok": True, "habit": result.value.to_dict()}


@app.put("/api/habits/{habit_id}")
async def api_rename_habit(
    habit_id: str,
    payload: dict[str, Any] = Body(...),
    username: str = Depends(get_current_user),
    tracker: HabitTracker = Depends(get_tracker),
) -> dict[str, Any]:
    _raise_for(await tracker.fetch_habits())
    habit = _find(tracker, habit_id)
    result = await tracker.update_habit(habit, payload.get("name", ""))
    _raise_for(result)
    return {"ok": True, "habit": result.value.to_dict()}


@app.delete("/api/habits/{habit_id}")
async def api_delete_habit(
    habit_id: str,
    username: str = Depends(get_current_user),
    tracker: HabitTracker = Depends(get_tracker),
) -> dict[str, Any]:
    _raise_for(await tracker.fetch_habits())
    habit = _find(tracker, habit_id)
    result = await tracker.delete_habit(habit)
    _raise_for(result)
    return {"ok": True, "outcome": result.value.to_dict()}


@app.post("/api/habits/{habit_id}/mark")
async def api_mark_habit(
    habit_id: str,
    payload: dict[str, Any] = Body(default={}),
    username: str = Depends(get_current_user),
    tracker: HabitTracker = Depends(get_tracker),
) -> dict[str, Any]:
    """Mark a habit done for ``day`` (ISO date, default today)."""
    day = None
    if payload.get("day"):
        try:
            day = date.fromisoformat(str(payload["day"]))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid day: {payload['day']}")
    _raise_for(await tracker.fetch_habits())
    habit = _find(tracker, habit_id)
    result = await tracker.mark(habit, day)
    _raise_for(result)
    return {"ok": True, "record": result.value.to_dict()}


@app.get("/api/widgets/{name}")
async def api_widget(name: str, username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Widget timeline entry: days-left, streak, progress, or counts."""
    if name not in WIDGET_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown widget: {name}")
    settings = load_settings()
    timeline = await build_timeline(
        name,
        lambda: HabitTracker.from_settings(settings),
        refresh=timedelta(minutes=settings.refresh_minutes),
    )
    return timeline.to_dict()
