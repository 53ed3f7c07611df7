"""Workspace root, settings, timezone and path helpers for habitgrid."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from habitgrid.fileio import read_yaml, write_yaml_atomic


DEFAULT_REFRESH_MINUTES = 60


def workspace_root() -> Path:
    """Get the workspace root directory (holds settings.yaml and the local store)."""
    return Path(
        os.environ.get("HABITGRID_ROOT", str(Path.home() / "habitgrid"))
    ).expanduser().resolve()


def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "settings.yaml"


@dataclass
class Settings:
    timezone: str = "UTC"
    store_path: Path | None = None
    log_level: str = "INFO"
    account: str = "available"
    refresh_minutes: int = DEFAULT_REFRESH_MINUTES

    @classmethod
    def from_dict(cls, d: dict[str, Any], root: Path) -> Settings:
        if not d or not isinstance(d, dict):
            d = {}
        store = d.get("store_path")
        store_path = Path(str(store)).expanduser() if store else root / "store.json"
        if not store_path.is_absolute():
            store_path = root / store_path
        try:
            refresh = int(d.get("refresh_minutes", DEFAULT_REFRESH_MINUTES))
        except (TypeError, ValueError):
            refresh = DEFAULT_REFRESH_MINUTES
        return cls(
            timezone=str(d.get("timezone", "UTC")),
            store_path=store_path,
            log_level=str(
                os.environ.get("HABITGRID_LOG_LEVEL") or d.get("log_level", "INFO")
            ).upper(),
            account=str(d.get("account", "available")).strip().lower(),
            refresh_minutes=max(1, refresh),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "timezone": self.timezone,
            "log_level": self.log_level,
            "account": self.account,
            "refresh_minutes": self.refresh_minutes,
        }
        if self.store_path is not None:
            d["store_path"] = str(self.store_path)
        return d

    def zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return ZoneInfo("UTC")


def load_settings(root: Path | None = None) -> Settings:
    """Load settings.yaml; a missing or unreadable file yields defaults."""
    if root is None:
        root = workspace_root()
    try:
        data = read_yaml(settings_path(root))
    except (OSError, yaml.YAMLError):
        data = {}
    return Settings.from_dict(data, root)


def init_workspace(root: Path | None = None) -> Settings:
    """Create the workspace directory and a default settings.yaml if absent."""
    if root is None:
        root = workspace_root()
    root.mkdir(parents=True, exist_ok=True)
    path = settings_path(root)
    if not path.exists():
        write_yaml_atomic(path, Settings(store_path=root / "store.json").to_dict())
    return load_settings(root)
