"""File helpers for the habitgrid workspace: store.json and settings.yaml."""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml


def read_json(path: Path) -> dict[str, Any]:
    """Read a JSON object, returning an empty dict if the file is missing or blank."""
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    data = json.loads(text)
    return data if isinstance(data, dict) else {}


def read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping, returning an empty dict if missing, empty or not a mapping."""
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    result = yaml.safe_load(text)
    return result if isinstance(result, dict) else {}


def _replace_file(path: Path, content: str) -> None:
    """Write ``content`` beside ``path`` and swap it in with ``os.replace``.

    The record store and settings.yaml are rewritten whole on every change;
    a crash mid-write leaves the previous version in place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, staged = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    staged_path = Path(staged)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            fcntl.flock(handle, fcntl.LOCK_EX)
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(staged_path, path)
    except BaseException:
        staged_path.unlink(missing_ok=True)
        raise


def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Persist a JSON document (the record store file)."""
    _replace_file(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def write_yaml_atomic(path: Path, data: dict[str, Any]) -> None:
    """Persist a YAML mapping (settings.yaml), keeping key order."""
    _replace_file(path, yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False))
