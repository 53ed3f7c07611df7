"""Error taxonomy for remote store operations."""

from __future__ import annotations

from typing import Any


class StoreError(Exception):
    """Base class for failures reported by the record store or its adapter."""

    kind = "store_error"

    def __init__(self, message: str = "", record_id: str | None = None) -> None:
        super().__init__(message or self.kind)
        self.record_id = record_id


class NotFound(StoreError):
    """The referenced record does not exist (e.g. deleted remotely)."""

    kind = "not_found"


class Transient(StoreError):
    """Network or availability failure. Never retried automatically."""

    kind = "transient"


class FieldDecodeError(StoreError):
    """A fetched record is missing an expected field or has the wrong type."""

    kind = "field_decode"

    def __init__(self, message: str = "", record_id: str | None = None, field: str = "") -> None:
        super().__init__(message, record_id)
        self.field = field


class AccountUnavailable(StoreError):
    """No usable account; remote calls are skipped entirely."""

    kind = "account_unavailable"

    def __init__(self, status: Any) -> None:
        super().__init__(f"account unavailable: {getattr(status, 'value', status)}")
        self.status = status
