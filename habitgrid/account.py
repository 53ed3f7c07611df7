"""Account status precondition checked before any sync with the remote store."""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable


class AccountStatus(str, Enum):
    AVAILABLE = "available"
    NO_ACCOUNT = "no_account"
    RESTRICTED = "restricted"
    COULD_NOT_DETERMINE = "could_not_determine"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"

    @classmethod
    def parse(cls, value: str) -> AccountStatus:
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.COULD_NOT_DETERMINE

    @property
    def usable(self) -> bool:
        return self is AccountStatus.AVAILABLE


AccountChecker = Callable[[], Awaitable[AccountStatus]]


def static_account(status: AccountStatus | str = AccountStatus.AVAILABLE) -> AccountChecker:
    """An account checker that always reports the same status."""
    fixed = status if isinstance(status, AccountStatus) else AccountStatus.parse(status)

    async def check() -> AccountStatus:
        return fixed

    return check
