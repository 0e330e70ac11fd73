"""Account exceptions."""

from __future__ import annotations


class AccountError(Exception):
    """Base class for account errors."""


class AccountAlreadyExistsError(AccountError):
    """``field`` (username or phone) is already taken by another account."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"{field.capitalize()} already registered: {value}")
        self.field = field
        self.value = value


class AccountNotFoundError(AccountError):
    pass
