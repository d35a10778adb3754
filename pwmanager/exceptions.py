"""Failures raised by the directory layer.

Legitimately absent data (no challenge, no pwdLastSet, no password policy)
is returned as ``None`` and never raised.
"""
from __future__ import annotations


class DirectoryError(Exception):
    """Base class for every directory-layer failure."""


class EntryNotFound(DirectoryError):
    def __init__(self, username: str, base: str) -> None:
        super().__init__(f"Couldn't find {username} in {base}")
        self.username = username
        self.base = base


class AmbiguousEntry(DirectoryError):
    def __init__(self, username: str, base: str, count: int) -> None:
        super().__init__(f"Multiple results ({count}) found for {username} in {base}")
        self.username = username
        self.base = base
        self.count = count


class DirectoryUnavailable(DirectoryError):
    """Transport failure or the service account could not bind."""


class DirectoryOperationError(DirectoryError):
    """The directory answered but rejected the request."""

    def __init__(self, message: str, result: dict | None = None) -> None:
        super().__init__(message)
        self.result = dict(result or {})


class ConfigurationError(DirectoryError):
    """Static setup problem: mismatched attribute lists, bad encoding, unknown type."""
