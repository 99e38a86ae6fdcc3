"""
Exception hierarchy for the migration.

Source reads raise :class:`FetchError` subclasses, destination writes raise
:class:`CreationError`, and the ledger raises :class:`LedgerError`. The
collector and migrator decide how far each one propagates (one post, one
topic, or the whole run).
"""

from __future__ import annotations

from typing import Optional


class MigrationError(Exception):
    """Base class for every error raised by the migration."""


class FetchError(MigrationError):
    """Reading from Zendesk failed."""


class TransportError(FetchError):
    """Network failure or non-success HTTP status from Zendesk."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(FetchError):
    """Zendesk answered, but the body could not be decoded or is inconsistent."""


class MissingAuthorError(MigrationError):
    """A record has no resolvable author and no default user is configured."""


class CreationError(MigrationError):
    """Canny rejected a record, or the request to create it failed."""


class LedgerError(MigrationError):
    """The migration ledger could not be loaded or saved."""
