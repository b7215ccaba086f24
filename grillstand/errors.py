"""Error taxonomy shared by the ledger, persistence and sync layers."""

from __future__ import annotations


class GrillError(Exception):
    """Base class for errors reported to the operator."""


class ValidationError(GrillError, ValueError):
    """Bad or missing input; raised before any mutation."""


class NotFoundError(GrillError, LookupError):
    """A referenced table, account, batch or menu item no longer exists."""


class PersistenceError(GrillError):
    """The durable store could not be written or read."""


class SyncError(GrillError):
    """The remote backend could not be reached or rejected a request."""
