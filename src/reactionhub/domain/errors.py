"""Reaction domain errors."""

from __future__ import annotations

from typing import Optional


class ReactionHubError(Exception):
    """Base class for every error raised by the reaction core."""


class ValidationError(ReactionHubError):
    """Malformed id, unregistered kind or missing required field."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(ReactionHubError):
    """A referenced entity does not exist in its owning store."""


class ConflictError(ReactionHubError):
    """Uniqueness violation on (user_id, entity_kind, entity_id)."""


class StoreUnavailableError(ReactionHubError):
    """The ledger's own database cannot be reached."""


class ContentStoreUnavailableError(StoreUnavailableError):
    """A content store failed or timed out while the core needed an answer from it."""


class PartialDegradationWarning(UserWarning):
    """One adapter failed during fan-out; the operation continued without it."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason
