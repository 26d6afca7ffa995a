# services/errors.py
"""
Error taxonomy for the buddy core.

Only ValidationError and StorageError ever reach callers. Backend errors are
resolved into fallback replies inside the orchestrator, and CompactionError is
logged and retried on the next append.
"""
from __future__ import annotations


class BuddyError(Exception):
    """Base class for every error raised by the buddy core."""


class ValidationError(BuddyError):
    """Rejected input. Raised before any state is mutated."""


class BuddyNotFound(ValidationError):
    def __init__(self, buddy_id) -> None:
        super().__init__(f"Buddy not found: {buddy_id}")
        self.buddy_id = buddy_id


class StorageError(BuddyError):
    """A persistence read or write failed."""


class CompactionError(BuddyError):
    """Summarising or persisting a compaction pass failed."""


class BackendError(BuddyError):
    def __init__(self, backend: str, detail: str) -> None:
        super().__init__(f"{backend}: {detail}")
        self.backend = backend
        self.detail = detail


class BackendUnavailable(BackendError):
    """Backend refused, returned non-2xx, or sent a malformed payload."""


class BackendTimeout(BackendError):
    """Backend did not answer within the allotted time."""
