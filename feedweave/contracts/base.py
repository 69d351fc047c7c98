"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- Errors are raised as typed exceptions carrying an explicit ErrorCode,
  and can be converted to immutable Error records for audit trails
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    No silent fallbacks - every error state is enumerated.
    """
    # Log / connection errors
    UPSTREAM_UNAVAILABLE = auto()
    MESSAGE_NOT_FOUND = auto()

    # Query errors
    INVALID_QUERY = auto()
    UNSUPPORTED_QUERY = auto()

    # Thread errors
    THREAD_CYCLE = auto()
    STRUCTURAL_INCONSISTENCY = auto()

    # Write path errors
    INVALID_REPLY = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


class FeedWeaveError(Exception):
    """Base exception; every subclass pins its ErrorCode."""

    code = ErrorCode.STRUCTURAL_INCONSISTENCY

    def __init__(self, message: str, **context: str):
        super().__init__(message)
        self.message = message
        self.context = tuple((k, str(v)) for k, v in sorted(context.items()))

    def to_error(self) -> Error:
        return Error(
            code=self.code,
            message=self.message,
            timestamp=datetime.now(timezone.utc),
            context=self.context
        )


class UpstreamUnavailable(FeedWeaveError):
    """The log could not be reached or a read failed mid-stream."""
    code = ErrorCode.UPSTREAM_UNAVAILABLE


class NotFound(FeedWeaveError):
    """A single-message lookup named a key the log does not hold."""
    code = ErrorCode.MESSAGE_NOT_FOUND

    def __init__(self, key: str):
        super().__init__(f"message not found: {key}", key=key)
        self.key = key


class InvalidQuery(FeedWeaveError):
    code = ErrorCode.INVALID_QUERY


class InvalidReply(FeedWeaveError):
    code = ErrorCode.INVALID_REPLY


class ThreadCycle(FeedWeaveError):
    code = ErrorCode.THREAD_CYCLE

    def __init__(self, key: str):
        super().__init__(f"ancestor walk revisited {key}", key=key)
        self.key = key


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))


@dataclass(frozen=True)
class TimeRange:
    """Immutable time range for filtering audit entries and metrics."""
    start: Timestamp
    end: Timestamp

    def __post_init__(self):
        if self.start.value > self.end.value:
            raise ValueError("TimeRange start must be before or equal to end")

    def contains(self, timestamp: Timestamp) -> bool:
        return self.start.value <= timestamp.value <= self.end.value
