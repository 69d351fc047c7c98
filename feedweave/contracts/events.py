"""
Query and Observability Contracts

Immutable request/result types for the query layer, plus the audit and
metric records collected by the observability layer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple

from .base import ErrorCode, Timestamp


# =============================================================================
# QUERY LAYER CONTRACTS
# =============================================================================

class QueryType(Enum):
    """Explicit query types."""
    BY_FEED = "by_feed"
    BY_HASHTAG = "by_hashtag"
    MENTIONS_OF = "mentions_of"
    LATEST_POSTS = "latest_posts"
    POPULAR_POSTS = "popular_posts"
    LIKES_BY_FEED = "likes_by_feed"
    INBOX_FOR = "inbox_for"
    THREAD_OF = "thread_of"
    SINGLE_MESSAGE = "single_message"


@dataclass(frozen=True)
class QueryRequest:
    """
    Immutable query request.

    `target` is the feed id, hashtag or message key the query is about;
    queries that act on the viewer (mentions, inbox) or on the whole log
    (latest, popular) leave it empty. `overrides` win over the index query
    defaults on key collision.
    """
    query_id: str
    query_type: QueryType
    target: Optional[str] = None
    overrides: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class QueryError:
    """Explicit query error with full context."""
    error_code: ErrorCode
    message: str
    query_id: str
    timestamp: Timestamp


@dataclass(frozen=True)
class QueryResult:
    """
    IMMUTABLE query result.

    Contains explicit success/failure state, never implicit.
    Empty results are distinct from errors.
    """
    query_id: str
    query_type: QueryType
    success: bool
    result_count: int
    results: Tuple[object, ...]
    error: Optional[QueryError] = None
    execution_time_ms: float = 0.0

    @staticmethod
    def of(query_id: str, query_type: QueryType, results: Tuple[object, ...],
           execution_time_ms: float) -> QueryResult:
        return QueryResult(
            query_id=query_id,
            query_type=query_type,
            success=True,
            result_count=len(results),
            results=results,
            execution_time_ms=execution_time_ms
        )

    @staticmethod
    def failed(query_id: str, query_type: QueryType, error: QueryError,
               execution_time_ms: float = 0.0) -> QueryResult:
        """Create a failed result with explicit error."""
        return QueryResult(
            query_id=query_id,
            query_type=query_type,
            success=False,
            result_count=0,
            results=(),
            error=error,
            execution_time_ms=execution_time_ms
        )


# =============================================================================
# OBSERVABILITY LAYER CONTRACTS
# =============================================================================

class AuditEventType(Enum):
    """Explicit audit event types."""
    QUERY = "query"
    PUBLISH = "publish"
    ERROR = "error"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str  # Which layer generated this
    action: str
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
