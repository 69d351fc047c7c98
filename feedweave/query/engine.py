"""
Query Engine

Dispatches typed QueryRequests to handlers and wraps every outcome in an
explicit QueryResult.

BOUNDARY ENFORCEMENT:
- ONLY performs read operations
- Returns explicit success/failure for all queries
- No retries, no silent fallbacks
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
import hashlib
import itertools
import logging
import time

from ..contracts.base import Error, ErrorCode, FeedWeaveError, InvalidQuery, Timestamp
from ..contracts.events import (
    AuditEventType, QueryError, QueryRequest, QueryResult, QueryType,
)
from ..core.posts import PostQueries
from ..observability import ObservabilityEngine

logger = logging.getLogger(__name__)


# =============================================================================
# QUERY HANDLERS (Single Responsibility)
# =============================================================================

class QueryHandler:
    """Base class for query handlers."""

    @property
    def query_type(self) -> QueryType:
        raise NotImplementedError

    async def handle(self, request: QueryRequest, posts: PostQueries) -> Tuple[object, ...]:
        raise NotImplementedError


class PostQueryHandler(QueryHandler):
    """
    Handler delegating to one PostQueries operation.

    `target` is one of REQUIRED, OPTIONAL or NONE: requests missing a
    required target are rejected before any I/O, and targets given to
    operations that take none are ignored.
    """

    REQUIRED = "required"
    OPTIONAL = "optional"
    NONE = "none"

    def __init__(
        self,
        query_type: QueryType,
        operation: Callable[..., Awaitable[Any]],
        target: str
    ):
        self._query_type = query_type
        self._operation = operation
        self._target = target

    @property
    def query_type(self) -> QueryType:
        return self._query_type

    async def handle(self, request: QueryRequest, posts: PostQueries) -> Tuple[object, ...]:
        overrides = dict(request.overrides)
        if self._target == self.REQUIRED and not request.target:
            raise InvalidQuery(f"target is required for {self._query_type.value} queries")
        if self._target != self.NONE and request.target:
            outcome = await self._operation(posts, request.target, overrides=overrides)
        else:
            outcome = await self._operation(posts, overrides=overrides)
        if isinstance(outcome, list):
            return tuple(outcome)
        return (outcome,)


DEFAULT_HANDLERS = (
    PostQueryHandler(QueryType.BY_FEED, PostQueries.by_feed, PostQueryHandler.REQUIRED),
    PostQueryHandler(QueryType.BY_HASHTAG, PostQueries.by_hashtag, PostQueryHandler.REQUIRED),
    PostQueryHandler(QueryType.MENTIONS_OF, PostQueries.mentions_of, PostQueryHandler.OPTIONAL),
    PostQueryHandler(QueryType.LATEST_POSTS, PostQueries.latest_posts, PostQueryHandler.NONE),
    PostQueryHandler(QueryType.POPULAR_POSTS, PostQueries.popular_posts, PostQueryHandler.NONE),
    PostQueryHandler(QueryType.LIKES_BY_FEED, PostQueries.likes_by_feed, PostQueryHandler.REQUIRED),
    PostQueryHandler(QueryType.INBOX_FOR, PostQueries.inbox_for, PostQueryHandler.OPTIONAL),
    PostQueryHandler(QueryType.THREAD_OF, PostQueries.thread_of, PostQueryHandler.REQUIRED),
    PostQueryHandler(QueryType.SINGLE_MESSAGE, PostQueries.single_message, PostQueryHandler.REQUIRED),
)


# =============================================================================
# QUERY ENGINE
# =============================================================================

class QueryEngine:
    """
    Query Engine.

    Every execution appends a query audit entry and a timing metric;
    failures additionally count under query_failures_total.
    """

    def __init__(
        self,
        posts: PostQueries,
        observability: Optional[ObservabilityEngine] = None
    ):
        self._posts = posts
        self._observability = observability or ObservabilityEngine()
        self._handlers: Dict[QueryType, QueryHandler] = {}
        self._query_counter = itertools.count(1)

        for handler in DEFAULT_HANDLERS:
            self.register_handler(handler)

    def register_handler(self, handler: QueryHandler):
        """Register a query handler."""
        self._handlers[handler.query_type] = handler

    def new_request(
        self,
        query_type: QueryType,
        target: Optional[str] = None,
        **overrides: Any
    ) -> QueryRequest:
        return QueryRequest(
            query_id=self._generate_query_id(query_type.value),
            query_type=query_type,
            target=target,
            overrides=tuple(sorted(overrides.items()))
        )

    async def execute(self, request: QueryRequest) -> QueryResult:
        """
        Execute a query request.

        Returns QueryResult with explicit success/failure status.
        """
        start_time = time.perf_counter()
        handler = self._handlers.get(request.query_type)
        error: Optional[Error] = None

        if not handler:
            error = Error(
                code=ErrorCode.UNSUPPORTED_QUERY,
                message=f"No handler registered for query type: {request.query_type}",
                timestamp=Timestamp.now().value
            )
        else:
            try:
                results = await handler.handle(request, self._posts)
            except FeedWeaveError as e:
                logger.debug("query %s failed: %s", request.query_id, e)
                error = e.to_error()
            except Exception as e:
                logger.exception("query %s raised unexpectedly", request.query_id)
                error = Error(
                    code=ErrorCode.STRUCTURAL_INCONSISTENCY,
                    message=f"Query execution failed: {e}",
                    timestamp=Timestamp.now().value
                ).with_context("exception", type(e).__name__)

        if error is None:
            result = QueryResult.of(
                request.query_id,
                request.query_type,
                results,
                (time.perf_counter() - start_time) * 1000
            )
            self._record(request, result)
        else:
            result = self._failed(request, error, start_time)
            self._record(request, result, error.context)
        return result

    def _failed(self, request: QueryRequest, error: Error, start_time: float) -> QueryResult:
        return QueryResult.failed(
            query_id=request.query_id,
            query_type=request.query_type,
            error=QueryError(
                error_code=error.code,
                message=error.message,
                query_id=request.query_id,
                timestamp=Timestamp(error.timestamp)
            ),
            execution_time_ms=(time.perf_counter() - start_time) * 1000
        )

    def _record(
        self,
        request: QueryRequest,
        result: QueryResult,
        error_context: Tuple[Tuple[str, str], ...] = ()
    ):
        labels = {"query_type": request.query_type.value}
        self._observability.log_audit(
            action="query_executed",
            entity_id=request.query_id,
            event_type=AuditEventType.QUERY if result.success else AuditEventType.ERROR,
            layer="query",
            metadata=(
                ("query_type", request.query_type.value),
                ("target", request.target or ""),
                ("success", str(result.success)),
                ("result_count", str(result.result_count)),
                ("execution_time_ms", f"{result.execution_time_ms:.2f}"),
            ) + tuple((f"error.{key}", value) for key, value in error_context)
        )
        self._observability.collect_metric("query_execution_time_ms", result.execution_time_ms, labels)
        if result.success:
            self._observability.collect_metric("messages_enriched_total", result.result_count, labels)
        else:
            self._observability.collect_metric(
                "query_failures_total", 1,
                {**labels, "error_code": result.error.error_code.name}
            )

    def _generate_query_id(self, prefix: str) -> str:
        content = f"{prefix}|{next(self._query_counter)}|{Timestamp.now().value.timestamp()}"
        hash_val = hashlib.sha256(content.encode()).hexdigest()[:12]
        return f"qry_{prefix}_{hash_val}"

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability
