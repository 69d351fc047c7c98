"""
Contracts Module

This module defines the explicit data types that form the contracts
between layers. All inter-layer communication MUST use these contracts.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Message content is a closed set of variants, resolved once at decode
3. Enrichment is a separate record, never written into message content
4. All timestamps use UTC and are never mutated
"""

from .base import (
    ErrorCode, Error, FeedWeaveError, UpstreamUnavailable, NotFound,
    InvalidQuery, InvalidReply, ThreadCycle, Timestamp, TimeRange,
)
from .messages import (
    PostContent, VoteContent, OpaqueContent, UnknownContent, Content,
    Message, PostType, classify, direct_parent, thread_root_key,
    decode_content, decode_message,
)
from .enriched import (
    Renderer, RichText, Avatar, AuthorMeta, TimestampMeta, ThreadPosition,
    MessageMeta, EnrichedMessage,
)
from .events import (
    QueryType, QueryRequest, QueryError, QueryResult,
    AuditEventType, AuditLogEntry, MetricPoint,
)

__all__ = [
    'ErrorCode', 'Error', 'FeedWeaveError', 'UpstreamUnavailable', 'NotFound',
    'InvalidQuery', 'InvalidReply', 'ThreadCycle', 'Timestamp', 'TimeRange',
    'PostContent', 'VoteContent', 'OpaqueContent', 'UnknownContent', 'Content',
    'Message', 'PostType', 'classify', 'direct_parent', 'thread_root_key',
    'decode_content', 'decode_message',
    'Renderer', 'RichText', 'Avatar', 'AuthorMeta', 'TimestampMeta',
    'ThreadPosition', 'MessageMeta', 'EnrichedMessage',
    'QueryType', 'QueryRequest', 'QueryError', 'QueryResult',
    'AuditEventType', 'AuditLogEntry', 'MetricPoint',
]
