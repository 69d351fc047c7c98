"""
Query & Analysis Interfaces

RESPONSIBILITY: Read-only access to threads, feeds and vote tallies
ALLOWED INPUTS: QueryRequest with explicit parameters
OUTPUTS: QueryResult with explicit success/failure state

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate the log
- Cache anything between requests
- Hide failures: every error becomes a failed QueryResult
"""

from .adapter import (
    IndexSource, IndexQuery, LISTING_DEFAULTS, configure,
    by_feed, by_hashtag, mentions_of, latest_posts, popular_votes,
    likes_by_feed, inbox_for, single_message, backlinks,
)
from .stream import MAX_MESSAGES, take_matching, not_authored_by, unique_by

__all__ = [
    'IndexSource', 'IndexQuery', 'LISTING_DEFAULTS', 'configure',
    'by_feed', 'by_hashtag', 'mentions_of', 'latest_posts', 'popular_votes',
    'likes_by_feed', 'inbox_for', 'single_message', 'backlinks',
    'MAX_MESSAGES', 'take_matching', 'not_authored_by', 'unique_by',
]
