"""
Core Aggregation Engine

RESPONSIBILITY: Turn flat message streams into threads and enriched posts
ALLOWED INPUTS: Decoded Messages from the log access layer
OUTPUTS: EnrichedMessage records

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate messages it reads
- Keep state between requests
- Treat undecryptable content, invalid timestamps or unknown schemas
  as errors (they are recovered locally)
"""

from .votes import VoteTally, latest_votes, tally_votes
from .ancestry import AncestorResolution, AncestorResolver
from .replies import ROOT_DEPTH, ThreadNode, ReplyTreeBuilder, is_reply_to
from .enrichment import MetadataEnricher, format_since, resolve_timestamp, to_iso8601
from .popularity import PopularityRanker, count_votes, rank_targets
from .posts import PostQueries

__all__ = [
    'VoteTally', 'latest_votes', 'tally_votes',
    'AncestorResolution', 'AncestorResolver',
    'ROOT_DEPTH', 'ThreadNode', 'ReplyTreeBuilder', 'is_reply_to',
    'MetadataEnricher', 'format_since', 'resolve_timestamp', 'to_iso8601',
    'PopularityRanker', 'count_votes', 'rank_targets',
    'PostQueries',
]
