"""
FeedWeave Thread Aggregation Engine

This package turns the flat, append-only message log of a peer-to-peer
social network into threads and enriched posts. Each layer communicates
only through explicit contracts, never through shared mutable state.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Responsibility: Message, content variants, enriched records, errors
   - Outputs: Frozen dataclasses shared by every other layer
   - MUST NOT: Perform I/O

2. LOG ACCESS LAYER (storage/)
   - Responsibility: One connection to the log, decoded message streams
   - Allowed inputs: IndexQuery, message keys, content to publish
   - Outputs: Message, social values, thread tips
   - MUST NOT: Interpret threads, votes or timestamps

3. QUERY LAYER (query/)
   - Responsibility: Index query configuration, bounded stream collection,
     typed query dispatch with explicit results
   - Allowed inputs: QueryRequest with explicit parameters
   - Outputs: QueryResult with explicit error states
   - MUST NOT: Mutate the log

4. CORE AGGREGATION ENGINE (core/)
   - Responsibility: Ancestor resolution, reply trees, vote tallies,
     popularity ranking, metadata enrichment, reply composition
   - Allowed inputs: Decoded Messages
   - Outputs: EnrichedMessage
   - MUST NOT: Keep state between requests

5. OBSERVABILITY & AUDIT LAYER (observability/)
   - Responsibility: Audit trail and metrics
   - MUST NOT: Modify system behavior

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: Messages and enriched records are frozen
- Bounded reads: Every listing stops after a fixed number of matches
- Explicit errors: Upstream and lookup failures propagate as typed errors
- Local recovery: Undecryptable content, bad timestamps and unknown
  schemas never fail a request
"""

from .config import EngineConfig, LogConfig, QueryConfig, EnrichmentConfig, ObservabilityConfig
from .contracts import *  # noqa: F401,F403
from .contracts import __all__ as _contracts_all
from .storage import InMemoryLogStore, HttpLogClient, LogClient, LogConnection
from .core import PostQueries
from .query.engine import QueryEngine
from .engine import FeedWeaveEngine

__version__ = "0.3.0"

__all__ = [
    'FeedWeaveEngine', 'QueryEngine', 'PostQueries',
    'EngineConfig', 'LogConfig', 'QueryConfig', 'EnrichmentConfig', 'ObservabilityConfig',
    'InMemoryLogStore', 'HttpLogClient', 'LogClient', 'LogConnection',
] + list(_contracts_all)
