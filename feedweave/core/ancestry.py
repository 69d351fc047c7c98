"""
Ancestor Resolver
=================

Walks a message upward to the root of its thread.

STATE MACHINE (from Start(msg)):
================================
1. Opaque content          -> stop, msg is the best root we can see
2. Not a post              -> stop, msg unchanged
3. Nested reply            -> fetch msg.fork, continue
4. Plain reply             -> fetch msg.root, continue
5. Root                    -> stop, msg is the root
6. Post matching no schema -> stop, msg flagged unknown_provenance

Every transition moves strictly upward. A failed fetch fails the whole
resolution; the walk never silently truncates.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Set
import logging

from ..contracts.base import ThreadCycle
from ..contracts.messages import (
    Message, OpaqueContent, PostContent, PostType, UnknownContent, classify,
)
from ..storage.client import LogClient, fetch_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AncestorResolution:
    root: Message
    hops: int
    unknown_provenance: bool = False


def _claims_post(message: Message) -> bool:
    content = message.content
    if isinstance(content, PostContent):
        return True
    return isinstance(content, UnknownContent) and content.type_name == "post"


class AncestorResolver:
    """Iterative upward walk; one fetch per hop."""

    def __init__(self, client: LogClient):
        self._client = client

    async def resolve(self, message: Message) -> AncestorResolution:
        current = message
        hops = 0
        visited: Set[str] = {message.key}

        while True:
            logger.debug("getting root ancestor of %s", current.key)

            if isinstance(current.content, OpaqueContent):
                logger.debug("private message, stop looking for parents")
                return AncestorResolution(root=current, hops=hops)

            if not _claims_post(current):
                logger.debug("not a post")
                return AncestorResolution(root=current, hops=hops)

            post_type = classify(current.content)
            if post_type is PostType.NESTED_REPLY:
                parent_key = current.content.fork
            elif post_type is PostType.REPLY:
                parent_key = current.content.root
            elif post_type is PostType.ROOT:
                logger.debug("got root ancestor %s", current.key)
                return AncestorResolution(root=current, hops=hops)
            else:
                logger.debug("got mysterious root ancestor that fails all known schemas: %s",
                             current.key)
                return AncestorResolution(root=current, hops=hops, unknown_provenance=True)

            if parent_key in visited:
                raise ThreadCycle(parent_key)
            visited.add(parent_key)

            current = await fetch_message(self._client, parent_key, private=True)
            hops += 1
