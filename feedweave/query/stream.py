"""
Stream Filter/Limiter

Consumes an ordered, possibly unbounded async sequence of Messages and
returns a finite ordered prefix of the ones that match.

GUARANTEES:
===========
1. Original relative order is preserved
2. At most `limit` messages; fewer when fewer match
3. The source is not read past the limit-th match
4. Any error from the source propagates; no partial result is returned
"""

from __future__ import annotations
from typing import AsyncIterable, Callable, List, Optional, Tuple, Type, Union

from ..contracts.messages import Content, Message

MAX_MESSAGES = 64

Predicate = Callable[[Message], bool]


async def take_matching(
    source: AsyncIterable[Message],
    kind: Union[Type[Content], Tuple[Type[Content], ...]],
    predicate: Optional[Predicate] = None,
    limit: int = MAX_MESSAGES
) -> List[Message]:
    """
    Collect up to `limit` messages whose content is of `kind` and which
    pass `predicate`. Opaque content never matches a structured kind.
    """
    collected: List[Message] = []
    if limit <= 0:
        return collected
    async for message in source:
        if not isinstance(message.content, kind):
            continue
        if predicate is not None and not predicate(message):
            continue
        collected.append(message)
        if len(collected) >= limit:
            break
    return collected


def not_authored_by(feed_id: str) -> Predicate:
    """Predicate that drops messages written by `feed_id`."""
    return lambda message: message.author != feed_id


def unique_by(key: Callable[[Message], str]) -> Predicate:
    """Stateful predicate keeping only the first message per key."""
    seen = set()

    def first_seen(message: Message) -> bool:
        k = key(message)
        if k in seen:
            return False
        seen.add(k)
        return True

    return first_seen
