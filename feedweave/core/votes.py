"""
Vote Tally
==========

Deduplicates per-voter vote references into a liked-by set.

RULES:
- Only VoteContent linking to the target with a non-negative value counts
- Each author's LAST vote in index order wins (index order = recency)
- An author is in the liked-by set iff that last value is exactly 1
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from ..contracts.messages import Message, VoteContent


@dataclass(frozen=True)
class VoteTally:
    target: str
    liked_by: Tuple[str, ...]
    voted: bool

    @property
    def count(self) -> int:
        return len(self.liked_by)


def latest_votes(references: Iterable[Message], target: str) -> Dict[str, float]:
    """author -> value of the author's most recent vote on `target`."""
    latest: Dict[str, float] = {}
    for ref in references:
        content = ref.content
        if not isinstance(content, VoteContent):
            continue
        if content.link != target or content.value < 0:
            continue
        latest[ref.author] = content.value
    return latest


def tally_votes(
    references: Iterable[Message],
    target: str,
    viewer_id: Optional[str] = None
) -> VoteTally:
    """
    Reduce backlink references to a tally for `target`.

    liked_by keeps the order in which authors first voted, so identical
    input always yields an identical tally.
    """
    liked_by = tuple(
        author for author, value in latest_votes(references, target).items()
        if value == 1
    )
    return VoteTally(
        target=target,
        liked_by=liked_by,
        voted=viewer_id is not None and viewer_id in liked_by
    )
