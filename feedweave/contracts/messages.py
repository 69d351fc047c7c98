"""
Message Contracts
=================

Immutable representation of raw log messages.

A raw message arrives as a JSON mapping:

    {
        "key": "%...sha256",
        "timestamp": <received, epoch ms>,
        "value": {
            "author": "@...ed25519",
            "timestamp": <claimed, epoch ms>,
            "content": {...} | "<ciphertext>",
            "meta": {"private": true}          # only on decrypted messages
        }
    }

Content is resolved ONCE, at decode time, into a closed set of variants.
Every later step dispatches on the variant type and never probes shapes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any, Mapping, Optional, Tuple, Union


# =============================================================================
# CONTENT VARIANTS
# =============================================================================

@dataclass(frozen=True)
class PostContent:
    """A post; `root` names the thread, `fork` the replied-to message."""
    text: str = ""
    root: Optional[str] = None
    fork: Optional[str] = None
    mentions: Tuple[Any, ...] = field(default_factory=tuple)
    channel: Optional[str] = None
    branch: Tuple[str, ...] = field(default_factory=tuple)

    type_name = "post"


@dataclass(frozen=True)
class VoteContent:
    """A vote on `link`; only a value of exactly 1 counts as liked."""
    link: str
    value: float
    expression: Optional[str] = None

    type_name = "vote"


@dataclass(frozen=True)
class OpaqueContent:
    """Content we cannot decrypt. Never inspect further."""
    ciphertext: str

    type_name = None


@dataclass(frozen=True)
class UnknownContent:
    """Structured content whose schema we do not recognize."""
    type_name: Optional[str]
    fields: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    def get(self, name: str, default: Any = None) -> Any:
        for key, value in self.fields:
            if key == name:
                return value
        return default


Content = Union[PostContent, VoteContent, OpaqueContent, UnknownContent]


@dataclass(frozen=True)
class Message:
    """
    Immutable log message.

    Externally owned: the engine never mutates a Message, it only derives
    enrichment records that travel alongside it.
    """
    key: str
    author: str
    content: Content
    claimed_timestamp: Optional[float] = None
    received_timestamp: Optional[float] = None
    private: bool = False

    @property
    def is_opaque(self) -> bool:
        return isinstance(self.content, OpaqueContent)


# =============================================================================
# CLASSIFICATION
# =============================================================================

class PostType(Enum):
    """Thread position of a message, with the label shown next to it."""
    ROOT = "posted"
    REPLY = "replied to thread"
    NESTED_REPLY = "replied to message"
    MYSTERIOUS = "published a mysterious message"

    @property
    def label(self) -> str:
        return self.value


def classify(content: Content) -> PostType:
    """
    Classify content into exactly one thread position.

    - root: a post with neither `root` nor `fork`
    - reply: a post with `root` and no `fork` that differs from it
    - nested reply: a post whose `fork` differs from its `root`
    - anything else is mysterious
    """
    if not isinstance(content, PostContent):
        return PostType.MYSTERIOUS
    if content.root is None and content.fork is None:
        return PostType.ROOT
    if content.root is not None and (content.fork is None or content.fork == content.root):
        return PostType.REPLY
    if content.root is not None and content.fork is not None:
        return PostType.NESTED_REPLY
    return PostType.MYSTERIOUS


def direct_parent(content: Content) -> Optional[str]:
    """Key of the message this post answers, or None for roots."""
    post_type = classify(content)
    if post_type is PostType.NESTED_REPLY:
        return content.fork
    if post_type is PostType.REPLY:
        return content.root
    return None


def thread_root_key(message: Message) -> str:
    """Key of the thread a message belongs to (its own key for roots)."""
    content = message.content
    if isinstance(content, PostContent) and content.root is not None:
        return content.root
    return message.key


# =============================================================================
# DECODING
# =============================================================================

def _number(value: Any) -> Optional[float]:
    # bool is a Real subclass; the log never means it as a number
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    return value


def _optional_str(value: Any) -> Tuple[bool, Optional[str]]:
    """(well_formed, value) for fields that must be a string when present."""
    if value is None:
        return True, None
    if isinstance(value, str):
        return True, value
    return False, None


def _as_tuple(value: Any) -> Tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _unknown(content: Mapping[str, Any]) -> UnknownContent:
    type_name = content.get("type")
    return UnknownContent(
        type_name=type_name if isinstance(type_name, str) else None,
        fields=tuple(content.items())
    )


def decode_content(content: Any) -> Content:
    """Resolve raw content into its variant."""
    if isinstance(content, str):
        return OpaqueContent(ciphertext=content)
    if not isinstance(content, Mapping):
        return UnknownContent(type_name=None, fields=(("value", content),))

    content_type = content.get("type")

    if content_type == "post":
        root_ok, root = _optional_str(content.get("root"))
        fork_ok, fork = _optional_str(content.get("fork"))
        text = content.get("text", "")
        if not (root_ok and fork_ok) or not isinstance(text, str):
            return _unknown(content)
        channel = content.get("channel")
        return PostContent(
            text=text,
            root=root,
            fork=fork,
            mentions=_as_tuple(content.get("mentions")),
            channel=channel if isinstance(channel, str) else None,
            branch=tuple(b for b in _as_tuple(content.get("branch")) if isinstance(b, str))
        )

    if content_type == "vote":
        vote = content.get("vote")
        if isinstance(vote, Mapping) and isinstance(vote.get("link"), str):
            value = _number(vote.get("value"))
            if value is not None:
                expression = vote.get("expression")
                return VoteContent(
                    link=vote["link"],
                    value=value,
                    expression=expression if isinstance(expression, str) else None
                )
        return _unknown(content)

    return _unknown(content)


def decode_message(raw: Mapping[str, Any]) -> Message:
    """
    Decode one raw log entry.

    Raises ValueError only when the envelope itself (key, author) is missing;
    content problems are always absorbed into OpaqueContent/UnknownContent.
    """
    value = raw.get("value")
    if not isinstance(value, Mapping):
        raise ValueError(f"message {raw.get('key')!r} has no value envelope")
    key = raw.get("key")
    author = value.get("author")
    if not isinstance(key, str) or not isinstance(author, str):
        raise ValueError(f"message {key!r} is missing key or author")

    meta = value.get("meta")
    private = bool(meta.get("private")) if isinstance(meta, Mapping) else False

    return Message(
        key=key,
        author=author,
        content=decode_content(value.get("content")),
        claimed_timestamp=_number(value.get("timestamp")),
        received_timestamp=_number(raw.get("timestamp")),
        private=private
    )
