"""
Reply Tree Builder
==================

Collects a message's full reply forest and flattens it pre-order.

STRUCTURE:
==========
- Discovery is a level-by-level work queue, not recursion: each level's
  lookups run concurrently, and depth is bounded only by the thread
- Nodes live in a networkx DiGraph arena (parent -> reply edges);
  adjacency keeps index order, so siblings stay in assertion order
- Flattening is an iterative DFS pre-order: every node is immediately
  followed by its complete subtree

DEPTH:
======
The root is depth 0; its direct replies are depth 1; each level adds 1.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List
import logging

import networkx as nx

from ..contracts.messages import Message, PostContent, direct_parent
from ..query.adapter import backlinks
from ..storage.client import LogClient, read_messages
from .fanout import bounded_map

logger = logging.getLogger(__name__)

ROOT_DEPTH = 0


@dataclass(frozen=True)
class ThreadNode:
    """A reply placed in a flattened thread."""
    message: Message
    depth: int
    parent_key: str


def is_reply_to(message: Message, key: str) -> bool:
    """
    True when `message` answers `key` directly.

    A post that names `key` as its thread root but forks from another
    message is a reply to a reply: it belongs one level deeper.
    """
    content = message.content
    if not isinstance(content, PostContent):
        return False
    if content.root != key and content.fork != key:
        # mention
        return False
    return direct_parent(content) == key


class ReplyTreeBuilder:

    def __init__(self, client: LogClient, max_concurrency: int = 16):
        self._client = client
        self._max_concurrency = max_concurrency

    async def replies_to(self, key: str) -> List[Message]:
        """Direct replies to `key`, oldest first."""
        replies = [
            message async for message in read_messages(self._client, backlinks(key))
            if is_reply_to(message, key)
        ]
        logger.debug("found %s replies for %s", len(replies), key)
        return replies

    async def build(self, root: Message) -> nx.DiGraph:
        """Discover every reply below `root` into a graph arena."""
        graph = nx.DiGraph()
        graph.add_node(root.key, message=root, depth=ROOT_DEPTH)
        frontier = [root.key]

        while frontier:
            levels = await bounded_map(self.replies_to, frontier, self._max_concurrency)
            next_frontier = []
            for parent_key, replies in zip(frontier, levels):
                depth = graph.nodes[parent_key]["depth"] + 1
                for reply in replies:
                    if reply.key in graph:
                        continue
                    graph.add_node(reply.key, message=reply, depth=depth)
                    graph.add_edge(parent_key, reply.key)
                    next_frontier.append(reply.key)
            frontier = next_frontier

        return graph

    async def thread_of(self, root: Message) -> List[ThreadNode]:
        """All replies below `root`, flattened pre-order (root excluded)."""
        graph = await self.build(root)
        nodes = []
        for key in nx.dfs_preorder_nodes(graph, source=root.key):
            if key == root.key:
                continue
            data = graph.nodes[key]
            parent_key = next(iter(graph.predecessors(key)))
            nodes.append(ThreadNode(message=data["message"], depth=data["depth"], parent_key=parent_key))
        return nodes
