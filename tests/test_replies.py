"""
Reply Tree Builder Tests

Every reply sits directly under the message it answers, and the
flattened thread is pre-order.
"""

import pytest

from feedweave.core import ROOT_DEPTH, ReplyTreeBuilder, is_reply_to
from feedweave.storage import fetch_message

from .fixtures import (
    ALICE, BOB, CAROL, NESTED_Z, REPLY_Y, ROOT_X,
    create_empty_store, create_thread_store, post,
)


class TestIsReplyTo:

    @pytest.mark.asyncio
    async def test_nested_reply_belongs_to_its_fork(self):
        store = create_thread_store()
        nested = await fetch_message(store, NESTED_Z)
        assert is_reply_to(nested, REPLY_Y)
        assert not is_reply_to(nested, ROOT_X)

    @pytest.mark.asyncio
    async def test_plain_reply_belongs_to_root(self):
        store = create_thread_store()
        reply = await fetch_message(store, REPLY_Y)
        assert is_reply_to(reply, ROOT_X)

    @pytest.mark.asyncio
    async def test_mention_is_not_a_reply(self):
        store = create_empty_store()
        store.add("%m", ALICE, post("see", mentions=[{"link": ROOT_X}]))
        mention = await fetch_message(store, "%m")
        assert not is_reply_to(mention, ROOT_X)


class TestThreadOf:

    @pytest.mark.asyncio
    async def test_depths_follow_direct_parents(self):
        store = create_thread_store()
        root = await fetch_message(store, ROOT_X)
        nodes = await ReplyTreeBuilder(store).thread_of(root)

        assert [(n.message.key, n.depth, n.parent_key) for n in nodes] == [
            (REPLY_Y, ROOT_DEPTH + 1, ROOT_X),
            (NESTED_Z, ROOT_DEPTH + 2, REPLY_Y),
        ]

    @pytest.mark.asyncio
    async def test_preorder_keeps_subtrees_together(self):
        store = create_empty_store()
        store.add("%r", ALICE, post("root"), timestamp=1)
        store.add("%a", BOB, post("a", root="%r"), timestamp=2)
        store.add("%b", CAROL, post("b", root="%r"), timestamp=3)
        store.add("%a1", CAROL, post("a1", root="%r", fork="%a"), timestamp=4)
        store.add("%b1", BOB, post("b1", root="%r", fork="%b"), timestamp=5)
        store.add("%a2", BOB, post("a2", root="%r", fork="%a1"), timestamp=6)

        root = await fetch_message(store, "%r")
        nodes = await ReplyTreeBuilder(store, max_concurrency=2).thread_of(root)

        assert [(n.message.key, n.depth) for n in nodes] == [
            ("%a", 1), ("%a1", 2), ("%a2", 3), ("%b", 1), ("%b1", 2),
        ]

    @pytest.mark.asyncio
    async def test_root_without_replies(self):
        store = create_empty_store()
        store.add("%lonely", ALICE, post("anyone?"))
        root = await fetch_message(store, "%lonely")
        assert await ReplyTreeBuilder(store).thread_of(root) == []

    @pytest.mark.asyncio
    async def test_graph_arena_holds_root(self):
        store = create_thread_store()
        root = await fetch_message(store, ROOT_X)
        graph = await ReplyTreeBuilder(store).build(root)
        assert graph.nodes[ROOT_X]["depth"] == ROOT_DEPTH
        assert set(graph.successors(ROOT_X)) == {REPLY_Y}
        assert set(graph.successors(REPLY_Y)) == {NESTED_Z}
