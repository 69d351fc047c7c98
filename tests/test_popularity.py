"""
Popularity Ranker Tests

Raw vote volume inside the window, count descending, first-seen order
on ties. Unresolvable targets are dropped, never fatal.
"""

from collections import Counter

import pytest
from hypothesis import given, strategies as st

from feedweave.core import MetadataEnricher, PopularityRanker, count_votes, rank_targets
from feedweave.query import configure, latest_posts
from feedweave.storage import read_messages

from .fixtures import ALICE, BOB, NOW, VIEWER, create_empty_store, fixed_clock, post, vote

HOUR_MS = 60 * 60 * 1000


def ranker_for(store, limit=64):
    return PopularityRanker(store, MetadataEnricher(store, clock=fixed_clock), limit=limit)


def add_votes(store, target, count, start):
    for i in range(count):
        store.add(f"%v-{target}-{start + i}", f"@voter{i}.ed25519", vote(target), timestamp=start + i)


class TestRankTargets:

    def test_count_descending_ties_in_first_seen_order(self):
        counts = Counter()
        for key in ["%t3", "%t1", "%t2", "%t1", "%t2"]:
            counts[key] += 1
        assert rank_targets(counts, 10) == [("%t1", 2), ("%t2", 2), ("%t3", 1)]

    def test_limit(self):
        counts = Counter({"%a": 3, "%b": 2, "%c": 1})
        assert rank_targets(counts, 2) == [("%a", 3), ("%b", 2)]
        assert rank_targets(Counter(), 5) == []


@given(st.lists(st.sampled_from(["%a", "%b", "%c", "%d"]), max_size=30), st.integers(min_value=0, max_value=5))
def test_ranking_is_sorted_and_bounded(links, limit):
    """Ranked counts never increase and never exceed the limit."""
    ranked = rank_targets(Counter(links), limit)
    assert len(ranked) <= limit
    values = [count for _, count in ranked]
    assert values == sorted(values, reverse=True)


class TestRank:

    @pytest.mark.asyncio
    async def test_ordering_by_vote_volume(self):
        store = create_empty_store()
        base = NOW - HOUR_MS
        for key in ("%T1", "%T2", "%T3"):
            store.add(key, ALICE, post(key), timestamp=base - HOUR_MS)
        # Listing is newest first: T3's vote is seen first, then T1's, then T2's.
        add_votes(store, "%T2", 5, base)
        add_votes(store, "%T1", 5, base + 100)
        add_votes(store, "%T3", 1, base + 200)

        result = await ranker_for(store).rank(VIEWER, now_ms=NOW)
        assert [e.key for e in result] == ["%T1", "%T2", "%T3"]

    @pytest.mark.asyncio
    async def test_votes_outside_window_ignored(self):
        store = create_empty_store()
        store.add("%old", ALICE, post("old"), timestamp=NOW - 50 * HOUR_MS)
        store.add("%new", ALICE, post("new"), timestamp=NOW - 50 * HOUR_MS)
        add_votes(store, "%old", 3, NOW - 25 * HOUR_MS)
        add_votes(store, "%new", 1, NOW - HOUR_MS)

        result = await ranker_for(store).rank(VIEWER, now_ms=NOW)
        assert [e.key for e in result] == ["%new"]

    @pytest.mark.asyncio
    async def test_unresolvable_targets_dropped(self):
        store = create_empty_store()
        base = NOW - HOUR_MS
        store.add("%public", ALICE, post("visible"), timestamp=base - 1)
        store.add("%boxed", BOB, "c2VjcmV0.box", timestamp=base - 1)
        store.add("%dm", BOB, post("psst"), timestamp=base - 1, private=True)
        add_votes(store, "%missing", 4, base)
        add_votes(store, "%boxed", 3, base + 100)
        add_votes(store, "%dm", 2, base + 200)
        add_votes(store, "%public", 1, base + 300)

        result = await ranker_for(store).rank(VIEWER, now_ms=NOW)
        assert [e.key for e in result] == ["%public"]

    @pytest.mark.asyncio
    async def test_broken_envelope_target_dropped(self):
        store = create_empty_store()
        base = NOW - HOUR_MS
        store.add("%public", ALICE, post("visible"), timestamp=base - 1)
        store.append({"key": "%authorless", "value": {"timestamp": base - 1, "content": post("?")}, "timestamp": base - 1})
        add_votes(store, "%authorless", 2, base)
        add_votes(store, "%public", 1, base + 100)

        result = await ranker_for(store).rank(VIEWER, now_ms=NOW)
        assert [e.key for e in result] == ["%public"]

    @pytest.mark.asyncio
    async def test_limit_applies_before_resolution(self):
        store = create_empty_store()
        base = NOW - HOUR_MS
        for i, key in enumerate(("%a", "%b", "%c")):
            store.add(key, ALICE, post(key), timestamp=base - 10)
            add_votes(store, key, 3 - i, base + 100 * i)

        result = await ranker_for(store, limit=2).rank(VIEWER, now_ms=NOW)
        assert [e.key for e in result] == ["%a", "%b"]

    @pytest.mark.asyncio
    async def test_no_votes(self):
        assert await ranker_for(create_empty_store()).rank(VIEWER, now_ms=NOW) == []


@pytest.mark.asyncio
async def test_count_votes_counts_repeats():
    store = create_empty_store()
    store.add("%v1", ALICE, vote("%t"))
    store.add("%v2", ALICE, vote("%t"))
    store.add("%p", ALICE, post("not a vote", root="%t"))

    query = configure(latest_posts(), {"content_type": "vote"})
    counts = await count_votes(read_messages(store, query))
    assert counts == Counter({"%t": 2})
