"""
Metadata Enricher Tests

Raw messages in, self-contained enriched records out.
Local problems (bad timestamps, missing avatars, unknown schemas)
never fail a request.
"""

from datetime import datetime, timezone
from urllib.parse import quote

import pytest

from feedweave.config import NULL_IMAGE, EnrichmentConfig
from feedweave.contracts import PostType, ThreadPosition
from feedweave.core import MetadataEnricher, format_since, to_iso8601
from feedweave.storage import fetch_message

from .fixtures import (
    ALICE, BOB, NESTED_Z, REPLY_Y, ROOT_X, T1, VIEWER,
    create_empty_store, create_thread_store, fixed_clock, post,
)


def enricher_for(store, **config):
    return MetadataEnricher(store, EnrichmentConfig(**config), clock=fixed_clock)


async def enrich_key(store, key, viewer=VIEWER):
    message = await fetch_message(store, key)
    [enriched] = await enricher_for(store).enrich([message], viewer)
    return enriched


class TestEnrichShape:

    @pytest.mark.asyncio
    async def test_none_passes_through(self):
        store = create_thread_store()
        message = await fetch_message(store, ROOT_X)
        result = await enricher_for(store).enrich([None, message, None], VIEWER)
        assert result[0] is None
        assert result[1].key == ROOT_X
        assert result[2] is None

    @pytest.mark.asyncio
    async def test_order_and_cardinality_preserved(self):
        store = create_thread_store()
        keys = [NESTED_Z, ROOT_X, REPLY_Y]
        messages = [await fetch_message(store, key) for key in keys]
        result = await enricher_for(store, max_concurrency=1).enrich(messages, VIEWER)
        assert [e.key for e in result] == keys

    @pytest.mark.asyncio
    async def test_raw_message_untouched(self):
        store = create_thread_store()
        message = await fetch_message(store, ROOT_X)
        [enriched] = await enricher_for(store).enrich([message], VIEWER)
        assert enriched.message is message

    @pytest.mark.asyncio
    async def test_thread_positions_attached_by_key(self):
        store = create_thread_store()
        message = await fetch_message(store, REPLY_Y)
        position = ThreadPosition(depth=1, is_reply=True)
        [enriched] = await enricher_for(store).enrich([message], VIEWER, {REPLY_Y: position})
        assert enriched.meta.thread == position


class TestVotes:

    @pytest.mark.asyncio
    async def test_viewer_like_is_reported(self):
        enriched = await enrich_key(create_thread_store(), REPLY_Y)
        assert enriched.meta.votes == (VIEWER,)
        assert enriched.meta.voted is True

    @pytest.mark.asyncio
    async def test_other_viewer_did_not_vote(self):
        enriched = await enrich_key(create_thread_store(), REPLY_Y, viewer=BOB)
        assert enriched.meta.voted is False

    @pytest.mark.asyncio
    async def test_no_votes(self):
        enriched = await enrich_key(create_thread_store(), ROOT_X)
        assert enriched.meta.votes == ()
        assert enriched.meta.voted is False


class TestAuthor:

    @pytest.mark.asyncio
    async def test_name_resolved(self):
        enriched = await enrich_key(create_thread_store(), ROOT_X)
        assert enriched.meta.author.name == "alice"

    @pytest.mark.asyncio
    async def test_missing_avatar_uses_null_image(self):
        enriched = await enrich_key(create_thread_store(), ROOT_X)
        avatar = enriched.meta.author.avatar
        assert avatar.id == NULL_IMAGE
        assert avatar.url == "/image/32/" + quote(NULL_IMAGE, safe="")

    @pytest.mark.asyncio
    async def test_avatar_from_link_object(self):
        store = create_thread_store()
        store.set_about(ALICE, "image", {"link": "&face.sha256", "size": 1024})
        enriched = await enrich_key(store, ROOT_X)
        assert enriched.meta.author.avatar.id == "&face.sha256"
        assert enriched.meta.author.avatar.url == "/image/32/%26face.sha256"

    @pytest.mark.asyncio
    async def test_avatar_from_plain_value(self):
        store = create_thread_store()
        store.set_about(ALICE, "image", "&plain.sha256")
        enriched = await enrich_key(store, ROOT_X)
        assert enriched.meta.author.avatar.id == "&plain.sha256"

    @pytest.mark.asyncio
    async def test_unnamed_author(self):
        enriched = await enrich_key(create_thread_store(), REPLY_Y)
        assert enriched.meta.author.name is None


class TestTimestamp:

    @pytest.mark.asyncio
    async def test_claimed_time(self):
        enriched = await enrich_key(create_thread_store(), ROOT_X)
        assert enriched.meta.timestamp.iso8601 == "2026-01-01T10:00:00.000Z"
        assert enriched.meta.timestamp.since == "20m"

    @pytest.mark.asyncio
    async def test_invalid_claimed_time_falls_back_to_received(self):
        store = create_empty_store()
        store.add("%late", ALICE, post("x"), timestamp="not a time", received=T1)
        enriched = await enrich_key(store, "%late")
        assert enriched.meta.timestamp.iso8601 == "2026-01-01T10:00:00.000Z"

    @pytest.mark.asyncio
    async def test_out_of_range_claimed_time_falls_back(self):
        store = create_empty_store()
        store.add("%far", ALICE, post("x"), timestamp=1e30, received=T1)
        enriched = await enrich_key(store, "%far")
        assert enriched.meta.timestamp.iso8601 == "2026-01-01T10:00:00.000Z"

    @pytest.mark.asyncio
    async def test_no_valid_time_at_all(self):
        store = create_empty_store()
        store.append({
            "key": "%timeless",
            "timestamp": "never",
            "value": {"author": ALICE, "timestamp": None, "content": post("x")},
        })
        enriched = await enrich_key(store, "%timeless")
        assert enriched.meta.timestamp.iso8601 == ""
        assert enriched.meta.timestamp.since == ""

    def test_iso_millisecond_precision(self):
        moment = datetime(2026, 3, 4, 5, 6, 7, 891234, tzinfo=timezone.utc)
        assert to_iso8601(moment) == "2026-03-04T05:06:07.891Z"

    def test_ancient_years_are_zero_padded(self):
        moment = datetime(42, 1, 2, 3, 4, 5, 6000, tzinfo=timezone.utc)
        assert to_iso8601(moment) == "0042-01-02T03:04:05.006Z"


class TestFormatSince:

    def test_largest_unit_only(self):
        assert format_since(0) == "0ms"
        assert format_since(999) == "999ms"
        assert format_since(1000) == "1s"
        assert format_since(5 * 60 * 1000 + 30 * 1000) == "5m"
        assert format_since(3 * 60 * 60 * 1000) == "3h"
        assert format_since(2 * 24 * 60 * 60 * 1000 + 1) == "2d"
        assert format_since(400 * 24 * 60 * 60 * 1000) == "1y"

    def test_future_time(self):
        assert format_since(-5000) == "-5s"


class TestBodyAndType:

    @pytest.mark.asyncio
    async def test_post_type_labels(self):
        store = create_thread_store()
        labels = [
            (await enrich_key(store, key)).meta.post_type
            for key in (ROOT_X, REPLY_Y, NESTED_Z)
        ]
        assert labels == [PostType.ROOT, PostType.REPLY, PostType.NESTED_REPLY]

    @pytest.mark.asyncio
    async def test_body_is_deferred(self):
        store = create_empty_store()
        store.add("%m", ALICE, post("hi @bob", mentions=[{"link": BOB, "name": "bob"}]))
        enriched = await enrich_key(store, "%m")
        body = enriched.meta.body
        assert body.text == "hi @bob"
        assert body.mentions == ({"link": BOB, "name": "bob"},)

        calls = []

        def renderer(text, mentions):
            calls.append((text, mentions))
            return f"<p>{text}</p>"

        assert calls == []
        assert body.render(renderer) == "<p>hi @bob</p>"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_opaque_message_has_no_body(self):
        store = create_empty_store()
        store.add("%secret", ALICE, "c2VjcmV0.box")
        enriched = await enrich_key(store, "%secret")
        assert enriched.meta.body is None
        assert enriched.meta.post_type is PostType.MYSTERIOUS
