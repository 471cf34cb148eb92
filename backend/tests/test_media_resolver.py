"""
Tests for media resolution: image hash batching, video sources and previews.
"""
import asyncio

import pytest

from creativesync.services.creatives.media_resolver import (
    MediaResolver,
    pick_image_url,
    pick_largest_thumbnail,
)
from creativesync.services.meta_graph_client import MetaAPIError

from conftest import FakeGraphClient, permission_error


def _image(image_hash, **urls):
    return {"hash": image_hash, "width": 1080, "height": 1080, **urls}


class TestPickImageUrl:
    """Tests for image URL preference."""

    def test_permalink_preferred(self):
        image = {"url": "u", "url_128": "u128", "permalink_url": "perma"}
        assert pick_image_url(image) == "perma"

    def test_url_128_before_url(self):
        assert pick_image_url({"url": "u", "url_128": "u128"}) == "u128"

    def test_url_last(self):
        assert pick_image_url({"url": "u"}) == "u"

    def test_nothing_usable(self):
        assert pick_image_url({"hash": "h1", "url": ""}) is None


class TestPickLargestThumbnail:
    """Tests for video thumbnail selection."""

    def test_largest_by_area(self):
        video = {
            "picture": "default.jpg",
            "thumbnails": {"data": [
                {"uri": "small.jpg", "width": 128, "height": 72},
                {"uri": "large.jpg", "width": 1280, "height": 720},
                {"uri": "medium.jpg", "width": 640, "height": 360},
            ]},
        }
        assert pick_largest_thumbnail(video) == "large.jpg"

    def test_falls_back_to_picture(self):
        assert pick_largest_thumbnail({"picture": "default.jpg"}) == "default.jpg"

    def test_no_thumbnail(self):
        assert pick_largest_thumbnail({}) is None


class TestResolveImageHashes:
    """Tests for batched hash resolution."""

    def test_one_call_per_chunk_and_input_order(self, settings):
        client = FakeGraphClient(images={
            "h1": _image("h1", url="u1"),
            "h2": _image("h2", permalink_url="p2"),
        })
        resolver = MediaResolver(client, "act_1", settings=settings)

        result = asyncio.run(resolver.resolve_image_hashes(["h2", "h1", "h2"]))

        assert [image.hash for image in result] == ["h2", "h1"]
        assert [image.url for image in result] == ["p2", "u1"]
        assert client.calls_to("fetch_image_batch") == [("fetch_image_batch", ("h2", "h1"))]

    def test_never_invents_hashes(self, settings):
        """Extra or unknown entries in the response are ignored."""
        client = FakeGraphClient(images={"h1": _image("h1", url="u1")})

        async def noisy_batch(ad_account_id, hashes, fields):
            client.calls.append(("fetch_image_batch", tuple(hashes)))
            return [_image("h1", url="u1"), _image("zzz", url="uz"), {"url": "no-hash"}, "junk"]

        client.fetch_image_batch = noisy_batch
        resolver = MediaResolver(client, "act_1", settings=settings)

        result = asyncio.run(resolver.resolve_image_hashes(["h1", "h2", "h3"]))

        assert len(result) <= 3
        assert {image.hash for image in result} <= {"h1", "h2", "h3"}
        assert [image.hash for image in result] == ["h1"]

    def test_chunks_by_batch_size(self, settings):
        settings.meta_image_hash_batch_size = 2
        hashes = [f"h{i}" for i in range(5)]
        client = FakeGraphClient(images={h: _image(h, url=f"u-{h}") for h in hashes})
        resolver = MediaResolver(client, "act_1", settings=settings)

        result = asyncio.run(resolver.resolve_image_hashes(hashes))

        assert [image.hash for image in result] == hashes
        assert [call[1] for call in client.calls_to("fetch_image_batch")] == [
            ("h0", "h1"), ("h2", "h3"), ("h4",),
        ]

    def test_failed_chunk_falls_back_to_single_lookups(self, settings):
        client = FakeGraphClient(
            images={"h1": _image("h1", url="u1"), "h3": _image("h3", url="u3")},
            image_batch_error=MetaAPIError("Please reduce the amount of data", status_code=500, code=1),
        )
        resolver = MediaResolver(client, "act_1", settings=settings)

        result = asyncio.run(resolver.resolve_image_hashes(["h1", "h2", "h3"]))

        assert [image.hash for image in result] == ["h1", "h3"]
        single_calls = [call[1] for call in client.calls_to("fetch_image_batch") if len(call[1]) == 1]
        assert single_calls == [("h1",), ("h2",), ("h3",)]

    def test_empty_input_makes_no_calls(self, settings):
        client = FakeGraphClient()
        resolver = MediaResolver(client, "act_1", settings=settings)
        assert asyncio.run(resolver.resolve_image_hashes(["", None])) == []
        assert client.call_count == 0


class TestResolveImageHash:
    """Tests for single hash resolution."""

    def test_resolves(self, settings):
        client = FakeGraphClient(images={"h1": _image("h1", url="u1", url_128="u128")})
        resolver = MediaResolver(client, "act_1", settings=settings)
        image = asyncio.run(resolver.resolve_image_hash("h1"))
        assert image.url == "u128"
        assert image.width == 1080

    def test_error_returns_none(self, settings):
        client = FakeGraphClient()

        async def failing(*args):
            raise MetaAPIError("boom", status_code=500)

        client.fetch_image_batch = failing
        resolver = MediaResolver(client, "act_1", settings=settings)
        assert asyncio.run(resolver.resolve_image_hash("h1")) is None


class TestResolveVideo:
    """Tests for video resolution."""

    def test_playable_video(self, settings):
        client = FakeGraphClient(objects={"v1": {
            "id": "v1",
            "source": "https://video.example.com/v1.mp4",
            "length": "12.5",
            "picture": "p.jpg",
            "thumbnails": {"data": [{"uri": "t.jpg", "width": 720, "height": 1280}]},
        }})
        resolver = MediaResolver(client, "act_1", settings=settings)

        video = asyncio.run(resolver.resolve_video("v1"))

        assert video.playable
        assert not video.needs_preview
        assert video.source_url == "https://video.example.com/v1.mp4"
        assert video.thumbnail_url == "t.jpg"
        assert video.duration_seconds == 12.5

    def test_permission_error_needs_preview(self, settings):
        client = FakeGraphClient(objects={"v1": permission_error()})
        resolver = MediaResolver(client, "act_1", settings=settings)

        video = asyncio.run(resolver.resolve_video("v1"))

        assert video.permission_denied
        assert not video.playable
        assert video.needs_preview

    def test_missing_source_needs_preview(self, settings):
        client = FakeGraphClient(objects={"v1": {"id": "v1", "picture": "p.jpg"}})
        resolver = MediaResolver(client, "act_1", settings=settings)
        video = asyncio.run(resolver.resolve_video("v1"))
        assert not video.playable
        assert video.needs_preview

    def test_transport_error_does_not_need_preview(self, settings):
        client = FakeGraphClient(objects={"v1": MetaAPIError("Service unavailable", status_code=503, code=2)})
        resolver = MediaResolver(client, "act_1", settings=settings)
        video = asyncio.run(resolver.resolve_video("v1"))
        assert video.failed
        assert not video.needs_preview


class TestResolvePreviewFragment:
    """Tests for preview fallback."""

    def test_returns_first_body(self, settings):
        client = FakeGraphClient(previews={"c1": "<iframe src='https://fb.example.com/p'></iframe>"})
        resolver = MediaResolver(client, "act_1", settings=settings)
        assert asyncio.run(resolver.resolve_preview_fragment("c1")).startswith("<iframe")

    def test_no_preview(self, settings):
        resolver = MediaResolver(FakeGraphClient(), "act_1", settings=settings)
        assert asyncio.run(resolver.resolve_preview_fragment("c1")) is None

    @pytest.mark.parametrize("error", [permission_error(), RuntimeError("connection reset")])
    def test_errors_return_none(self, settings, error):
        client = FakeGraphClient()

        async def failing(*args):
            raise error

        client.fetch_previews = failing
        resolver = MediaResolver(client, "act_1", settings=settings)
        assert asyncio.run(resolver.resolve_preview_fragment("c1")) is None


class TestMalformedVideoResponses:
    """Unexpected video shapes degrade instead of raising."""

    @pytest.mark.parametrize("video", [
        {"thumbnails": [{"uri": "x.jpg"}], "picture": "p.jpg"},
        {"thumbnails": {"data": "nope"}, "picture": "p.jpg"},
        {"thumbnails": {"data": [{"uri": {"bad": 1}}, None]}, "picture": "p.jpg"},
    ])
    def test_bad_thumbnails_fall_back_to_picture(self, video):
        assert pick_largest_thumbnail(video) == "p.jpg"

    def test_bad_picture_gives_none(self):
        assert pick_largest_thumbnail({"thumbnails": "nope", "picture": ["p.jpg"]}) is None

    def test_list_thumbnails_still_playable(self, settings):
        client = FakeGraphClient(objects={"v1": {
            "id": "v1",
            "source": "https://video.example.com/v1.mp4",
            "thumbnails": [{"uri": "x.jpg"}],
        }})
        resolver = MediaResolver(client, "act_1", settings=settings)

        video = asyncio.run(resolver.resolve_video("v1"))

        assert video.source_url == "https://video.example.com/v1.mp4"
        assert video.thumbnail_url is None

    def test_non_string_source_is_not_playable(self, settings):
        client = FakeGraphClient(objects={"v1": {"id": "v1", "source": {"url": "x"}}})
        resolver = MediaResolver(client, "act_1", settings=settings)

        video = asyncio.run(resolver.resolve_video("v1"))

        assert not video.playable
        assert video.needs_preview
