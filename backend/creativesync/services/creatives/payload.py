"""
Normalized, read-only view over a raw Graph API creative payload.
Malformed or missing sub-structures are treated as absent.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Fields requested when fetching a creative
CREATIVE_FIELDS = [
    "id",
    "name",
    "body",
    "title",
    "thumbnail_url",
    "image_url",
    "image_hash",
    "video_id",
    "call_to_action",
    "object_story_spec",
    "asset_feed_spec",
    "object_story_id",
    "effective_object_story_id",
    "effective_instagram_story_id",
]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> Optional[List[Any]]:
    return value if isinstance(value, list) else None


def _as_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class CarouselSlot:
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    image_hash: Optional[str] = None
    link: Optional[str] = None
    video_id: Optional[str] = None

    def to_attachment(self, image_url: Optional[str] = None) -> Dict[str, Any]:
        """Stored slot descriptor; empty strings for missing text."""
        return {
            "name": self.name or "",
            "description": self.description or "",
            "image_url": image_url or self.image_url or "",
            "image_hash": self.image_hash,
            "link": self.link or "",
            "video_id": self.video_id,
        }


@dataclass(frozen=True)
class FeedImage:
    hash: Optional[str] = None
    url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class FeedVideo:
    video_id: Optional[str] = None
    thumbnail_url: Optional[str] = None


@dataclass(frozen=True)
class PayloadView:
    creative_id: Optional[str] = None
    name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    image_url: Optional[str] = None
    image_hash: Optional[str] = None
    video_id: Optional[str] = None
    carousel_slots: Tuple[CarouselSlot, ...] = ()
    has_catalog: bool = False
    # None when the feed carries no such list at all
    feed_images: Optional[Tuple[FeedImage, ...]] = None
    feed_videos: Optional[Tuple[FeedVideo, ...]] = None
    primary_text: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    body: Optional[str] = None
    call_to_action: Any = None
    object_story_spec: Dict[str, Any] = field(default_factory=dict)


def _feed_text(entries: Optional[List[Any]]) -> Optional[str]:
    if not entries:
        return None
    return _as_str(_as_dict(entries[0]).get("text"))


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def normalize_payload(raw: Any) -> PayloadView:
    """Build a PayloadView from a raw creative payload. Never raises."""
    creative = _as_dict(raw)
    oss = _as_dict(creative.get("object_story_spec"))
    link_data = _as_dict(oss.get("link_data"))
    photo_data = _as_dict(oss.get("photo_data"))
    video_data = _as_dict(oss.get("video_data"))
    feed = _as_dict(creative.get("asset_feed_spec"))

    slots = tuple(
        CarouselSlot(
            name=_as_str(child.get("name")),
            description=_as_str(child.get("description")),
            image_url=_as_str(child.get("image_url")),
            image_hash=_as_str(child.get("image_hash")),
            link=_as_str(child.get("link")),
            video_id=_as_str(child.get("video_id")),
        )
        for child in (_as_list(link_data.get("child_attachments")) or [])
        if isinstance(child, dict)
    )

    raw_images = _as_list(feed.get("images"))
    feed_images = None
    if raw_images is not None:
        feed_images = tuple(
            FeedImage(
                hash=_as_str(img.get("hash")),
                url=_as_str(img.get("url")),
                width=_int_or_none(img.get("width")),
                height=_int_or_none(img.get("height")),
            )
            for img in raw_images
            if isinstance(img, dict)
        )

    raw_videos = _as_list(feed.get("videos"))
    feed_videos = None
    if raw_videos is not None:
        feed_videos = tuple(
            FeedVideo(
                video_id=_as_str(vid.get("video_id")),
                thumbnail_url=_as_str(vid.get("thumbnail_url")),
            )
            for vid in raw_videos
            if isinstance(vid, dict)
        )

    feed_hash = feed_images[0].hash if feed_images else None
    feed_primary = _feed_text(_as_list(feed.get("bodies")))
    feed_headline = _feed_text(_as_list(feed.get("titles")))
    feed_description = _feed_text(_as_list(feed.get("descriptions")))
    feed_ctas = _as_list(feed.get("call_to_actions")) or []

    has_catalog = feed.get("products") is not None or bool(oss.get("template_data"))

    return PayloadView(
        creative_id=_as_str(creative.get("id")),
        name=_as_str(creative.get("name")),
        thumbnail_url=_as_str(creative.get("thumbnail_url")),
        image_url=_as_str(creative.get("image_url")),
        image_hash=(
            _as_str(creative.get("image_hash"))
            or _as_str(photo_data.get("image_hash"))
            or feed_hash
            or _as_str(link_data.get("image_hash"))
        ),
        video_id=_as_str(video_data.get("video_id")) or _as_str(creative.get("video_id")),
        carousel_slots=slots,
        has_catalog=has_catalog,
        feed_images=feed_images,
        feed_videos=feed_videos,
        primary_text=(
            feed_primary
            or _as_str(creative.get("body"))
            or _as_str(link_data.get("message"))
            or _as_str(photo_data.get("message"))
            or _as_str(video_data.get("message"))
        ),
        headline=feed_headline or _as_str(creative.get("title")) or _as_str(link_data.get("name")),
        description=feed_description or _as_str(link_data.get("description")),
        body=feed_primary or _as_str(creative.get("body")),
        call_to_action=(
            (feed_ctas[0] if feed_ctas else None)
            or creative.get("call_to_action")
            or link_data.get("call_to_action")
            or video_data.get("call_to_action")
            or None
        ),
        object_story_spec=oss,
    )
