"""
Media resolution against the Graph API.
Image hashes -> durable image URLs (batched), video ids -> playable source,
and creative previews as the fallback for videos we may not read.
All failures are logged and returned as empty results.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from creativesync.config import Settings, get_settings
from creativesync.services.meta_graph_client import MetaAPIError, MetaGraphClient

logger = logging.getLogger(__name__)

IMAGE_FIELDS = ["hash", "url", "url_128", "permalink_url", "width", "height"]
VIDEO_FIELDS = [
    "source",
    "picture",
    "length",
    "thumbnails{uri,width,height,scale,is_preferred}",
    "permalink_url",
]

# permalink_url never expires; url_128 is the explicit higher-resolution form
IMAGE_URL_PREFERENCE = ("permalink_url", "url_128", "url")


@dataclass(frozen=True)
class ResolvedImage:
    hash: str
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class VideoResolution:
    video_id: str
    source_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    permission_denied: bool = False
    failed: bool = False

    @property
    def playable(self) -> bool:
        return bool(self.source_url)

    @property
    def needs_preview(self) -> bool:
        """Permission denied, or the video answered without a playable source."""
        if self.playable:
            return False
        return self.permission_denied or not self.failed


def pick_image_url(image: Dict[str, Any]) -> Optional[str]:
    for key in IMAGE_URL_PREFERENCE:
        value = image.get(key)
        if value and isinstance(value, str):
            return value
    return None


def _thumbnail_size(thumbnail: Dict[str, Any]) -> float:
    width = thumbnail.get("width")
    height = thumbnail.get("height")
    try:
        if width and height:
            return float(width) * float(height)
        return float(thumbnail.get("scale") or 0)
    except (TypeError, ValueError):
        return 0.0


def pick_largest_thumbnail(video: Dict[str, Any]) -> Optional[str]:
    """Largest thumbnail by area (or reported scale), else the default picture."""
    thumbnails = video.get("thumbnails")
    data = thumbnails.get("data") if isinstance(thumbnails, dict) else None
    candidates = [
        t for t in (data if isinstance(data, list) else [])
        if isinstance(t, dict) and isinstance(t.get("uri"), str) and t["uri"]
    ]
    if candidates:
        return max(candidates, key=_thumbnail_size)["uri"]
    picture = video.get("picture")
    return picture if isinstance(picture, str) and picture else None


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class MediaResolver:
    """Resolves creative media for one ad account and access token."""

    def __init__(
        self,
        client: MetaGraphClient,
        ad_account_id: str,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.ad_account_id = ad_account_id
        self.settings = settings or get_settings()

    @staticmethod
    def _to_resolved(image: Dict[str, Any]) -> Optional[ResolvedImage]:
        url = pick_image_url(image)
        image_hash = image.get("hash")
        if not url or not image_hash:
            return None
        return ResolvedImage(
            hash=image_hash,
            url=url,
            width=_to_int(image.get("width")),
            height=_to_int(image.get("height")),
        )

    async def resolve_image_hash(self, image_hash: str) -> Optional[ResolvedImage]:
        """Resolve a single image hash to its preferred URL."""
        if not image_hash:
            return None
        try:
            images = await self.client.fetch_image_batch(self.ad_account_id, [image_hash], IMAGE_FIELDS)
        except Exception as e:
            logger.error(f"Error fetching image for hash {image_hash}: {e}")
            return None

        for image in images:
            if isinstance(image, dict) and image.get("hash") == image_hash:
                return self._to_resolved(image)
        return None

    async def resolve_image_hashes(self, image_hashes: List[str]) -> List[ResolvedImage]:
        """
        Resolve many hashes with one round trip per chunk.

        Duplicates are dropped before batching. A failed chunk falls back to
        one lookup per hash. Only hashes from the input are returned, each once.
        """
        unique_hashes = list(dict.fromkeys(h for h in image_hashes if h))
        if not unique_hashes:
            return []

        chunk_size = max(1, self.settings.meta_image_hash_batch_size)
        resolved: Dict[str, ResolvedImage] = {}
        for start in range(0, len(unique_hashes), chunk_size):
            chunk = unique_hashes[start:start + chunk_size]
            try:
                images = await self.client.fetch_image_batch(self.ad_account_id, chunk, IMAGE_FIELDS)
            except Exception as e:
                logger.error(f"Error batch fetching {len(chunk)} image URLs, falling back to single lookups: {e}")
                for image_hash in chunk:
                    single = await self.resolve_image_hash(image_hash)
                    if single:
                        resolved[image_hash] = single
                continue

            wanted = set(chunk)
            for image in images:
                if not isinstance(image, dict) or image.get("hash") not in wanted:
                    continue
                item = self._to_resolved(image)
                if item and item.hash not in resolved:
                    resolved[item.hash] = item

        return [resolved[h] for h in unique_hashes if h in resolved]

    async def resolve_video(self, video_id: str) -> VideoResolution:
        """Resolve a video's playable source, thumbnail and duration."""
        try:
            video = await self.client.fetch_object(video_id, VIDEO_FIELDS)
        except MetaAPIError as e:
            if e.is_permission_error:
                logger.info(f"Permission denied for video {video_id}: {e}")
                return VideoResolution(video_id=video_id, permission_denied=True)
            logger.error(f"Error fetching video {video_id}: {e}")
            return VideoResolution(video_id=video_id, failed=True)
        except Exception as e:
            logger.error(f"Error fetching video {video_id}: {e}")
            return VideoResolution(video_id=video_id, failed=True)

        source = video.get("source") if isinstance(video, dict) else None
        if not isinstance(source, str):
            source = None
        if not source:
            logger.info(f"Video {video_id} has no playable source")
            return VideoResolution(video_id=video_id)

        return VideoResolution(
            video_id=video_id,
            source_url=source,
            thumbnail_url=pick_largest_thumbnail(video),
            duration_seconds=_to_float(video.get("length")),
        )

    async def resolve_preview_fragment(self, creative_id: str) -> Optional[str]:
        """Embeddable preview HTML for a creative, if one renders."""
        if not creative_id:
            return None
        try:
            previews = await self.client.fetch_previews(
                creative_id, self.settings.creative_preview_ad_format
            )
        except Exception as e:
            logger.error(f"Error fetching preview for creative {creative_id}: {e}")
            return None

        if previews:
            body = previews[0].get("body") if isinstance(previews[0], dict) else None
            if body and isinstance(body, str):
                logger.info(f"Fetched preview for creative {creative_id}")
                return body
        return None
