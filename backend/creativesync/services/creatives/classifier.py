"""
Creative classification: assembly mode and media type.
Both tags are derived from the normalized payload view and never raise.
"""
from dataclasses import dataclass
from typing import Any, Callable, List, Tuple

from creativesync.schemas.creative import AssemblyMode, MediaType
from creativesync.services.creatives.payload import PayloadView, normalize_payload


@dataclass(frozen=True)
class Classification:
    assembly_mode: AssemblyMode
    media_type: MediaType


def _is_carousel(view: PayloadView) -> bool:
    return len(view.carousel_slots) > 1


def _is_catalog(view: PayloadView) -> bool:
    return view.has_catalog


def _is_asset_feed(view: PayloadView) -> bool:
    return view.feed_images is not None or view.feed_videos is not None


# Assembly mode detection order: first match wins, STATIC otherwise
ASSEMBLY_RULES: List[Tuple[AssemblyMode, Callable[[PayloadView], bool]]] = [
    (AssemblyMode.STATIC_CAROUSEL, _is_carousel),
    (AssemblyMode.DYNAMIC_CATALOG, _is_catalog),
    (AssemblyMode.DYNAMIC_ASSET_FEED, _is_asset_feed),
]


def has_image_media(view: PayloadView) -> bool:
    return bool(
        view.image_url
        or view.feed_images
        or any(slot.image_hash or slot.image_url for slot in view.carousel_slots)
    )


def has_video_media(view: PayloadView) -> bool:
    return bool(
        view.video_id
        or view.feed_videos
        or any(slot.video_id for slot in view.carousel_slots)
    )


def determine_assembly_mode(view: PayloadView) -> AssemblyMode:
    for mode, matches in ASSEMBLY_RULES:
        if matches(view):
            return mode
    return AssemblyMode.STATIC


def determine_media_type(view: PayloadView) -> MediaType:
    """MIXED if both kinds are referenced, VIDEO if only video, otherwise IMAGE."""
    has_images = has_image_media(view)
    has_videos = has_video_media(view)
    if has_images and has_videos:
        return MediaType.MIXED
    if has_videos:
        return MediaType.VIDEO
    # No media at all still counts as IMAGE
    return MediaType.IMAGE


def classify_view(view: PayloadView) -> Classification:
    return Classification(
        assembly_mode=determine_assembly_mode(view),
        media_type=determine_media_type(view),
    )


def classify_creative(raw: Any) -> Classification:
    """Classify a raw Graph API creative payload."""
    return classify_view(normalize_payload(raw))
