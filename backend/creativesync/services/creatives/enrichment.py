"""
Creative media enrichment.

One strategy per assembly mode. Each strategy reads the normalized payload,
calls the media resolver and returns a fresh EnrichmentResult; a shared
fallback then gives a leftover top-level image hash one more lookup.
Resolver calls never raise, so a failed asset only leaves a gap.
"""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from creativesync.schemas.creative import AssemblyMode
from creativesync.services.creatives.classifier import Classification
from creativesync.services.creatives.media_resolver import MediaResolver, ResolvedImage
from creativesync.services.creatives.payload import PayloadView

logger = logging.getLogger(__name__)


class DynamicVideoPolicy(str, Enum):
    """How asset-feed videos are handled."""
    # Feed video ids are not readable with our token; render the creative preview instead
    PREVIEW_ONLY = "preview_only"
    RESOLVE = "resolve"


@dataclass(frozen=True)
class EnrichmentResult:
    image_urls: Tuple[str, ...] = ()
    image_hashes: Tuple[str, ...] = ()
    video_ids: Tuple[str, ...] = ()
    video_urls: Tuple[str, ...] = ()
    preview_fragments: Tuple[str, ...] = ()
    thumbnail_url: Optional[str] = None
    child_attachments: Tuple[Dict[str, Any], ...] = ()
    attempted_hashes: FrozenSet[str] = field(default_factory=frozenset)

    def to_fields(self) -> Dict[str, Any]:
        """Column values for the creative record."""
        return {
            "image_urls": list(self.image_urls),
            "image_hashes": list(self.image_hashes),
            "video_ids": list(self.video_ids),
            "video_urls": list(self.video_urls),
            "preview_fragments": list(self.preview_fragments),
            "thumbnail_url": self.thumbnail_url,
            "child_attachments": [dict(a) for a in self.child_attachments],
        }


def _dedupe_images(images: List[ResolvedImage]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    seen = set()
    urls: List[str] = []
    hashes: List[str] = []
    for image in images:
        if image.hash in seen:
            continue
        seen.add(image.hash)
        urls.append(image.url)
        hashes.append(image.hash)
    return tuple(urls), tuple(hashes)


class CreativeEnricher:
    """Dispatches enrichment on the creative's assembly mode."""

    def __init__(
        self,
        resolver: MediaResolver,
        dynamic_video_policy: DynamicVideoPolicy = DynamicVideoPolicy.PREVIEW_ONLY,
    ):
        self.resolver = resolver
        self.dynamic_video_policy = DynamicVideoPolicy(dynamic_video_policy)
        self._strategies = {
            AssemblyMode.STATIC: self._enrich_static,
            AssemblyMode.STATIC_CAROUSEL: self._enrich_carousel,
            AssemblyMode.DYNAMIC_ASSET_FEED: self._enrich_asset_feed,
            AssemblyMode.DYNAMIC_CATALOG: self._enrich_catalog,
        }

    async def enrich(self, view: PayloadView, classification: Classification) -> EnrichmentResult:
        strategy = self._strategies[classification.assembly_mode]
        result = await strategy(view)
        result = await self._fallback_image_hash(view, result)
        logger.info(
            f"Enriched creative {view.creative_id} ({classification.assembly_mode.value}/"
            f"{classification.media_type.value}): {len(result.image_urls)} images, "
            f"{len(result.video_urls)}/{len(result.video_ids)} videos, "
            f"{len(result.preview_fragments)} previews"
        )
        return result

    @staticmethod
    def _attachments(view: PayloadView) -> Tuple[Dict[str, Any], ...]:
        return tuple(slot.to_attachment() for slot in view.carousel_slots)

    async def _preview(self, view: PayloadView) -> Tuple[str, ...]:
        fragment = await self.resolver.resolve_preview_fragment(view.creative_id)
        if not fragment:
            logger.warning(f"No preview available for creative {view.creative_id}")
            return ()
        return (fragment,)

    # ==================== Strategies ====================

    async def _enrich_static(self, view: PayloadView) -> EnrichmentResult:
        attachments = self._attachments(view)

        if view.video_id:
            video = await self.resolver.resolve_video(view.video_id)
            previews = await self._preview(view) if video.needs_preview else ()
            return EnrichmentResult(
                video_ids=(view.video_id,),
                video_urls=(video.source_url,) if video.playable else (),
                preview_fragments=previews,
                thumbnail_url=video.thumbnail_url or view.thumbnail_url,
                child_attachments=attachments,
            )

        if view.image_url:
            # Direct URL, no lookup needed
            return EnrichmentResult(
                image_urls=(view.image_url,),
                image_hashes=(view.image_hash,) if view.image_hash else (),
                thumbnail_url=view.thumbnail_url,
                child_attachments=attachments,
            )

        if view.image_hash:
            image = await self.resolver.resolve_image_hash(view.image_hash)
            return EnrichmentResult(
                image_urls=(image.url,) if image else (),
                image_hashes=(image.hash,) if image else (),
                thumbnail_url=view.thumbnail_url,
                child_attachments=attachments,
                attempted_hashes=frozenset({view.image_hash}),
            )

        return EnrichmentResult(thumbnail_url=view.thumbnail_url, child_attachments=attachments)

    async def _enrich_carousel(self, view: PayloadView) -> EnrichmentResult:
        slots = view.carousel_slots
        hashes = [slot.image_hash for slot in slots if slot.image_hash]
        resolved = await self.resolver.resolve_image_hashes(hashes) if hashes else []
        by_hash = {image.hash: image for image in resolved}

        # Slot order; slots whose hash did not resolve are dropped
        image_urls, image_hashes = _dedupe_images(
            [by_hash[slot.image_hash] for slot in slots if slot.image_hash in by_hash]
        )
        attachments = tuple(
            slot.to_attachment(by_hash[slot.image_hash].url if slot.image_hash in by_hash else None)
            for slot in slots
        )
        logger.info(f"Resolved {len(image_urls)}/{len(set(hashes))} carousel images for creative {view.creative_id}")

        return EnrichmentResult(
            image_urls=image_urls,
            image_hashes=image_hashes,
            thumbnail_url=view.thumbnail_url,
            child_attachments=attachments,
            attempted_hashes=frozenset(hashes),
        )

    async def _enrich_asset_feed(self, view: PayloadView) -> EnrichmentResult:
        feed_images = view.feed_images or ()

        hashes_needing_fetch = list(dict.fromkeys(
            image.hash for image in feed_images if image.hash and not image.url
        ))
        logger.info(
            f"Creative {view.creative_id}: {len(feed_images) - len(hashes_needing_fetch)} feed images with URLs, "
            f"{len(hashes_needing_fetch)} hashes need fetching"
        )
        resolved = await self.resolver.resolve_image_hashes(hashes_needing_fetch) if hashes_needing_fetch else []
        by_hash = {image.hash: image for image in resolved}

        # Images that came with a URL first, then the resolved hash-only ones, each in feed order
        ordered: List[ResolvedImage] = [
            ResolvedImage(hash=image.hash, url=image.url, width=image.width, height=image.height)
            for image in feed_images
            if image.hash and image.url
        ]
        ordered.extend(by_hash[h] for h in hashes_needing_fetch if h in by_hash)
        image_urls, image_hashes = _dedupe_images(ordered)

        video_ids: Tuple[str, ...] = ()
        video_urls: Tuple[str, ...] = ()
        previews: Tuple[str, ...] = ()
        if view.feed_videos:
            if self.dynamic_video_policy is DynamicVideoPolicy.PREVIEW_ONLY:
                previews = await self._preview(view)
            else:
                video_ids, video_urls, previews = await self._resolve_feed_videos(view)

        return EnrichmentResult(
            image_urls=image_urls,
            image_hashes=image_hashes,
            video_ids=video_ids,
            video_urls=video_urls,
            preview_fragments=previews,
            thumbnail_url=view.thumbnail_url,
            child_attachments=self._attachments(view),
            attempted_hashes=frozenset(hashes_needing_fetch),
        )

    async def _resolve_feed_videos(self, view: PayloadView) -> Tuple[Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]]:
        video_ids = tuple(dict.fromkeys(v.video_id for v in view.feed_videos or () if v.video_id))
        if not video_ids:
            return (), (), await self._preview(view)

        resolutions = await asyncio.gather(*(self.resolver.resolve_video(vid) for vid in video_ids))
        playable = [r for r in resolutions if r.playable]
        if playable:
            # Ids stay index-aligned with their urls; unplayable feed videos are dropped
            return tuple(r.video_id for r in playable), tuple(r.source_url for r in playable), ()

        previews: Tuple[str, ...] = ()
        if any(r.needs_preview for r in resolutions):
            previews = await self._preview(view)
        return video_ids, (), previews

    async def _enrich_catalog(self, view: PayloadView) -> EnrichmentResult:
        # Catalog media comes from the product feed; nothing to resolve here
        return EnrichmentResult(thumbnail_url=view.thumbnail_url, child_attachments=self._attachments(view))

    # ==================== Fallback ====================

    async def _fallback_image_hash(self, view: PayloadView, result: EnrichmentResult) -> EnrichmentResult:
        image_hash = view.image_hash
        if result.image_urls or not image_hash:
            return result
        if image_hash in result.attempted_hashes or image_hash in result.image_hashes:
            return result

        image = await self.resolver.resolve_image_hash(image_hash)
        attempted = result.attempted_hashes | {image_hash}
        if not image:
            return replace(result, attempted_hashes=attempted)
        return replace(
            result,
            image_urls=(image.url,),
            image_hashes=(image.hash,),
            attempted_hashes=attempted,
        )
