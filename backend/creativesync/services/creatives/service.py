"""
Creative service: cached creative lookups backed by the Graph API.
Fetch -> classify -> enrich -> store, with a 7-day freshness window and a
smart refresh that re-resolves only the media stored for a creative.
"""
import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.orm import Session

from creativesync.config import Settings, get_settings
from creativesync.models import Creative
from creativesync.repositories import AdInsightRepository, CreativeRepository
from creativesync.schemas.creative import (
    AssemblyMode,
    CreativeListResponse,
    CreativeRecord,
    DateRangeSyncResult,
    MediaType,
)
from creativesync.services.creatives.classifier import Classification, classify_view
from creativesync.services.creatives.enrichment import CreativeEnricher, DynamicVideoPolicy, EnrichmentResult
from creativesync.services.creatives.media_resolver import MediaResolver
from creativesync.services.creatives.payload import CREATIVE_FIELDS, PayloadView, normalize_payload
from creativesync.services.meta_graph_client import MetaGraphClient

logger = logging.getLogger(__name__)

IMAGE_REFRESH_MODES = {
    AssemblyMode.DYNAMIC_ASSET_FEED,
    AssemblyMode.DYNAMIC_CATALOG,
    AssemblyMode.STATIC_CAROUSEL,
}
VIDEO_MEDIA_TYPES = {MediaType.VIDEO, MediaType.MIXED}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CreativesService:
    """Get, batch-get, refresh and bulk-save creatives."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        client_factory: Optional[Callable[[str], MetaGraphClient]] = None,
        analytics_repository: Optional[AdInsightRepository] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.repository = CreativeRepository(db)
        self.analytics_repository = analytics_repository or AdInsightRepository(db)
        self.client_factory = client_factory or (
            lambda access_token: MetaGraphClient(access_token, settings=self.settings)
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ==================== Freshness ====================

    def is_fresh(self, creative: Creative) -> bool:
        if not creative.last_fetched_at:
            return False
        age = self._clock() - _as_utc(creative.last_fetched_at)
        return age < timedelta(days=self.settings.creative_cache_ttl_days)

    def _next_fetched_at(self, previous: Optional[datetime]) -> datetime:
        """Current time, nudged past the previous fetch so it always increases."""
        now = self._clock()
        if previous is not None:
            previous = _as_utc(previous)
            if now <= previous:
                return previous + timedelta(microseconds=1)
        return now

    @staticmethod
    def _to_record(creative: Creative) -> CreativeRecord:
        return CreativeRecord.model_validate(creative)

    # ==================== Fetch + enrich ====================

    def _build_enricher(self, client: MetaGraphClient, ad_account_id: str) -> CreativeEnricher:
        resolver = MediaResolver(client, ad_account_id, settings=self.settings)
        return CreativeEnricher(
            resolver,
            dynamic_video_policy=DynamicVideoPolicy(self.settings.get_dynamic_feed_video_policy()),
        )

    def _build_record_fields(
        self,
        creative_id: str,
        ad_account_id: str,
        raw: Dict[str, Any],
        view: PayloadView,
        classification: Classification,
        enrichment: EnrichmentResult,
        previous_fetched_at: Optional[datetime],
        client_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        fields = {
            "creative_id": creative_id,
            "ad_account_id": ad_account_id,
            "name": view.name,
            "primary_text": view.primary_text,
            "headline": view.headline,
            "description": view.description,
            "body": view.body,
            "call_to_action": view.call_to_action,
            "assembly_mode": classification.assembly_mode.value,
            "media_type": classification.media_type.value,
            **enrichment.to_fields(),
            "object_story_spec": view.object_story_spec or None,
            "raw_payload": raw,
            "last_fetched_at": self._next_fetched_at(previous_fetched_at),
        }
        if client_id:
            fields["client_id"] = client_id
        return fields

    async def _fetch_and_store(
        self,
        creative_id: str,
        ad_account_id: str,
        access_token: str,
        client_id: Optional[str] = None,
    ) -> Optional[CreativeRecord]:
        """Full fetch, classify, enrich and upsert. Raises on gateway or store errors."""
        client = self.client_factory(access_token)
        raw = await client.fetch_object(creative_id, CREATIVE_FIELDS)
        if not isinstance(raw, dict) or not raw.get("id"):
            logger.warning(f"Creative {creative_id} not returned by Meta")
            return None

        view = normalize_payload(raw)
        classification = classify_view(view)
        logger.info(
            f"Creative {creative_id}: mode={classification.assembly_mode.value}, "
            f"media={classification.media_type.value}"
        )

        enrichment = await self._build_enricher(client, ad_account_id).enrich(view, classification)

        existing = self.repository.find_by_id(creative_id)
        fields = self._build_record_fields(
            creative_id,
            ad_account_id,
            raw,
            view,
            classification,
            enrichment,
            previous_fetched_at=existing.last_fetched_at if existing else None,
            client_id=client_id,
        )
        creative = self.repository.upsert(fields)
        logger.info(f"Cached creative {creative_id}")
        return self._to_record(creative)

    async def _fetch_one(
        self,
        creative_id: str,
        ad_account_id: str,
        access_token: str,
        client_id: Optional[str] = None,
    ) -> Optional[CreativeRecord]:
        try:
            return await self._fetch_and_store(creative_id, ad_account_id, access_token, client_id=client_id)
        except Exception as e:
            logger.error(f"Failed to fetch creative {creative_id}: {e}")
            return None

    async def _fetch_in_batches(
        self,
        creative_ids: List[str],
        ad_account_id: str,
        access_token: str,
        client_id: Optional[str] = None,
    ) -> Dict[str, Optional[CreativeRecord]]:
        """Fetch ids in sequential batches; ids within a batch run concurrently."""
        batch_size = max(1, self.settings.creative_fetch_batch_size)
        total_batches = (len(creative_ids) + batch_size - 1) // batch_size
        results: Dict[str, Optional[CreativeRecord]] = {}

        for index, start in enumerate(range(0, len(creative_ids), batch_size), 1):
            batch = creative_ids[start:start + batch_size]
            logger.info(f"Processing creative batch {index}/{total_batches} ({len(batch)} ids)")
            records = await asyncio.gather(
                *(self._fetch_one(cid, ad_account_id, access_token, client_id=client_id) for cid in batch)
            )
            results.update(zip(batch, records))

        return results

    # ==================== Public operations ====================

    async def get_creative(
        self,
        creative_id: str,
        ad_account_id: str,
        access_token: str,
        force_refresh: bool = False,
    ) -> Optional[CreativeRecord]:
        """
        Get a creative from the store, fetching from Meta when missing or stale.

        Args:
            creative_id: Graph creative id
            ad_account_id: Ad account the creative's media belongs to
            access_token: Meta access token
            force_refresh: Skip the freshness check

        Returns:
            The stored record, the last stored record if fetching failed,
            or None if nothing was ever stored
        """
        if not creative_id:
            return None

        if not force_refresh:
            cached = self.repository.find_by_id(creative_id)
            if cached and self.is_fresh(cached):
                logger.info(f"Using cached creative {creative_id}")
                return self._to_record(cached)

        try:
            record = await self._fetch_and_store(creative_id, ad_account_id, access_token)
            if record:
                return record
        except Exception as e:
            logger.error(f"Error fetching creative {creative_id}: {e}")

        # Stale is better than nothing
        cached = self.repository.find_by_id(creative_id)
        return self._to_record(cached) if cached else None

    async def get_creatives(
        self,
        creative_ids: List[str],
        ad_account_id: str,
        access_token: str,
    ) -> Dict[str, CreativeRecord]:
        """
        Batch get. Fresh records come from the store; the rest are fetched
        in batches. Ids that fail to fetch are left out of the result.
        """
        unique_ids = list(dict.fromkeys(cid for cid in creative_ids or [] if cid))
        if not unique_ids:
            return {}

        logger.info(f"Fetching {len(unique_ids)} creatives")
        result: Dict[str, CreativeRecord] = {
            creative.creative_id: self._to_record(creative)
            for creative in self.repository.find_by_ids(unique_ids)
            if self.is_fresh(creative)
        }

        to_fetch = [cid for cid in unique_ids if cid not in result]
        if not to_fetch:
            logger.info(f"All {len(unique_ids)} creatives cached")
            return result

        logger.info(f"Need to fetch {len(to_fetch)} creatives from Meta")
        fetched = await self._fetch_in_batches(to_fetch, ad_account_id, access_token)
        result.update({cid: record for cid, record in fetched.items() if record is not None})

        logger.info(f"Total creatives available: {len(result)}/{len(unique_ids)}")
        return result

    async def refresh_creative(
        self,
        creative_id: str,
        ad_account_id: str,
        access_token: str,
    ) -> Optional[CreativeRecord]:
        """
        Smart refresh: re-resolve only the media the stored record points at.

        The strategy comes from the stored assembly mode and media type, so a
        creative whose upstream shape changed is only picked up by a full fetch.
        """
        existing = self.repository.find_by_id(creative_id)
        if existing is None:
            logger.info(f"Creative {creative_id} not stored, doing full fetch")
            return await self.get_creative(creative_id, ad_account_id, access_token, force_refresh=True)

        try:
            refreshed = await self._smart_refresh(existing, ad_account_id, access_token)
        except Exception as e:
            logger.error(f"Error in smart refresh of creative {creative_id}: {e}")
            refreshed = None

        if refreshed is not None:
            return refreshed
        return await self.get_creative(creative_id, ad_account_id, access_token, force_refresh=True)

    async def _smart_refresh(
        self,
        existing: Creative,
        ad_account_id: str,
        access_token: str,
    ) -> Optional[CreativeRecord]:
        """Returns None when a full fetch is needed instead."""
        creative_id = existing.creative_id
        assembly_mode = AssemblyMode(existing.assembly_mode)
        media_type = MediaType(existing.media_type)
        image_hashes = list(existing.image_hashes or [])
        video_ids = list(existing.video_ids or [])
        thumbnail_url = existing.thumbnail_url
        previous_fetched_at = existing.last_fetched_at
        logger.info(f"Smart refresh for creative {creative_id}: mode={assembly_mode.value}, media={media_type.value}")

        client = self.client_factory(access_token)
        resolver = MediaResolver(client, ad_account_id, settings=self.settings)

        if assembly_mode in IMAGE_REFRESH_MODES:
            if not image_hashes:
                logger.info(f"No image hashes stored for creative {creative_id}")
                return None

            images = await resolver.resolve_image_hashes(image_hashes)
            if not images:
                return None

            updated = self.repository.update(creative_id, {
                "image_urls": [image.url for image in images],
                "image_hashes": [image.hash for image in images],
                "thumbnail_url": images[0].url or thumbnail_url,
                "last_fetched_at": self._next_fetched_at(previous_fetched_at),
            })
            logger.info(f"Images refreshed for creative {creative_id}: {len(images)}/{len(image_hashes)}")
            return self._to_record(updated) if updated else None

        if media_type in VIDEO_MEDIA_TYPES:
            video_id = video_ids[0] if video_ids else None
            if not video_id:
                logger.info(f"No video id stored for creative {creative_id}")
                return None

            video = await resolver.resolve_video(video_id)
            previews: List[str] = []
            if video.needs_preview:
                fragment = await resolver.resolve_preview_fragment(creative_id)
                if fragment:
                    previews.append(fragment)
            if not video.playable and not previews:
                return None

            # image_urls stay as stored
            updated = self.repository.update(creative_id, {
                "video_ids": [video_id],
                "video_urls": [video.source_url] if video.playable else [],
                "preview_fragments": previews,
                "thumbnail_url": video.thumbnail_url or thumbnail_url,
                "last_fetched_at": self._next_fetched_at(previous_fetched_at),
            })
            logger.info(f"Video refreshed for creative {creative_id}")
            return self._to_record(updated) if updated else None

        return None

    async def fetch_and_save_for_date_range(
        self,
        client_id: str,
        ad_account_id: str,
        access_token: str,
        start_date: date,
        end_date: date,
    ) -> DateRangeSyncResult:
        """
        Force-fetch every creative referenced by the client's ad insights
        between start_date and end_date.
        """
        logger.info(f"Fetching creatives for client {client_id} from {start_date} to {end_date}")
        creative_ids = self.analytics_repository.get_creative_ids_for_date_range(client_id, start_date, end_date)
        logger.info(f"Found {len(creative_ids)} unique creatives to fetch")

        if not creative_ids:
            return DateRangeSyncResult()

        fetched = await self._fetch_in_batches(creative_ids, ad_account_id, access_token, client_id=client_id)
        saved = sum(1 for record in fetched.values() if record is not None)
        failed = len(creative_ids) - saved

        logger.info(f"Completed: {saved} saved, {failed} failed")
        return DateRangeSyncResult(saved=saved, failed=failed, creative_ids=creative_ids)

    def list_creatives(self, ad_account_id: str, limit: int = 100) -> CreativeListResponse:
        """Stored creatives for an ad account, most recently fetched first."""
        items = [self._to_record(c) for c in self.repository.list_by_ad_account(ad_account_id, limit)]
        return CreativeListResponse(
            items=items,
            total=self.repository.count_by_ad_account(ad_account_id),
            limit=limit,
            returned=len(items),
        )
