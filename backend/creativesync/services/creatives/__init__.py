"""
Creatives: classification, media enrichment and cached retrieval.
"""
from creativesync.services.creatives.classifier import Classification, classify_creative
from creativesync.services.creatives.enrichment import CreativeEnricher, DynamicVideoPolicy, EnrichmentResult
from creativesync.services.creatives.media_resolver import MediaResolver, ResolvedImage, VideoResolution
from creativesync.services.creatives.service import CreativesService

__all__ = [
    "Classification",
    "classify_creative",
    "CreativeEnricher",
    "DynamicVideoPolicy",
    "EnrichmentResult",
    "MediaResolver",
    "ResolvedImage",
    "VideoResolution",
    "CreativesService",
]
