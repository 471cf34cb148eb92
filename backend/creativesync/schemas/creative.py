"""
Creative schemas: classification tags and the normalized creative record.
"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional, List
from datetime import datetime


class AssemblyMode(str, Enum):
    """How a creative's media is assembled."""
    STATIC = "STATIC"
    STATIC_CAROUSEL = "STATIC_CAROUSEL"
    DYNAMIC_ASSET_FEED = "DYNAMIC_ASSET_FEED"
    DYNAMIC_CATALOG = "DYNAMIC_CATALOG"


class MediaType(str, Enum):
    """Kind of media a creative uses."""
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    MIXED = "MIXED"


class ChildAttachment(BaseModel):
    """One carousel slot."""
    name: str = ""
    description: str = ""
    image_url: str = ""
    image_hash: Optional[str] = None
    link: str = ""
    video_id: Optional[str] = None


class CreativeRecord(BaseModel):
    """Normalized creative as stored and returned to callers"""
    creative_id: str
    ad_account_id: str
    client_id: Optional[str] = None
    name: Optional[str] = None
    primary_text: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    body: Optional[str] = None
    thumbnail_url: Optional[str] = None
    child_attachments: List[ChildAttachment] = []
    call_to_action: Optional[Any] = None
    assembly_mode: AssemblyMode
    media_type: MediaType
    image_hashes: List[str] = []
    image_urls: List[str] = []
    video_ids: List[str] = []
    video_urls: List[str] = []
    preview_fragments: List[str] = []
    object_story_spec: Optional[Dict[str, Any]] = None
    raw_payload: Optional[Dict[str, Any]] = None
    last_fetched_at: datetime
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreativeListResponse(BaseModel):
    """Stored creatives for one ad account"""
    items: List[CreativeRecord]
    total: int = Field(..., description="All stored creatives for the account")
    limit: int
    returned: int


class DateRangeSyncResult(BaseModel):
    """Outcome of a bulk creative fetch for a date range."""
    saved: int = 0
    failed: int = 0
    creative_ids: List[str] = []
