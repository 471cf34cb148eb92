from sqlalchemy import Column, String, DateTime, Text, Boolean, Index, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
import uuid
from creativesync.database import Base

JSONVariant = JSON().with_variant(JSONB(), "postgresql")


class Creative(Base):
    __tablename__ = "creatives"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    creative_id = Column(String(64), nullable=False, unique=True, index=True)
    ad_account_id = Column(String(64), nullable=False, index=True)
    client_id = Column(String(64), nullable=True)
    name = Column(Text, nullable=True)

    # Copy
    primary_text = Column(Text, nullable=True)
    headline = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    body = Column(Text, nullable=True)

    thumbnail_url = Column(Text, nullable=True)
    child_attachments = Column(JSONVariant, nullable=False, default=list)  # Carousel slots
    call_to_action = Column(JSONVariant, nullable=True)

    # Classification, derived at fetch time only
    assembly_mode = Column(String(32), nullable=False)  # STATIC, STATIC_CAROUSEL, DYNAMIC_ASSET_FEED, DYNAMIC_CATALOG
    media_type = Column(String(16), nullable=False)  # IMAGE, VIDEO, MIXED

    # Resolved media
    image_hashes = Column(JSONVariant, nullable=False, default=list)
    image_urls = Column(JSONVariant, nullable=False, default=list)
    video_ids = Column(JSONVariant, nullable=False, default=list)
    video_urls = Column(JSONVariant, nullable=False, default=list)
    preview_fragments = Column(JSONVariant, nullable=False, default=list)  # Preview HTML when video source is denied

    object_story_spec = Column(JSONVariant, nullable=True)
    raw_payload = Column(JSONVariant, nullable=True)  # Verbatim Graph API response

    last_fetched_at = Column(DateTime(timezone=True), nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_creatives_ad_account_creative", "ad_account_id", "creative_id"),
        Index("ix_creatives_last_fetched_at", "last_fetched_at"),
    )

    def __repr__(self):
        return f"<Creative(creative_id={self.creative_id}, mode={self.assembly_mode}, media={self.media_type})>"
