"""
Shared fixtures: an in-memory database and a scripted Graph API client.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from creativesync.config import Settings
from creativesync.database import Base
from creativesync.services.meta_graph_client import MetaAPIError
import creativesync.models  # noqa: F401 - register tables


NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        database_public_url="",
        meta_access_token="test-token",
        creative_cache_ttl_days=7,
        creative_fetch_batch_size=10,
        meta_image_hash_batch_size=50,
        dynamic_feed_video_policy="preview_only",
    )


class FakeGraphClient:
    """
    Scripted stand-in for MetaGraphClient.

    objects: id -> payload dict, or an Exception to raise
    images: hash -> adimages entry
    previews: creative id -> preview HTML
    """

    def __init__(
        self,
        objects: Optional[Dict[str, Any]] = None,
        images: Optional[Dict[str, Dict[str, Any]]] = None,
        previews: Optional[Dict[str, str]] = None,
        image_batch_error: Optional[Exception] = None,
    ):
        self.objects = objects or {}
        self.images = images or {}
        self.previews = previews or {}
        self.image_batch_error = image_batch_error
        self.calls: List[tuple] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def calls_to(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def fetch_object(self, object_id: str, fields: List[str]) -> Dict[str, Any]:
        self.calls.append(("fetch_object", object_id))
        value = self.objects.get(object_id)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise MetaAPIError("Unsupported get request", status_code=400, code=100)
        return value

    async def fetch_image_batch(self, ad_account_id: str, hashes: List[str], fields: List[str]) -> List[Dict[str, Any]]:
        self.calls.append(("fetch_image_batch", tuple(hashes)))
        if self.image_batch_error is not None and len(hashes) > 1:
            raise self.image_batch_error
        return [self.images[h] for h in hashes if h in self.images]

    async def fetch_previews(self, creative_id: str, ad_format: str) -> List[Dict[str, Any]]:
        self.calls.append(("fetch_previews", creative_id))
        body = self.previews.get(creative_id)
        return [{"body": body}] if body else []


def permission_error() -> MetaAPIError:
    return MetaAPIError(
        "(#10) Application does not have permission for this action",
        status_code=403,
        code=10,
    )


@pytest.fixture
def fake_client():
    return FakeGraphClient()
