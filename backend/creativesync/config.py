import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings


PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOCAL_ENV_FILE = PROJECT_ROOT / ".env.local"

if LOCAL_ENV_FILE.exists():
    load_dotenv(LOCAL_ENV_FILE, override=True)

DYNAMIC_FEED_VIDEO_POLICIES = ("preview_only", "resolve")


class Settings(BaseSettings):
    class Config:
        env_file = ".env"
        extra = "ignore"
    database_url: str = "sqlite:///./creatives.db"
    database_public_url: str = ""
    environment: str = "development"
    meta_graph_api_version: str = Field(default="v24.0")
    meta_access_token: str | None = Field(default=None)
    meta_request_timeout_seconds: float = Field(default=30.0)
    creative_cache_ttl_days: int = Field(default=7)
    creative_fetch_batch_size: int = Field(default=10)
    meta_image_hash_batch_size: int = Field(default=50)
    creative_preview_ad_format: str = Field(default="DESKTOP_FEED_STANDARD")
    # preview_only: dynamic feed videos are rendered from the creative preview,
    # video ids are not readable with the ads_read token.
    dynamic_feed_video_policy: str = Field(default="preview_only")

    @property
    def meta_graph_api_base(self) -> str:
        return f"https://graph.facebook.com/{self.meta_graph_api_version}"

    def get_database_url(self) -> str:
        """
        Get the appropriate database URL.
        Prefers DATABASE_PUBLIC_URL for local development (external access).
        Falls back to DATABASE_URL (internal URL).
        """
        public_url = os.getenv('DATABASE_PUBLIC_URL') or self.database_public_url
        internal_url = os.getenv('DATABASE_URL') or self.database_url

        if public_url:
            return public_url

        return internal_url

    def get_dynamic_feed_video_policy(self) -> str:
        value = (self.dynamic_feed_video_policy or "").strip().lower()
        if value not in DYNAMIC_FEED_VIDEO_POLICIES:
            return "preview_only"
        return value


@lru_cache()
def get_settings():
    return Settings()
