"""
Meta Graph API client.
Authenticated GET calls for creatives, ad images, videos and previews.
"""
import json
import logging
import httpx
from typing import Optional, List, Dict, Any

from creativesync.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Graph API error codes
PERMISSION_ERROR_CODE = 10
PERMISSION_ERROR_RANGE = range(200, 300)
RATE_LIMIT_ERROR_CODES = {4, 17, 32, 613, 80000, 80004}
NOT_FOUND_ERROR_CODE = 100


class MetaAPIError(Exception):
    """Non-success response from the Graph API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
        subcode: Optional[int] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.subcode = subcode
        self.user_message = user_message

    @property
    def is_permission_error(self) -> bool:
        if self.code == PERMISSION_ERROR_CODE or self.code in PERMISSION_ERROR_RANGE:
            return True
        return "permission" in (self.message or "").lower()

    @property
    def is_rate_limit_error(self) -> bool:
        return self.code in RATE_LIMIT_ERROR_CODES

    @property
    def is_not_found(self) -> bool:
        return self.code == NOT_FOUND_ERROR_CODE or self.status_code == 404

    def __str__(self) -> str:
        return f"Meta API error (code={self.code}, subcode={self.subcode}): {self.user_message or self.message}"


def normalize_ad_account_id(ad_account_id: str) -> str:
    """Return the ad account id in the act_<id> form the Graph API expects."""
    account = (ad_account_id or "").strip()
    if not account:
        raise ValueError("ad_account_id is required")
    if account.startswith("act_"):
        return account
    return f"act_{account}"


class MetaGraphClient:
    """Thin async wrapper over the Graph API, scoped to one access token."""

    def __init__(
        self,
        access_token: str,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not access_token:
            raise ValueError("Meta access token is required")
        self.access_token = access_token
        self.settings = settings or get_settings()
        self._transport = transport

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = {**params, "access_token": self.access_token}
        async with httpx.AsyncClient(
            timeout=self.settings.meta_request_timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.get(
                f"{self.settings.meta_graph_api_base}/{path.lstrip('/')}",
                params=query,
            )

            if not response.is_success:
                raise self._build_error(response)

            return response.json()

    @staticmethod
    def _build_error(response: httpx.Response) -> MetaAPIError:
        try:
            error_data = response.json()
        except ValueError:
            return MetaAPIError(response.text[:500], status_code=response.status_code)

        error_obj = error_data.get("error", {}) if isinstance(error_data, dict) else {}
        if not isinstance(error_obj, dict):
            error_obj = {}
        return MetaAPIError(
            error_obj.get("message", response.text[:500]),
            status_code=response.status_code,
            code=error_obj.get("code"),
            subcode=error_obj.get("error_subcode"),
            user_message=error_obj.get("error_user_msg") or None,
        )

    async def fetch_object(self, object_id: str, fields: List[str]) -> Dict[str, Any]:
        """
        Fetch a single Graph object.

        Args:
            object_id: Creative, video or image id
            fields: Field names to request

        Returns:
            Raw JSON object
        """
        return await self._get(object_id, {"fields": ",".join(fields)})

    async def fetch_image_batch(
        self,
        ad_account_id: str,
        hashes: List[str],
        fields: List[str],
    ) -> List[Dict[str, Any]]:
        """
        Look up ad images by hash within an ad account.

        Returns:
            List of image dicts (hash, url variants, width, height)
        """
        account = normalize_ad_account_id(ad_account_id)
        result = await self._get(
            f"{account}/adimages",
            {
                # Graph expects a JSON array: ["hash1","hash2"]
                "hashes": json.dumps(list(hashes)),
                "fields": ",".join(fields),
            },
        )
        data = result.get("data", [])
        if not isinstance(data, list):
            logger.warning(f"Unexpected adimages response format: {type(data).__name__}")
            return []
        return data

    async def fetch_previews(self, creative_id: str, ad_format: str) -> List[Dict[str, Any]]:
        """
        Render ad previews for a creative.

        Returns:
            List of dicts with an HTML "body"
        """
        result = await self._get(f"{creative_id}/previews", {"ad_format": ad_format})
        data = result.get("data", [])
        return data if isinstance(data, list) else []
