"""
Server-side calls to the HeyGen REST API.

Only the relay holds ``HEYGEN_API_KEY``. It exchanges the key for short-lived
streaming tokens and proxies the avatar and language listings so clients never
see the key.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from roleplay.config.constants import HEYGEN_API_BASE, HTTP_TIMEOUT_SECONDS, LOGGER_NAME
from roleplay.errors import ConfigurationError, TransportError

logger = logging.getLogger(LOGGER_NAME)

CREATE_TOKEN_PATH = "/v1/streaming.create_token"
LIST_AVATARS_PATH = "/v1/streaming/avatar.list"
LIST_LANGUAGES_PATH = "/v2/video_translate/target_languages"

ENGLISH = "English"


def _language_name(language: Any) -> str:
    if isinstance(language, dict):
        return language.get("language_name") or language.get("language") or ""
    return str(language)


def normalize_languages(payload: Dict[str, Any]) -> Dict[str, List[Any]]:
    """
    Return ``{"data": [...]}`` with English first and the rest sorted by name.

    Accepts both ``{"data": [...]}`` and ``{"data": {"languages": [...]}}``.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if isinstance(data, dict):
        data = data.get("languages")
    languages = list(data) if isinstance(data, list) else []

    english = [lang for lang in languages if _language_name(lang) == ENGLISH][:1]
    others = [lang for lang in languages if not english or lang is not english[0]]
    others.sort(key=_language_name)
    return {"data": english + others}


class HeyGenAPI:
    """
    Thin async wrapper over the HeyGen endpoints the relay exposes.

    Args:
        api_key: HeyGen API key
        http_client: Optional ``httpx.AsyncClient``
        base_url: HeyGen API root
    """

    def __init__(
        self,
        api_key: Optional[str],
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = HEYGEN_API_BASE,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigurationError("HEYGEN_API_KEY not configured", setting="HEYGEN_API_KEY")
        return {"X-Api-Key": self.api_key, "Accept": "application/json"}

    async def _request(self, method: str, path: str) -> Dict[str, Any]:
        headers = self._headers()
        try:
            response = await self.http.request(method, f"{self.base_url}{path}", headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"HeyGen request failed: {e}", service="heygen") from e
        if response.is_error:
            raise TransportError(
                f"HeyGen returned {response.status_code}: {response.text}",
                service="heygen",
            )
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid HeyGen response: {e}", service="heygen") from e

    async def create_token(self) -> str:
        """Exchange the API key for a streaming session token."""
        payload = await self._request("POST", CREATE_TOKEN_PATH)
        token = (payload.get("data") or {}).get("token")
        if not token:
            raise TransportError("HeyGen response did not contain a token", service="heygen")
        logger.info("HeyGen streaming token created")
        return token

    async def list_avatars(self) -> Dict[str, Any]:
        return await self._request("GET", LIST_AVATARS_PATH)

    async def list_languages(self) -> Dict[str, List[Any]]:
        return normalize_languages(await self._request("GET", LIST_LANGUAGES_PATH))

    async def close(self) -> None:
        if self._owns_client:
            await self.http.aclose()
