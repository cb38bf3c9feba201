"""
HTTP client for the roleplay relay.

The relay holds the vendor secrets. Clients use this module to fetch the
OpenAI key, forward feedback prompts and obtain HeyGen session tokens.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from roleplay.config.constants import DEFAULT_RELAY_URL, HTTP_TIMEOUT_SECONDS, LOGGER_NAME
from roleplay.errors import ConfigurationError, TransportError

logger = logging.getLogger(LOGGER_NAME)


class RelayClient:
    """
    Async client for the relay endpoints.

    Args:
        base_url: Relay root URL
        http_client: Optional pre-built ``httpx.AsyncClient`` (tests pass one
            with a mock transport); when omitted the client owns its own.
    """

    def __init__(self, base_url: str = DEFAULT_RELAY_URL, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def get_api_key(self) -> str:
        """Return the OpenAI API key served by ``GET /api/config``.

        Raises:
            ConfigurationError: If the relay is unreachable or has no key
        """
        try:
            response = await self.http.get(self._url("/api/config"))
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ConfigurationError(f"Could not load API key from relay: {e}", setting="OPENAI_API_KEY") from e

        api_key = data.get("apiKey") if isinstance(data, dict) else None
        if not api_key:
            message = data.get("message") if isinstance(data, dict) else None
            raise ConfigurationError(message or "No API key found", setting="OPENAI_API_KEY")

        logger.info("API key loaded from relay")
        return api_key

    async def get_supabase_config(self) -> Dict[str, str]:
        try:
            response = await self.http.get(self._url("/api/supabase-config"))
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ConfigurationError(f"Could not load Supabase configuration: {e}") from e
        if not isinstance(data, dict) or not data.get("supabaseUrl") or not data.get("supabaseAnonKey"):
            raise ConfigurationError("Supabase configuration not available")
        return {"supabaseUrl": data["supabaseUrl"], "supabaseAnonKey": data["supabaseAnonKey"]}

    async def generate_feedback(self, payload: Dict[str, Any]) -> Optional[str]:
        """POST a feedback prompt and return the model's text content.

        Raises:
            TransportError: On network failure or a non-2xx status
        """
        try:
            response = await self.http.post(self._url("/api/generate-feedback"), json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"Feedback request failed: {e}", service="relay") from e
        if response.is_error:
            raise TransportError(f"HTTP error! status: {response.status_code}", service="relay")
        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Invalid feedback response: {e}", service="relay") from e
        if not isinstance(data, dict):
            raise TransportError("Invalid feedback response: expected a JSON object", service="relay")
        return data.get("content")

    async def get_heygen_token(self) -> str:
        try:
            response = await self.http.post(self._url("/api/heygen/get-access-token"))
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to get access token: {e}", service="heygen") from e
        if response.is_error:
            raise TransportError(f"Failed to get access token: {response.text}", service="heygen")
        return response.text.strip()

    async def close(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
