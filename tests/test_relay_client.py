"""
Unit tests for the relay HTTP client.
"""

import httpx
import pytest

from roleplay.errors import ConfigurationError, TransportError
from roleplay.services.relay_client import RelayClient


def client_for(handler):
    return RelayClient("http://relay.test/", http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_get_api_key():
    def handler(request):
        assert request.url.path == "/api/config"
        return httpx.Response(200, json={"apiKey": "sk-live", "status": "success"})

    assert await client_for(handler).get_api_key() == "sk-live"


@pytest.mark.asyncio
async def test_get_api_key_missing():
    def handler(request):
        return httpx.Response(500, json={"error": "OPENAI_API_KEY not found", "message": "Set OPENAI_API_KEY"})

    with pytest.raises(ConfigurationError) as exc_info:
        await client_for(handler).get_api_key()
    assert exc_info.value.message == "Set OPENAI_API_KEY"


@pytest.mark.asyncio
async def test_get_api_key_relay_down():
    def handler(request):
        raise httpx.ConnectError("refused")

    with pytest.raises(ConfigurationError):
        await client_for(handler).get_api_key()


@pytest.mark.asyncio
async def test_generate_feedback_returns_content():
    def handler(request):
        assert request.method == "POST"
        assert request.url.path == "/api/generate-feedback"
        return httpx.Response(200, json={"content": "{\"summary\": \"ok\"}"})

    content = await client_for(handler).generate_feedback({"system_prompt": "s", "user_message": "u"})
    assert content == "{\"summary\": \"ok\"}"


@pytest.mark.asyncio
async def test_generate_feedback_http_error():
    def handler(request):
        return httpx.Response(500, json={"error": "Failed to generate feedback"})

    with pytest.raises(TransportError, match="status: 500"):
        await client_for(handler).generate_feedback({})


@pytest.mark.asyncio
async def test_get_heygen_token_is_plain_text():
    def handler(request):
        assert request.method == "POST"
        assert request.url.path == "/api/heygen/get-access-token"
        return httpx.Response(200, text="tok-123\n")

    assert await client_for(handler).get_heygen_token() == "tok-123"


@pytest.mark.asyncio
async def test_get_heygen_token_failure():
    def handler(request):
        return httpx.Response(500, text="Failed to get access token")

    with pytest.raises(TransportError):
        await client_for(handler).get_heygen_token()


@pytest.mark.asyncio
async def test_supabase_config():
    def handler(request):
        return httpx.Response(200, json={"supabaseUrl": "https://x.supabase.co", "supabaseAnonKey": "anon"})

    config = await client_for(handler).get_supabase_config()
    assert config == {"supabaseUrl": "https://x.supabase.co", "supabaseAnonKey": "anon"}


@pytest.mark.asyncio
async def test_supabase_config_rejects_non_object():
    with pytest.raises(ConfigurationError, match="not available"):
        await client_for(lambda r: httpx.Response(200, json=["https://x.supabase.co", "anon"])).get_supabase_config()


@pytest.mark.asyncio
async def test_generate_feedback_rejects_non_object():
    with pytest.raises(TransportError, match="expected a JSON object"):
        await client_for(lambda r: httpx.Response(200, json="plain")).generate_feedback({"system_prompt": "s"})


@pytest.mark.asyncio
async def test_context_manager_closes_owned_client():
    async with RelayClient("http://relay.test") as relay:
        http = relay.http
    assert http.is_closed
