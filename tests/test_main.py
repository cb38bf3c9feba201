from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
from fastapi.testclient import TestClient

from roleplay.config.settings import ServerSettings
from roleplay.errors import ConfigurationError, TransportError
from roleplay.main import app, get_heygen_api, get_openai_client, get_settings

client = TestClient(app)


@pytest.fixture
def settings():
    current = ServerSettings(
        openai_api_key="sk-test",
        supabase_url="https://db.supabase.co",
        supabase_anon_key="anon-key",
        heygen_api_key="hg-key",
    )
    app.dependency_overrides[get_settings] = lambda: current
    yield current
    app.dependency_overrides.clear()


@pytest.fixture
def openai_client(settings):
    fake = MagicMock()
    fake.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content='{"summary": "Good"}'))]
    ))
    app.dependency_overrides[get_openai_client] = lambda: fake
    return fake


@pytest.fixture
def heygen(settings):
    fake = MagicMock()
    fake.create_token = AsyncMock(return_value="tok-123")
    fake.list_avatars = AsyncMock(return_value={"data": [{"avatar_id": "Anna_public"}]})
    fake.list_languages = AsyncMock(return_value={"data": [{"language_name": "English"}]})
    app.dependency_overrides[get_heygen_api] = lambda: fake
    return fake


def test_config_returns_api_key(settings):
    response = client.get("/api/config")
    assert response.status_code == 200
    assert response.json() == {"apiKey": "sk-test", "status": "success"}


def test_config_without_key(settings):
    settings.openai_api_key = None
    response = client.get("/api/config")
    assert response.status_code == 500
    assert "OPENAI_API_KEY" in response.json()["error"]
    assert "message" in response.json()


def test_supabase_config(settings):
    response = client.get("/api/supabase-config")
    assert response.status_code == 200
    assert response.json() == {
        "supabaseUrl": "https://db.supabase.co",
        "supabaseAnonKey": "anon-key",
        "status": "success",
    }


def test_supabase_config_missing_key(settings):
    settings.supabase_anon_key = None
    response = client.get("/api/supabase-config")
    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Supabase configuration not found"
    assert body["debug"] == {"urlExists": True, "anonKeyExists": False}


def test_generate_feedback(openai_client):
    response = client.post("/api/generate-feedback", json={"system_prompt": "You grade.", "user_message": "Q and A"})

    assert response.status_code == 200
    assert response.json() == {"content": '{"summary": "Good"}'}
    kwargs = openai_client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_tokens"] == 1500
    assert kwargs["temperature"] == 0.3
    assert kwargs["messages"] == [
        {"role": "system", "content": "You grade."},
        {"role": "user", "content": "Q and A"},
    ]


def test_generate_feedback_requires_prompt_and_message(openai_client):
    response = client.post("/api/generate-feedback", json={"system_prompt": "You grade."})
    assert response.status_code == 400
    assert response.json() == {"error": "system_prompt and user_message are required"}


def test_generate_feedback_without_key(settings):
    app.dependency_overrides[get_openai_client] = lambda: None
    response = client.post("/api/generate-feedback", json={"system_prompt": "s", "user_message": "u"})
    assert response.status_code == 500
    assert response.json() == {"error": "OpenAI API key not configured"}


def test_generate_feedback_upstream_failure(openai_client):
    openai_client.chat.completions.create.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    )
    response = client.post("/api/generate-feedback", json={"system_prompt": "s", "user_message": "u"})
    assert response.status_code == 500
    assert response.json()["error"] == "Failed to generate feedback"
    assert "details" in response.json()


def test_health_check(settings):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Server is running", "hasApiKey": True}


def test_heygen_token_is_plain_text(heygen):
    response = client.post("/api/heygen/get-access-token")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "tok-123"


def test_heygen_token_failure(heygen):
    heygen.create_token.side_effect = ConfigurationError("HEYGEN_API_KEY not configured", setting="HEYGEN_API_KEY")
    response = client.post("/api/heygen/get-access-token")
    assert response.status_code == 500
    assert "HEYGEN_API_KEY not configured" in response.text


def test_heygen_lists(heygen):
    assert client.get("/api/heygen/list-avatars").json() == {"data": [{"avatar_id": "Anna_public"}]}
    assert client.get("/api/heygen/list-languages").json() == {"data": [{"language_name": "English"}]}


def test_heygen_upstream_error_is_json(heygen):
    heygen.list_avatars.side_effect = TransportError("HeyGen returned 401", service="heygen")
    response = client.get("/api/heygen/list-avatars")
    assert response.status_code == 502
    assert response.json() == {"error": "HeyGen returned 401", "service": "heygen"}


def test_root_endpoint():
    response = client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Interview Roleplay Relay"
    assert body["version"] == "1.0.0"
    assert "/api/health" in body["endpoints"]


def test_app_routes():
    route_paths = [route.path for route in app.routes]
    for path in [
        "/api/config",
        "/api/supabase-config",
        "/api/generate-feedback",
        "/api/health",
        "/api/heygen/get-access-token",
        "/api/heygen/list-avatars",
        "/api/heygen/list-languages",
        "/",
    ]:
        assert path in route_paths
