"""
FastAPI relay for the interview roleplay application.

The relay is the only process that reads vendor secrets from the environment.
It hands the OpenAI key to local clients, proxies feedback prompts to OpenAI
Chat Completions, exchanges the HeyGen key for streaming tokens and reports
the Supabase project configuration.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from openai import AsyncOpenAI, OpenAIError

from roleplay import __version__
from roleplay.config.logging_config import configure_logging
from roleplay.config.settings import ServerSettings, load_environment
from roleplay.errors import RoleplayError
from roleplay.models.feedback import FeedbackRequest, FeedbackResponse
from roleplay.services.heygen_api import HeyGenAPI

# Load environment variables from .env file if it exists
load_environment()

# Configure logging
logger = configure_logging()


def get_settings() -> ServerSettings:
    return ServerSettings.from_env()


def get_openai_client(settings: ServerSettings = Depends(get_settings)):
    if not settings.openai_api_key:
        return None
    return AsyncOpenAI(api_key=settings.openai_api_key)


async def get_heygen_api(settings: ServerSettings = Depends(get_settings)):
    api = HeyGenAPI(settings.heygen_api_key)
    try:
        yield api
    finally:
        await api.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(f"Relay starting on http://{settings.host}:{settings.port}")
    logger.info(f"OpenAI API key loaded: {'yes' if settings.openai_api_key else 'no'}")
    logger.info(f"Supabase URL loaded: {'yes' if settings.supabase_url else 'no'}")
    logger.info(f"Supabase anon key loaded: {'yes' if settings.supabase_anon_key else 'no'}")
    logger.info(f"HeyGen API key loaded: {'yes' if settings.heygen_api_key else 'no'}")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not found in environment")
    if not settings.supabase_url or not settings.supabase_anon_key:
        logger.warning("Supabase configuration incomplete")
    yield


# Create FastAPI application
app = FastAPI(
    title="Interview Roleplay Relay",
    description="Configuration, feedback and avatar-token relay for interview practice sessions",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RoleplayError)
async def roleplay_error_handler(request: Request, exc: RoleplayError):
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, **(exc.payload or {})})


@app.get("/api/config")
async def get_config(settings: ServerSettings = Depends(get_settings)):
    """Return the OpenAI API key for the realtime client."""
    if not settings.openai_api_key:
        return JSONResponse(
            status_code=500,
            content={
                "error": "OPENAI_API_KEY not found in environment variables",
                "message": "Please make sure you have set OPENAI_API_KEY in your .env file",
            },
        )
    return {"apiKey": settings.openai_api_key, "status": "success"}


@app.get("/api/supabase-config")
async def get_supabase_config(settings: ServerSettings = Depends(get_settings)):
    """Return the Supabase project URL and anonymous key."""
    logger.info(
        f"Supabase config request: url exists={bool(settings.supabase_url)}, "
        f"anon key exists={bool(settings.supabase_anon_key)}"
    )
    if not settings.supabase_url or not settings.supabase_anon_key:
        return JSONResponse(
            status_code=500,
            content={
                "error": "Supabase configuration not found",
                "message": (
                    "Please make sure SUPABASE_URL_ROLEPLAY_PROJECT and "
                    "SUPABASE_ANON_KEY_ROLEPLAY_PROJECT are set in your .env file"
                ),
                "debug": {
                    "urlExists": bool(settings.supabase_url),
                    "anonKeyExists": bool(settings.supabase_anon_key),
                },
            },
        )
    return {
        "supabaseUrl": settings.supabase_url,
        "supabaseAnonKey": settings.supabase_anon_key,
        "status": "success",
    }


@app.post("/api/generate-feedback", response_model=FeedbackResponse)
async def generate_feedback(body: FeedbackRequest, client=Depends(get_openai_client)):
    """Forward a feedback prompt to OpenAI Chat Completions.

    Returns:
        dict: ``{"content": <model reply>}``
    """
    if not body.system_prompt or not body.user_message:
        return JSONResponse(status_code=400, content={"error": "system_prompt and user_message are required"})
    if client is None:
        return JSONResponse(status_code=500, content={"error": "OpenAI API key not configured"})

    try:
        response = await client.chat.completions.create(
            model=body.model,
            messages=[
                {"role": "system", "content": body.system_prompt},
                {"role": "user", "content": body.user_message},
            ],
            max_tokens=body.max_tokens,
            temperature=body.temperature,
        )
        content = response.choices[0].message.content
    except (OpenAIError, IndexError, AttributeError) as e:
        logger.error(f"Error generating feedback: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to generate feedback", "details": str(e)})

    return FeedbackResponse(content=content)


@app.get("/api/health")
async def health_check(settings: ServerSettings = Depends(get_settings)):
    """Health check endpoint for monitoring system status."""
    return {
        "status": "ok",
        "message": "Server is running",
        "hasApiKey": bool(settings.openai_api_key),
    }


@app.post("/api/heygen/get-access-token", response_class=PlainTextResponse)
async def get_heygen_access_token(heygen: HeyGenAPI = Depends(get_heygen_api)):
    """Exchange the HeyGen API key for a streaming token, returned as plain text."""
    try:
        token = await heygen.create_token()
    except RoleplayError as e:
        logger.error(f"Failed to create HeyGen token: {e.message}")
        return PlainTextResponse(f"Failed to get access token: {e.message}", status_code=500)
    return PlainTextResponse(token)


@app.get("/api/heygen/list-avatars")
async def list_heygen_avatars(heygen: HeyGenAPI = Depends(get_heygen_api)):
    return await heygen.list_avatars()


@app.get("/api/heygen/list-languages")
async def list_heygen_languages(heygen: HeyGenAPI = Depends(get_heygen_api)):
    """Languages with English first, then alphabetical."""
    return await heygen.list_languages()


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "name": "Interview Roleplay Relay",
        "description": "Configuration, feedback and avatar-token relay for interview practice sessions",
        "version": __version__,
        "endpoints": {
            "/api/config": "OpenAI API key for the realtime client",
            "/api/supabase-config": "Supabase project configuration",
            "/api/generate-feedback": "Chat completion for answer feedback",
            "/api/health": "Health check endpoint",
            "/api/heygen/get-access-token": "HeyGen streaming token",
            "/api/heygen/list-avatars": "Available HeyGen avatars",
            "/api/heygen/list-languages": "Available HeyGen languages",
        },
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)
