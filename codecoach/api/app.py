"""FastAPI application for codecoach.

``create_app`` constructs every service once and stores it on ``app.state``;
routes read them through ``codecoach.api.dependencies``. Tests pass fakes.
"""

from __future__ import annotations

import os

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from codecoach.api.routes.chat import router as chat_router
from codecoach.api.routes.env import router as env_router
from codecoach.api.routes.generate import router as generate_router
from codecoach.api.routes.github import router as github_router
from codecoach.api.routes.health import router as health_router
from codecoach.api.routes.projects import router as projects_router
from codecoach.api.routes.vision import router as vision_router
from codecoach.config import APP_VERSION, CODECOACH_ENV, GEMINI_VISION_MODEL
from codecoach.github.oauth import GitHubOAuthClient
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter, log_event
from codecoach.services.generation import GeminiAIService
from codecoach.services.vision import VisionService

logger = get_logger(__name__)

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CODECOACH_ALLOWED_ORIGINS", "").split(",")
    if origin.strip()
]

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8080",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return field names only; validation rules stay server-side.

    Side Effects:
        - Logs the validation errors
        - Increments api.validation_errors
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


def build_generation_service() -> GeminiAIService:
    """Service wired to the real provider SDKs (keys are checked on first call)."""
    from codecoach.llm.anthropic_client import AnthropicClient
    from codecoach.llm.gemini import GeminiClient
    from codecoach.llm.openai_client import OpenAIClient

    return GeminiAIService(
        gemini=GeminiClient(),
        openai=OpenAIClient(),
        anthropic=AnthropicClient(),
    )


def build_vision_service() -> VisionService:
    from codecoach.llm.gemini import GeminiClient

    return VisionService(GeminiClient(model_name=GEMINI_VISION_MODEL))


def create_app(
    service: GeminiAIService | None = None,
    vision: VisionService | None = None,
    github_client: GitHubOAuthClient | None = None,
    init_db: bool = True,
) -> FastAPI:
    """
    Build the application.

    Args:
        service: Generation service (default: real providers)
        vision: Vision service (default: Gemini vision model)
        github_client: OAuth client (default: credentials from env)
        init_db: Create tables on startup (idempotent)
    """
    app = FastAPI(title="codecoach API", version=APP_VERSION)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    origins = list(ALLOWED_ORIGINS)
    if CODECOACH_ENV == "development":
        origins.extend(DEV_ORIGINS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-User-Id", "X-Request-ID"],
    )

    if init_db:
        from codecoach.infrastructure.database import init_database, validate_schema

        logger.info("Initializing database schema...")
        init_database()
        validate_schema()

    app.state.generation_service = service or build_generation_service()
    app.state.vision_service = vision or build_vision_service()
    app.state.github_client = github_client or GitHubOAuthClient()

    app.include_router(health_router)
    app.include_router(generate_router)
    app.include_router(chat_router)
    app.include_router(vision_router)
    app.include_router(projects_router)
    app.include_router(github_router)
    app.include_router(env_router)

    log_event("api.startup", service="codecoach", version=APP_VERSION)
    return app


def main() -> None:
    """Run the API with uvicorn (console script ``codecoach-api``)."""
    import uvicorn

    uvicorn.run(
        "codecoach.api.app:create_app",
        factory=True,
        host=os.getenv("CODECOACH_HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
