"""
Cobalt Chat - Main Application Entry Point

Authenticated chat sessions with assistant replies streamed over SSE.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.logger import logger

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    settings.validate_chat_config()
    logger.info(f"Starting Cobalt Chat (chat {'enabled' if settings.chat_enabled else 'disabled'})...")

    from app.infrastructure.local.database import init_db

    await init_db()

    yield

    # Shutdown
    logger.info("Shutting down Cobalt Chat...")
    from app.api.deps import get_llm_provider

    if get_llm_provider.cache_info().currsize:
        await get_llm_provider().aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Cobalt Chat",
        description="Chat sessions with streamed LLM replies",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "Retry-After",
            "X-RateLimit-Limit-Minute",
            "X-RateLimit-Remaining-Minute",
            "X-RateLimit-Reset-Minute",
            "X-RateLimit-Limit-Daily",
            "X-RateLimit-Remaining-Daily",
            "X-RateLimit-Reset-Daily",
        ],
    )

    # Include routers
    from app.api import auth, chat, models

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(models.router, prefix="/api/models", tags=["models"])
    if settings.chat_enabled:
        app.include_router(chat.router, prefix="/api/chat", tags=["chat"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "chat_enabled": settings.chat_enabled,
            "version": VERSION,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
