"""
Persona Chat - Main FastAPI Application
"""

import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .config import settings
from .api import auth_router, chat_router, conversations_router, usage_router, catalog_router
from .core import ChatError, TitleGenerator, Unauthorized
from .core.logging_config import setup_logging
from .llm import provider_from_settings
from .middleware import RequestLoggingMiddleware
from .storage import SQLChatStore, create_engine, init_models

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    setup_logging(settings)

    engine = create_engine(settings.database_url, echo=settings.database_echo)
    await init_models(engine)
    store = SQLChatStore(engine)
    llm_provider = provider_from_settings(settings)

    app.state.store = store
    app.state.llm_provider = llm_provider
    app.state.title_generator = TitleGenerator(
        store,
        llm_provider,
        model=settings.title_model,
        max_length=settings.placeholder_title_length,
    )

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Database: {engine.url.render_as_string(hide_password=True)}")
    logger.info(f"LLM provider: {llm_provider.name if llm_provider else 'not configured'}")
    logger.info(f"Log level: {settings.log_level.upper()}")
    logger.info(f"Debug mode: {settings.debug}")
    if llm_provider is None:
        logger.warning("LLM_API_KEY is not set; chat turns will fail with 502")
    yield
    # Shutdown
    await app.state.title_generator.wait_idle(settings.title_shutdown_timeout)
    await engine.dispose()
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Streaming chat sessions with AI persona characters",
    lifespan=lifespan
)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Render domain errors raised before a turn starts streaming."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Conversation-Id", "X-User-Message-Id"],
)

# Add request logging middleware (after CORS)
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(auth_router)
app.include_router(chat_router)
app.include_router(conversations_router)
app.include_router(usage_router)
app.include_router(catalog_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "llm_configured": getattr(app.state, "llm_provider", None) is not None,
        "version": settings.app_version
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "persona_chat.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
