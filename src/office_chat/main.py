# src/office_chat/main.py
"""Main entry point for the office chat application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from office_chat.api.v1 import chat_router, notifications_router
from office_chat.core.settings import settings
from office_chat.services.media import MediaHost
from office_chat.services.store import ChatStore

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Office team chat with presence and live updates",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(chat_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")

app.state.chat_store = None
app.state.media_host = None


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 with the first problem found."""
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": detail},
    )


@app.on_event("startup")
async def on_startup() -> None:
    store: ChatStore | None = app.state.chat_store
    if store is None:
        store = ChatStore(settings.redis_url)
        app.state.chat_store = store
    if not store.connected:
        await store.connect()

    if app.state.media_host is None:
        app.state.media_host = MediaHost()
    if not app.state.media_host.enabled:
        logger.info("Media host is not configured; uploads are disabled")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    store: ChatStore | None = app.state.chat_store
    if store is not None:
        await store.close()
    media_host: MediaHost | None = app.state.media_host
    if media_host is not None:
        await media_host.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Office team chat with presence and live updates",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("office_chat.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
