"""FastAPI application for the Prompt Studio API."""

import logging
from contextlib import asynccontextmanager
from typing import Dict

import httpx
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from prompt_studio.admin import status_router
from prompt_studio.analysis_api import analysis_router
from prompt_studio.config import load_config
from prompt_studio.errors import ApiError
from prompt_studio.images_api import images_router
from prompt_studio.key_manager import KeyManager
from prompt_studio.models import now_iso

logger = logging.getLogger(__name__)

SERVICE_NAME = "Prompt Studio API"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: startup and shutdown."""
    config = load_config()

    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))

    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(10.0, read=120.0, write=30.0),
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
    )

    key_manager = KeyManager(config)
    key_manager.start_cleanup(config.key_cleanup_interval_seconds)

    app.state.config = config
    app.state.http_client = http_client
    app.state.key_manager = key_manager

    logger.info("%s started with %d Gemini keys", SERVICE_NAME, len(key_manager.pool))

    yield

    await key_manager.stop_cleanup()
    await http_client.aclose()
    logger.info("%s stopped", SERVICE_NAME)


app = FastAPI(title=SERVICE_NAME, version=VERSION, lifespan=lifespan)

app.include_router(status_router)
app.include_router(images_router)
app.include_router(analysis_router)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.message,
            "code": exc.code,
            "timestamp": now_iso(),
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "timestamp": now_iso(),
        },
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info(
        "%s %s - %s -> %d",
        request.method,
        request.url.path,
        request.headers.get("user-agent", "Unknown"),
        response.status_code,
    )
    return response


@app.get("/")
async def root(request: Request) -> Dict[str, object]:
    key_manager = request.app.state.key_manager
    status = await key_manager.get_status()
    return {
        "service": SERVICE_NAME,
        "status": "running",
        "keys_available": status["availableKeys"],
        "total_keys": status["totalKeys"],
    }


@app.get("/health")
async def health_check(request: Request) -> Dict[str, object]:
    """Health check endpoint with key pool counts."""
    key_manager = request.app.state.key_manager
    status = await key_manager.get_status()
    return {
        "success": True,
        "data": {
            "status": "OK",
            "service": SERVICE_NAME,
            "version": VERSION,
            "timestamp": now_iso(),
            "keyCount": status["totalKeys"],
            "keysAvailable": status["availableKeys"],
        },
        "timestamp": now_iso(),
    }


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import uvicorn

    config = load_config()
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    run()
