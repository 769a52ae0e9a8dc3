"""Image generation and challenge image endpoints."""

import logging
from typing import Dict

import httpx
from fastapi import APIRouter, Depends, Request

from prompt_studio.config import Config
from prompt_studio.dependencies import get_config, get_http_client, get_key_manager
from prompt_studio.errors import RequestValidationFailed
from prompt_studio.key_manager import KeyManager
from prompt_studio.models import now_iso
from prompt_studio.providers import (
    GeminiImageGenerator,
    PollinationsImageGenerator,
    fetch_image_base64,
)

logger = logging.getLogger(__name__)

MAX_PROMPT_LENGTH = 2000
DEFAULT_SERVICE = "gemini-imagen-3"

images_router = APIRouter(prefix="/api/images", tags=["images"])


def resolve_provider(provider: object, service: str) -> str:
    """Map the client's service name onto a provider, defaulting to Gemini."""
    if "pollinations" in service:
        return "pollinations"
    if "gemini" in service:
        return "gemini"
    return "pollinations" if provider == "pollinations" else "gemini"


@images_router.post("/generate")
async def generate_image(
    request: Request,
    key_manager: KeyManager = Depends(get_key_manager),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    config: Config = Depends(get_config),
) -> Dict[str, object]:
    body = await request.json()
    if not isinstance(body, dict):
        body = {}
    prompt = body.get("prompt")
    service = str(body.get("service") or DEFAULT_SERVICE)

    if not isinstance(prompt, str) or not prompt.strip():
        raise RequestValidationFailed("Prompt is required", code="MISSING_PROMPT")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise RequestValidationFailed(
            f"Prompt is too long (max {MAX_PROMPT_LENGTH} characters)",
            code="PROMPT_TOO_LONG",
        )

    provider = resolve_provider(body.get("provider"), service)
    logger.info("Image generation request (provider=%s, service=%s)", provider, service)

    if provider == "pollinations":
        pollinations = PollinationsImageGenerator(
            http_client, config.pollinations_base_url
        )
        image_base64 = await pollinations.generate(prompt, service)
        model = "Pollinations AI"
    else:
        generator = GeminiImageGenerator(
            http_client, config.gemini_base_url, config.gemini_image_model
        )

        async def work(api_key: str) -> str:
            return await generator.generate(prompt, service, api_key)

        image_base64 = await key_manager.execute_with_retry(work, "image-generation")
        model = f"Google Gemini {config.gemini_image_model}"

    return {
        "success": True,
        "imageBase64": image_base64,
        "provider": provider,
        "model": model,
        "timestamp": now_iso(),
    }


@images_router.post("/local")
async def get_local_image(
    request: Request,
    http_client: httpx.AsyncClient = Depends(get_http_client),
    config: Config = Depends(get_config),
) -> Dict[str, object]:
    """Fetch a challenge image from the frontend origin as base64."""
    body = await request.json()
    if not isinstance(body, dict):
        body = {}
    image_url = body.get("imageUrl")
    if not isinstance(image_url, str) or not image_url.strip():
        raise RequestValidationFailed(
            "Image URL is required and must be a string", code="INVALID_IMAGE_URL"
        )

    origin = request.headers.get("origin") or config.frontend_origin
    image_base64 = await fetch_image_base64(http_client, image_url.strip(), origin)
    return {
        "success": True,
        "imageBase64": image_base64,
        "imageUrl": image_url.strip(),
        "timestamp": now_iso(),
    }
