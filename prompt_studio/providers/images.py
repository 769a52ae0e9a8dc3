"""Fetching challenge reference images from the frontend origin."""

import base64
import logging

import httpx

from prompt_studio.errors import ApiError

logger = logging.getLogger(__name__)


def resolve_image_url(image_url: str, origin: str) -> str:
    if image_url.startswith(("http://", "https://")):
        return image_url
    origin = origin.rstrip("/")
    if image_url.startswith("/"):
        return f"{origin}{image_url}"
    return f"{origin}/{image_url}"


async def fetch_image_base64(
    http_client: httpx.AsyncClient, image_url: str, origin: str
) -> str:
    full_url = resolve_image_url(image_url, origin)
    logger.info("Fetching challenge image from %s", full_url)

    try:
        response = await http_client.get(full_url)
    except httpx.RequestError as exc:
        logger.error("Request error fetching %s: %s", full_url, exc)
        raise ApiError(
            "Failed to fetch image", status_code=404, code="IMAGE_NOT_FOUND"
        ) from exc

    if not response.is_success:
        raise ApiError(
            f"Failed to fetch image: {response.reason_phrase}",
            status_code=404,
            code="IMAGE_NOT_FOUND",
        )
    return base64.b64encode(response.content).decode("ascii")
