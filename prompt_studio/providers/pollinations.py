"""Keyless image generation through Pollinations."""

import base64
import logging
from urllib.parse import quote

import httpx

from prompt_studio.errors import ProviderError

logger = logging.getLogger(__name__)

POLLINATIONS_MODEL_MAP = {
    "pollinations-flux": "flux",
    "pollinations-kontext": "realistic",
    "pollinations-krea": "anime",
}


class PollinationsImageGenerator:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://image.pollinations.ai",
    ):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")

    async def generate(self, prompt: str, service: str = "pollinations-flux") -> str:
        model = POLLINATIONS_MODEL_MAP.get(service, "flux")
        logger.info("Fetching image from Pollinations (model=%s)", model)

        try:
            response = await self.http_client.get(
                f"{self.base_url}/prompt/{quote(prompt, safe='')}",
                params={
                    "width": "1024",
                    "height": "1024",
                    "model": model,
                    "nologo": "true",
                },
            )
        except httpx.RequestError as exc:
            logger.error("Pollinations request error: %s", exc)
            raise ProviderError(
                "Failed to generate image with Pollinations",
                code="POLLINATIONS_GENERATION_FAILED",
            ) from exc

        if not response.is_success:
            raise ProviderError(
                f"Pollinations API failed: {response.reason_phrase}",
                upstream_status=response.status_code,
                code="POLLINATIONS_API_ERROR",
            )

        return base64.b64encode(response.content).decode("ascii")
