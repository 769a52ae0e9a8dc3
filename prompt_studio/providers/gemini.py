"""Gemini REST adapters for image generation and image comparison.

Each call takes the API key chosen by the key manager; the adapters never
pick or cache keys themselves.
"""

import logging
from typing import Dict, List, Optional, cast

import httpx

from prompt_studio.errors import ProviderError
from prompt_studio.models import AnalysisRequest

logger = logging.getLogger(__name__)

PROMPT_ENHANCERS = {
    "gemini-imagen-4-fast": (
        ", simple, quick sketch, minimalist style. "
        "Don't add any additional effects or styles"
    ),
    "gemini-imagen-4-ultra": (
        ", ultra realistic, 4k, detailed, photorealistic. "
        "Don't add any additional effects or styles"
    ),
}
DEFAULT_ENHANCER = ". Don't add any additional effects or styles"

ANALYSIS_RESPONSE_SCHEMA: Dict[str, object] = {
    "type": "object",
    "properties": {
        "similarityScore": {
            "type": "number",
            "description": "Similarity from 0-100 between the generated and target image.",
        },
        "feedback": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Up to 3 actionable prompt improvement suggestions.",
        },
    },
    "required": ["similarityScore", "feedback"],
}


def enhance_prompt(prompt: str, service: str) -> str:
    return prompt + PROMPT_ENHANCERS.get(service, DEFAULT_ENHANCER)


def _error_message(response: httpx.Response) -> str:
    """Pull the message out of a Google-style error body if there is one."""
    try:
        data = response.json()
        error_obj = data.get("error", {}) if isinstance(data, dict) else {}
        if isinstance(error_obj, dict):
            message = cast(Dict[str, object], error_obj).get("message")
            if message:
                return f"{response.reason_phrase}: {message}"
    except ValueError:
        pass
    return response.reason_phrase or "Upstream error"


def raise_for_provider_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    raise ProviderError(_error_message(response), upstream_status=response.status_code)


class GeminiImageGenerator:
    """Text-to-image via the Imagen ``:predict`` endpoint."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://generativelanguage.googleapis.com",
        model: str = "imagen-3.0-generate-002",
    ):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.model = model

    async def generate(self, prompt: str, service: str, api_key: str) -> str:
        """Return the generated JPEG as base64."""
        final_prompt = enhance_prompt(prompt, service)
        logger.info("Generating image with %s (service=%s)", self.model, service)

        response = await self.http_client.post(
            f"{self.base_url}/v1beta/models/{self.model}:predict",
            headers={"x-goog-api-key": api_key},
            json={
                "instances": [{"prompt": final_prompt}],
                "parameters": {
                    "sampleCount": 1,
                    "aspectRatio": "1:1",
                    "outputOptions": {"mimeType": "image/jpeg"},
                },
            },
        )
        raise_for_provider_status(response)

        predictions = cast(List[Dict[str, object]], response.json().get("predictions") or [])
        image_bytes: Optional[object] = (
            predictions[0].get("bytesBase64Encoded") if predictions else None
        )
        if not image_bytes:
            raise ProviderError("No image returned from Gemini", code="NO_IMAGE_GENERATED")
        return str(image_bytes)


class GeminiImageAnalyzer:
    """Target vs generated image comparison via ``:generateContent``."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://generativelanguage.googleapis.com",
        model: str = "gemini-2.5-flash",
    ):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.model = model

    async def analyze(self, request: AnalysisRequest, api_key: str) -> str:
        """Return the raw JSON text produced by the model."""
        user_name = request.user.first_name
        system_prompt = (
            "You are an image analysis assistant for a prompt engineering "
            f"practice tool. The student {user_name} is trying to generate an "
            "image that matches a challenge. Judge how well the generated "
            "image satisfies the challenge and resembles the target image, be "
            "strict but fair, and give 2-3 concrete suggestions to improve "
            "the prompt."
        )
        user_turn = (
            f'Challenge Name: "{request.challenge.name}"\n'
            f'Challenge Description: "{request.challenge.description}"\n'
            f'Student\'s Prompt: "{request.user_prompt}"\n'
            "Return JSON with similarityScore (0-100) and feedback "
            "(2-3 suggestions)."
        )

        response = await self.http_client.post(
            f"{self.base_url}/v1beta/models/{self.model}:generateContent",
            headers={"x-goog-api-key": api_key},
            json={
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "contents": [
                    {
                        "role": "user",
                        "parts": [
                            {"text": "TARGET IMAGE (what the student should match):"},
                            {
                                "inlineData": {
                                    "mimeType": "image/jpeg",
                                    "data": request.target_image_base64,
                                }
                            },
                            {"text": "GENERATED IMAGE (what the student created):"},
                            {
                                "inlineData": {
                                    "mimeType": "image/jpeg",
                                    "data": request.generated_image_base64,
                                }
                            },
                            {"text": user_turn},
                        ],
                    }
                ],
                "generationConfig": {
                    "responseMimeType": "application/json",
                    "responseSchema": ANALYSIS_RESPONSE_SCHEMA,
                },
            },
        )
        raise_for_provider_status(response)

        text = _candidate_text(response.json())
        if not text:
            raise ProviderError("Empty response from Gemini API")
        return text


def _candidate_text(data: Dict[str, object]) -> str:
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    content = cast(Dict[str, object], candidates[0]).get("content") or {}
    parts = cast(Dict[str, object], content).get("parts") or []
    texts = [
        str(part.get("text", ""))
        for part in cast(List[Dict[str, object]], parts)
        if isinstance(part, dict)
    ]
    return "".join(texts).strip()
