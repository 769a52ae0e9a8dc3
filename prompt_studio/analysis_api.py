"""Image comparison endpoint."""

import logging
from typing import Dict, Optional, cast

import httpx
from fastapi import APIRouter, Depends, Request

from prompt_studio.config import Config
from prompt_studio.dependencies import get_config, get_http_client, get_key_manager
from prompt_studio.errors import RequestValidationFailed
from prompt_studio.key_manager import KeyManager
from prompt_studio.models import AnalysisRequest, Challenge, User, now_iso
from prompt_studio.providers import GeminiImageAnalyzer, build_analysis_result

logger = logging.getLogger(__name__)

analysis_router = APIRouter(prefix="/api/analysis", tags=["analysis"])


def _as_dict(value: object) -> Dict[str, object]:
    return cast(Dict[str, object], value) if isinstance(value, dict) else {}


def parse_analysis_request(body: Dict[str, object]) -> AnalysisRequest:
    generated = body.get("generatedImageBase64")
    user_prompt = body.get("userPrompt")
    target = body.get("targetImageBase64")

    if not generated:
        raise RequestValidationFailed(
            "Generated image base64 is required", code="MISSING_GENERATED_IMAGE"
        )
    if not user_prompt:
        raise RequestValidationFailed(
            "User prompt is required", code="MISSING_USER_PROMPT"
        )
    if not target:
        raise RequestValidationFailed(
            "Target image base64 is required", code="MISSING_TARGET_IMAGE"
        )

    user = _as_dict(body.get("user"))
    challenge = _as_dict(body.get("challenge"))

    return AnalysisRequest(
        user=User(
            email=str(user.get("email") or ""),
            id=str(user.get("id") or ""),
            display_name=cast(Optional[str], user.get("displayName")),
        ),
        challenge=Challenge(
            name=str(challenge.get("name") or "Unknown"),
            description=str(challenge.get("description") or ""),
            id=cast(Optional[str], challenge.get("id")),
        ),
        generated_image_base64=str(generated),
        user_prompt=str(user_prompt),
        target_image_base64=str(target),
    )


@analysis_router.post("/compare")
async def compare_images(
    request: Request,
    key_manager: KeyManager = Depends(get_key_manager),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    config: Config = Depends(get_config),
) -> Dict[str, object]:
    analysis_request = parse_analysis_request(_as_dict(await request.json()))
    logger.info("Analyzing images for challenge %r", analysis_request.challenge.name)

    analyzer = GeminiImageAnalyzer(
        http_client, config.gemini_base_url, config.gemini_analysis_model
    )

    async def work(api_key: str) -> str:
        return await analyzer.analyze(analysis_request, api_key)

    raw_text = await key_manager.execute_with_retry(work, "image-analysis")
    result = build_analysis_result(raw_text, analysis_request.user.first_name)

    return {"success": True, "result": result.to_dict(), "timestamp": now_iso()}
