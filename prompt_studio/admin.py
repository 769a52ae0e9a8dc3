"""Status endpoints for the Gemini key pool."""

import logging
from typing import Dict

from fastapi import APIRouter, Depends

from prompt_studio.dependencies import get_key_manager
from prompt_studio.key_manager import KeyManager
from prompt_studio.models import now_iso

logger = logging.getLogger(__name__)

status_router = APIRouter(prefix="/api/status", tags=["status"])


@status_router.get("/keys")
async def get_key_status(
    key_manager: KeyManager = Depends(get_key_manager),
) -> Dict[str, object]:
    """Get status of all API keys in the pool (masked)."""
    status = await key_manager.get_status()
    return {
        "success": True,
        "data": {"timestamp": now_iso(), "keyManager": status},
        "timestamp": now_iso(),
    }


@status_router.post("/keys/reset")
async def reset_key_metrics(
    key_manager: KeyManager = Depends(get_key_manager),
) -> Dict[str, object]:
    """Reset usage and error counters and unblock every key."""
    logger.info("Key manager metrics reset requested")
    await key_manager.reset_metrics()
    return {
        "success": True,
        "message": "Key metrics reset successfully",
        "timestamp": now_iso(),
    }
