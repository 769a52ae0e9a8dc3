"""Configuration management for Prompt Studio API."""

import os
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv

from prompt_studio.errors import ConfigurationError


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    api_keys: List[str]
    port: int = 8000
    host: str = "0.0.0.0"
    max_retries: int = 3
    rate_limit_block_seconds: float = 60.0
    error_block_seconds: float = 120.0
    max_errors_before_block: int = 5
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 5.0
    key_cleanup_interval_seconds: float = 30.0
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    gemini_image_model: str = "imagen-3.0-generate-002"
    gemini_analysis_model: str = "gemini-2.5-flash"
    pollinations_base_url: str = "https://image.pollinations.ai"
    frontend_origin: str = "http://localhost:5173"
    log_level: str = "INFO"

    def __post_init__(self):
        if not self.api_keys:
            raise ConfigurationError(
                "GEMINI_API_KEYS environment variable must be set and non-empty"
            )
        if self.max_retries < 1:
            raise ConfigurationError("MAX_RETRIES must be at least 1")
        if self.max_errors_before_block < 1:
            raise ConfigurationError("MAX_ERRORS_BEFORE_BLOCK must be at least 1")


def parse_api_keys(raw: str) -> List[str]:
    return [key.strip() for key in raw.split(",") if key.strip()]


def load_config(use_dotenv: bool = True) -> Config:
    """Load configuration from environment variables.

    Returns:
        Config: Configured application settings

    Raises:
        ConfigurationError: If no API keys are configured
        ValueError: If a numeric variable cannot be parsed
    """
    if use_dotenv:
        load_dotenv()

    return Config(
        api_keys=parse_api_keys(os.getenv("GEMINI_API_KEYS", "")),
        port=int(os.getenv("PORT", "8000")),
        host=os.getenv("HOST", "0.0.0.0"),
        max_retries=int(os.getenv("MAX_RETRIES", "3")),
        rate_limit_block_seconds=float(os.getenv("RATE_LIMIT_BLOCK_SECONDS", "60")),
        error_block_seconds=float(os.getenv("ERROR_BLOCK_SECONDS", "120")),
        max_errors_before_block=int(os.getenv("MAX_ERRORS_BEFORE_BLOCK", "5")),
        backoff_base_seconds=float(os.getenv("BACKOFF_BASE_SECONDS", "1.0")),
        backoff_max_seconds=float(os.getenv("BACKOFF_MAX_SECONDS", "5.0")),
        key_cleanup_interval_seconds=float(
            os.getenv("KEY_CLEANUP_INTERVAL_SECONDS", "30")
        ),
        gemini_base_url=os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com"
        ),
        gemini_image_model=os.getenv("GEMINI_IMAGE_MODEL", "imagen-3.0-generate-002"),
        gemini_analysis_model=os.getenv("GEMINI_ANALYSIS_MODEL", "gemini-2.5-flash"),
        pollinations_base_url=os.getenv(
            "POLLINATIONS_BASE_URL", "https://image.pollinations.ai"
        ),
        frontend_origin=os.getenv("FRONTEND_ORIGIN", "http://localhost:5173"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
