"""Retry orchestration across rotating API keys."""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from prompt_studio.errors import (
    AllCredentialsExhaustedError,
    ConfigurationError,
    OperationFailedError,
    PoolExhaustedError,
    ProviderError,
)
from prompt_studio.key_pool import CredentialPool
from prompt_studio.key_selector import KeySelector
from prompt_studio.models import FailureKind, mask_credential

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_MARKERS = ("429", "rate limit", "quota", "too many requests")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Heuristic check for upstream rate limiting.

    Adapters often surface failures as plain messages, so this matches on
    text rather than relying on a structured status code.
    """
    if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 429:
        return True
    if isinstance(exc, ProviderError) and exc.upstream_status == 429:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def classify_failure(exc: BaseException) -> FailureKind:
    if is_rate_limit_error(exc):
        return FailureKind.RATE_LIMITED
    if isinstance(exc, ConfigurationError):
        return FailureKind.FATAL_ERROR
    return FailureKind.TRANSIENT_ERROR


def backoff_delay(attempt: int, base: float = 1.0, maximum: float = 5.0) -> float:
    """Exponential backoff for ``attempt`` (counting from 1), capped at ``maximum``."""
    return min(base * (2 ** (attempt - 1)), maximum)


class RetryOrchestrator:
    """Runs a unit of work against rotating keys with bounded retries."""

    def __init__(
        self,
        pool: CredentialPool,
        selector: KeySelector,
        max_retries: int = 3,
        rate_limit_block: timedelta = timedelta(seconds=60),
        error_block: timedelta = timedelta(seconds=120),
        max_errors_before_block: int = 5,
        backoff_base_seconds: float = 1.0,
        backoff_max_seconds: float = 5.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.pool = pool
        self.selector = selector
        self.max_retries = max_retries
        self.rate_limit_block = rate_limit_block
        self.error_block = error_block
        self.max_errors_before_block = max_errors_before_block
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self._sleep = sleep or asyncio.sleep

    async def execute_with_retry(
        self,
        work: Callable[[str], Awaitable[T]],
        operation_name: str = "API call",
    ) -> T:
        """
        Run ``work`` with a key from the pool, retrying on other keys on failure.

        Flow:
        1. Cap attempts at min(max_retries, number of available keys)
        2. For each attempt:
           a. Pick the next key via round-robin
           b. Await work(key)
           c. On success record it and return the result
           d. On failure classify it: rate limits block the key for
              rate_limit_block, other errors count towards
              max_errors_before_block
           e. Back off exponentially before the next attempt
        3. When attempts run out, raise AllCredentialsExhaustedError if the
           pool is empty, otherwise OperationFailedError

        Raises:
            AllCredentialsExhaustedError: No key is available to try
            OperationFailedError: Every attempt failed
        """
        available = await self.pool.available_credentials()
        if not available:
            logger.error("%s rejected: all API keys are blocked", operation_name)
            raise AllCredentialsExhaustedError()

        max_attempts = min(self.max_retries, len(available))
        attempts = 0
        last_error: Optional[BaseException] = None

        logger.info(
            "Starting %s with key rotation (max %d attempts)",
            operation_name,
            max_attempts,
        )

        for attempt in range(1, max_attempts + 1):
            try:
                credential = await self.selector.next_credential()
            except PoolExhaustedError as exc:
                logger.error("%s: pool exhausted mid-retry", operation_name)
                raise AllCredentialsExhaustedError() from exc

            attempts += 1
            started = time.monotonic()
            try:
                result = await work(credential)
            except Exception as exc:
                last_error = exc
                await self._record_failure(credential, exc, operation_name, attempt)
            else:
                await self.pool.record_success(credential)
                logger.info(
                    "%s succeeded in %.0fms with key %s",
                    operation_name,
                    (time.monotonic() - started) * 1000,
                    mask_credential(credential),
                )
                return result

            if attempt == max_attempts:
                break

            delay = backoff_delay(
                attempt, self.backoff_base_seconds, self.backoff_max_seconds
            )
            logger.debug("Waiting %.1fs before retrying %s", delay, operation_name)
            await self._sleep(delay)

        logger.error("All %d attempts failed for %s", attempts, operation_name)

        if not await self.pool.available_credentials():
            raise AllCredentialsExhaustedError(
                "All Gemini API keys exhausted. Please try again later."
            ) from last_error

        raise OperationFailedError(
            operation_name,
            attempts,
            (str(last_error) or type(last_error).__name__)
            if last_error is not None
            else "Unknown error",
        ) from last_error

    async def _record_failure(
        self,
        credential: str,
        exc: BaseException,
        operation_name: str,
        attempt: int,
    ) -> None:
        kind = classify_failure(exc)
        logger.warning(
            "%s attempt %d failed (key=%s, type=%s): %s",
            operation_name,
            attempt,
            mask_credential(credential),
            kind.value,
            exc,
        )
        if kind is FailureKind.RATE_LIMITED:
            await self.pool.record_rate_limited(credential, self.rate_limit_block)
        else:
            await self.pool.record_error(
                credential, self.max_errors_before_block, self.error_block
            )
