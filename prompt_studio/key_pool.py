"""Credential pool with per-key health metrics."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from prompt_studio.errors import ConfigurationError
from prompt_studio.models import CredentialMetrics, CredentialView

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialPool:
    """Owns the configured API keys and their metrics.

    Keys are never added or removed after construction. Metrics are only
    mutated through the ``record_*`` methods and the lazy unblock pass in
    ``available_credentials``.
    """

    def __init__(self, credentials: Iterable[str], clock: Optional[Clock] = None):
        self._clock: Clock = clock or utc_now
        self._lock: asyncio.Lock = asyncio.Lock()
        self._metrics: Dict[str, CredentialMetrics] = {}

        for credential in credentials:
            if credential not in self._metrics:
                self._metrics[credential] = CredentialMetrics(credential=credential)

        if not self._metrics:
            raise ConfigurationError("No Gemini API keys configured")

        logger.info("Credential pool initialized with %d keys", len(self._metrics))

    def __len__(self) -> int:
        return len(self._metrics)

    async def available_credentials(self) -> List[str]:
        async with self._lock:
            self._release_expired(self._clock())
            return [
                credential
                for credential, metrics in self._metrics.items()
                if not metrics.blocked
            ]

    async def sweep_expired(self) -> int:
        """Unblock every key whose block has expired; returns how many were freed."""
        async with self._lock:
            return self._release_expired(self._clock())

    async def record_success(self, credential: str) -> None:
        async with self._lock:
            metrics = self._get(credential)
            if metrics is None:
                return
            metrics.error_count = 0
            metrics.last_used_at = self._clock()
            metrics.usage_count += 1

    async def record_rate_limited(
        self, credential: str, block_duration: timedelta
    ) -> None:
        async with self._lock:
            metrics = self._get(credential)
            if metrics is None:
                return
            metrics.error_count += 1
            metrics.block(self._clock() + block_duration)
            logger.warning(
                "Key %s rate-limited, blocked until %s",
                metrics.masked(),
                metrics.blocked_until.isoformat(),
            )

    async def record_error(
        self,
        credential: str,
        max_errors_before_block: int,
        block_duration: timedelta,
    ) -> None:
        async with self._lock:
            metrics = self._get(credential)
            if metrics is None:
                return
            metrics.error_count += 1
            if metrics.error_count >= max_errors_before_block:
                metrics.block(self._clock() + block_duration)
                logger.warning(
                    "Key %s blocked after %d consecutive errors",
                    metrics.masked(),
                    metrics.error_count,
                )

    async def snapshot(self) -> List[CredentialView]:
        async with self._lock:
            return [CredentialView.from_metrics(m) for m in self._metrics.values()]

    def metrics_for(self, credential: str) -> Optional[CredentialMetrics]:
        """Detached copy of one key's metrics, or None for unknown keys."""
        metrics = self._metrics.get(credential)
        return replace(metrics) if metrics is not None else None

    async def reset_metrics(self) -> None:
        async with self._lock:
            for credential in self._metrics:
                self._metrics[credential] = CredentialMetrics(credential=credential)
        logger.info("Credential metrics reset for %d keys", len(self._metrics))

    def _release_expired(self, now: datetime) -> int:
        released = 0
        for metrics in self._metrics.values():
            if metrics.is_expired(now):
                metrics.unblock()
                released += 1
                logger.info("Key %s unblocked after cooldown", metrics.masked())
        return released

    def _get(self, credential: str) -> Optional[CredentialMetrics]:
        metrics = self._metrics.get(credential)
        if metrics is None:
            logger.debug("Ignoring metrics update for unknown key")
        return metrics
