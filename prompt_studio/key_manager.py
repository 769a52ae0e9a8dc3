"""Key manager service: pool, rotation, retries and status in one object."""

import asyncio
import contextlib
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from prompt_studio.config import Config
from prompt_studio.health import HealthReporter
from prompt_studio.key_pool import Clock, CredentialPool
from prompt_studio.key_selector import KeySelector
from prompt_studio.retry import RetryOrchestrator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyManager:
    """Explicitly constructed per-process key manager.

    One instance is built by the application lifespan and handed to request
    handlers; tests build a fresh one per case.
    """

    def __init__(
        self,
        config: Config,
        clock: Optional[Clock] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.config = config
        self.pool = CredentialPool(config.api_keys, clock=clock)
        self.selector = KeySelector(self.pool)
        self.orchestrator = RetryOrchestrator(
            self.pool,
            self.selector,
            max_retries=config.max_retries,
            rate_limit_block=timedelta(seconds=config.rate_limit_block_seconds),
            error_block=timedelta(seconds=config.error_block_seconds),
            max_errors_before_block=config.max_errors_before_block,
            backoff_base_seconds=config.backoff_base_seconds,
            backoff_max_seconds=config.backoff_max_seconds,
            sleep=sleep,
        )
        self.reporter = HealthReporter(self.pool)
        self._cleanup_task: Optional["asyncio.Task[None]"] = None

    async def execute_with_retry(
        self,
        work: Callable[[str], Awaitable[T]],
        operation_name: str = "API call",
    ) -> T:
        return await self.orchestrator.execute_with_retry(work, operation_name)

    async def get_status(self) -> Dict[str, object]:
        return await self.reporter.status()

    async def reset_metrics(self) -> None:
        await self.pool.reset_metrics()

    def start_cleanup(self, interval_seconds: float) -> None:
        """Periodically reclaim keys whose block has expired.

        Optional: ``available_credentials`` already unblocks lazily.
        """
        if interval_seconds <= 0 or self._cleanup_task is not None:
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval_seconds))

    async def stop_cleanup(self) -> None:
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._cleanup_task
        self._cleanup_task = None

    async def _cleanup_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            released = await self.pool.sweep_expired()
            if released:
                logger.info("Cleanup: unblocked %d API keys", released)
