"""Round-robin key selection over the currently available keys."""

import asyncio
import logging

from prompt_studio.errors import PoolExhaustedError
from prompt_studio.key_pool import CredentialPool
from prompt_studio.models import mask_credential

logger = logging.getLogger(__name__)


class KeySelector:
    def __init__(self, pool: CredentialPool):
        self.pool = pool
        self._cursor: int = 0
        self._lock: asyncio.Lock = asyncio.Lock()

    @property
    def cursor(self) -> int:
        return self._cursor

    async def next_credential(self) -> str:
        """Return the next unblocked key, advancing the shared cursor.

        The rotation runs over whatever is available at call time, so keys
        dropping in and out of the pool shift the order rather than reset it.

        Raises:
            PoolExhaustedError: If every key is currently blocked
        """
        async with self._lock:
            available = await self.pool.available_credentials()
            if not available:
                raise PoolExhaustedError()

            credential = available[self._cursor % len(available)]
            self._cursor += 1

        logger.debug("Selected API key %s", mask_credential(credential))
        return credential
