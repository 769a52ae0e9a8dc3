"""Read-only status reporting for the key pool."""

from typing import Dict

from prompt_studio.key_pool import CredentialPool
from prompt_studio.models import CredentialView


class HealthReporter:
    def __init__(self, pool: CredentialPool):
        self.pool = pool

    async def status(self) -> Dict[str, object]:
        """Aggregate and per-key status. Keys are only ever reported masked."""
        available = await self.pool.available_credentials()
        views = await self.pool.snapshot()
        total = len(views)

        return {
            "totalKeys": total,
            "availableKeys": len(available),
            "blockedKeys": total - len(available),
            "keyStats": [self._format_view(view) for view in views],
        }

    def _format_view(self, view: CredentialView) -> Dict[str, object]:
        return {
            "key": view.masked_credential,
            "usageCount": view.usage_count,
            "lastUsed": view.last_used_at.isoformat() if view.last_used_at else None,
            "isBlocked": view.blocked,
            "errorCount": view.error_count,
        }
