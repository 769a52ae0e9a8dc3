from datetime import timedelta
from typing import Dict, List, cast

import pytest

from prompt_studio.health import HealthReporter
from prompt_studio.key_pool import CredentialPool


@pytest.mark.asyncio
async def test_fresh_pool_status():
    raw_keys = ["AIzaSyFirstKey-000001", "AIzaSySecondKey-00002", "k3"]
    reporter = HealthReporter(CredentialPool(raw_keys))

    status = await reporter.status()
    key_stats = cast(List[Dict[str, object]], status["keyStats"])

    assert status["totalKeys"] == 3
    assert status["availableKeys"] == 3
    assert status["blockedKeys"] == 0
    assert len(key_stats) == 3
    for stat, raw in zip(key_stats, raw_keys):
        assert stat["key"] != raw
        assert stat["usageCount"] == 0
        assert stat["lastUsed"] is None
        assert stat["isBlocked"] is False
        assert stat["errorCount"] == 0


@pytest.mark.asyncio
async def test_status_counts_blocked_keys(clock):
    pool = CredentialPool(["k1", "k2", "k3"], clock=clock)
    reporter = HealthReporter(pool)
    await pool.record_success("k1")
    await pool.record_rate_limited("k2", timedelta(seconds=60))

    status = await reporter.status()
    key_stats = cast(List[Dict[str, object]], status["keyStats"])

    assert status["availableKeys"] == 2
    assert status["blockedKeys"] == 1
    assert key_stats[0]["usageCount"] == 1
    assert key_stats[0]["lastUsed"] == clock.current.isoformat()
    assert key_stats[1]["isBlocked"] is True
    assert key_stats[1]["errorCount"] == 1


@pytest.mark.asyncio
async def test_status_reflects_expired_blocks(clock):
    pool = CredentialPool(["k1"], clock=clock)
    reporter = HealthReporter(pool)
    await pool.record_rate_limited("k1", timedelta(seconds=30))

    clock.advance(30)
    status = await reporter.status()

    assert status["availableKeys"] == 1
    assert status["blockedKeys"] == 0
