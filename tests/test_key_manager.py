import asyncio
from datetime import timedelta
from typing import List

import pytest

from prompt_studio.config import Config
from prompt_studio.errors import AllCredentialsExhaustedError
from prompt_studio.key_manager import KeyManager


def make_config(api_keys: List[str], **overrides) -> Config:
    return Config(api_keys=api_keys, **overrides)


@pytest.mark.asyncio
async def test_init_builds_pool_from_config():
    manager = KeyManager(make_config(["k1", "k2"], max_retries=2))

    assert len(manager.pool) == 2
    assert manager.orchestrator.max_retries == 2
    assert manager.orchestrator.rate_limit_block == timedelta(seconds=60)
    assert manager.orchestrator.error_block == timedelta(seconds=120)
    assert manager.orchestrator.max_errors_before_block == 5


@pytest.mark.asyncio
async def test_execute_with_retry_uses_configured_blocks(clock, sleep):
    manager = KeyManager(
        make_config(["k1", "k2"], rate_limit_block_seconds=15),
        clock=clock,
        sleep=sleep,
    )

    async def work(api_key: str) -> str:
        if api_key == "k1":
            raise RuntimeError("429 RESOURCE_EXHAUSTED")
        return "ok"

    assert await manager.execute_with_retry(work, "image-generation") == "ok"
    assert manager.pool.metrics_for("k1").blocked_until == clock.current + timedelta(
        seconds=15
    )


@pytest.mark.asyncio
async def test_get_status_format():
    manager = KeyManager(make_config(["k1", "k2"]))

    status = await manager.get_status()

    assert status["totalKeys"] == 2
    assert status["availableKeys"] == 2
    assert status["blockedKeys"] == 0
    assert isinstance(status["keyStats"], list)


@pytest.mark.asyncio
async def test_reset_metrics_recovers_exhausted_pool(sleep):
    manager = KeyManager(make_config(["k1"]), sleep=sleep)
    await manager.pool.record_rate_limited("k1", timedelta(seconds=60))

    async def work(api_key: str) -> str:
        return api_key

    with pytest.raises(AllCredentialsExhaustedError):
        await manager.execute_with_retry(work)

    await manager.reset_metrics()

    assert (await manager.get_status())["availableKeys"] == 1
    assert await manager.execute_with_retry(work) == "k1"


@pytest.mark.asyncio
async def test_cleanup_task_unblocks_expired_keys(clock):
    manager = KeyManager(make_config(["k1"]), clock=clock)
    await manager.pool.record_rate_limited("k1", timedelta(seconds=60))
    clock.advance(61)

    manager.start_cleanup(0.01)
    try:
        for _ in range(50):
            await asyncio.sleep(0.01)
            if not manager.pool.metrics_for("k1").blocked:
                break
    finally:
        await manager.stop_cleanup()

    assert manager.pool.metrics_for("k1").blocked is False


@pytest.mark.asyncio
async def test_cleanup_disabled_with_zero_interval():
    manager = KeyManager(make_config(["k1"]))

    manager.start_cleanup(0)

    assert manager._cleanup_task is None
    await manager.stop_cleanup()
