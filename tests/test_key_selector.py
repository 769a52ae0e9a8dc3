import asyncio
from collections import Counter
from datetime import timedelta

import pytest

from prompt_studio.errors import PoolExhaustedError
from prompt_studio.key_pool import CredentialPool
from prompt_studio.key_selector import KeySelector


@pytest.mark.asyncio
async def test_round_robin_two_keys():
    selector = KeySelector(CredentialPool(["k1", "k2"]))

    picks = [await selector.next_credential() for _ in range(4)]

    assert picks == ["k1", "k2", "k1", "k2"]


@pytest.mark.asyncio
@pytest.mark.parametrize("keys,calls", [(3, 10), (4, 4), (5, 23)])
async def test_fair_distribution_when_healthy(keys, calls):
    credentials = [f"key-{i}" for i in range(keys)]
    selector = KeySelector(CredentialPool(credentials))

    counts = Counter([await selector.next_credential() for _ in range(calls)])

    assert set(counts) <= set(credentials)
    for credential in credentials:
        assert counts[credential] in (calls // keys, -(-calls // keys))


@pytest.mark.asyncio
async def test_skips_blocked_keys(clock):
    pool = CredentialPool(["k1", "k2", "k3"], clock=clock)
    selector = KeySelector(pool)
    await pool.record_rate_limited("k2", timedelta(seconds=60))

    picks = [await selector.next_credential() for _ in range(4)]

    assert "k2" not in picks
    assert Counter(picks) == Counter({"k1": 2, "k3": 2})


@pytest.mark.asyncio
async def test_raises_when_pool_exhausted():
    pool = CredentialPool(["k1"])
    selector = KeySelector(pool)
    await pool.record_rate_limited("k1", timedelta(seconds=60))

    with pytest.raises(PoolExhaustedError):
        await selector.next_credential()

    assert selector.cursor == 0


@pytest.mark.asyncio
async def test_concurrent_selection_loses_no_increments():
    credentials = [f"key-{i}" for i in range(5)]
    selector = KeySelector(CredentialPool(credentials))

    picks = await asyncio.gather(*[selector.next_credential() for _ in range(50)])

    assert selector.cursor == 50
    assert Counter(picks) == Counter({credential: 10 for credential in credentials})
