from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from aiokiwisdr.client import ClientIdAllocator, DialLimiter, KiwiClient
from aiokiwisdr.models import SessionConfig, Tuning
from aiokiwisdr.util import query_escape, with_default_port


class _FakeClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_allocator_seeds_from_clock() -> None:
    allocator = ClientIdAllocator(_FakeClock(1_700_000_000.7))
    assert allocator.next_id() == 1_700_000_000
    assert allocator.last_id == 1_700_000_000


def test_allocator_increments_within_same_second() -> None:
    clock = _FakeClock(1000.0)
    allocator = ClientIdAllocator(clock)
    assert [allocator.next_id() for _ in range(3)] == [1000, 1001, 1002]

    # Clock has not caught up with the issued ids yet.
    clock.now = 1001.5
    assert allocator.next_id() == 1003

    clock.now = 2000.0
    assert allocator.next_id() == 2000

    # Clock going backwards never reuses ids.
    clock.now = 10.0
    assert allocator.next_id() == 2001


def test_allocator_concurrent_ids_are_unique() -> None:
    allocator = ClientIdAllocator(_FakeClock(5000.0))
    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(lambda _: allocator.next_id(), range(2000)))
    assert len(set(ids)) == len(ids)
    assert sorted(ids) == list(range(5000, 7000))


@pytest.mark.asyncio
async def test_dial_limiter_serializes_dials() -> None:
    limiter = DialLimiter(delay=0.05)
    active = 0
    max_active = 0
    order: list[int] = []

    async def _dial(n: int) -> None:
        nonlocal active, max_active
        async with limiter:
            active += 1
            max_active = max(max_active, active)
            order.append(n)
            await asyncio.sleep(0.01)
            active -= 1

    loop = asyncio.get_running_loop()
    start = loop.time()
    await asyncio.gather(*(_dial(n) for n in range(4)))
    elapsed = loop.time() - start

    assert max_active == 1
    assert sorted(order) == [0, 1, 2, 3]
    # Each dial holds the lock for its own work plus the trailing delay.
    assert elapsed >= 4 * 0.05
    assert not limiter.locked


@pytest.mark.asyncio
async def test_dial_limiter_releases_on_error() -> None:
    limiter = DialLimiter(delay=0)
    with pytest.raises(RuntimeError):
        async with limiter:
            raise RuntimeError("dial failed")
    assert not limiter.locked


def test_dial_limiter_rejects_negative_delay() -> None:
    with pytest.raises(ValueError):
        DialLimiter(delay=-1)


def test_query_escape() -> None:
    assert query_escape("p w&d=1") == "p+w%26d%3D1"
    assert query_escape("AudioClient(python)") == "AudioClient%28python%29"
    assert query_escape("") == ""


def test_with_default_port() -> None:
    assert with_default_port("kiwi.example.net") == "kiwi.example.net:8073"
    assert with_default_port("kiwi.example.net:8074") == "kiwi.example.net:8074"


@pytest.mark.asyncio
async def test_client_url_uses_default_port() -> None:
    client = KiwiClient(SessionConfig(server_host="kiwi.example.net"), Tuning(), 42)
    assert client.url == "ws://kiwi.example.net:8073/42/SND"
    client = KiwiClient(SessionConfig(server_host="kiwi.example.net:8074"), Tuning(), 43)
    assert client.url == "ws://kiwi.example.net:8074/43/SND"
