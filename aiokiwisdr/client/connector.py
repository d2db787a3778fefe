"""Creation of KiwiSDR client sessions."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from types import TracebackType

from aiohttp import ClientSession

from aiokiwisdr.models import SessionConfig, Tuning

from .client import DEFAULT_QUEUE_SIZE, KiwiClient

logger = logging.getLogger(__name__)

DEFAULT_DIAL_DELAY = 0.1
"""Seconds the dial lock stays held after a connection attempt."""


class ClientIdAllocator:
    """
    Issues session ids for connection paths.

    Ids are seeded from the wall clock in seconds and are strictly increasing:
    when the clock has not moved past the last issued id, the next id is the last
    one plus one. Safe to share between threads and tasks.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Create an allocator reading seconds from clock."""
        self._clock = clock
        self._lock = threading.Lock()
        self._last_id = 0

    @property
    def last_id(self) -> int:
        """Return the most recently issued id, or 0."""
        return self._last_id

    def next_id(self) -> int:
        """Return a new id greater than every id issued before."""
        with self._lock:
            client_num = int(self._clock())
            if client_num <= self._last_id:
                client_num = self._last_id + 1
            self._last_id = client_num
            return client_num


class DialLimiter:
    """
    Serializes connection attempts.

    KiwiSDR servers reject clients that connect at the same time, so only one
    dial and handshake runs at once and the lock is held for a short delay
    afterwards.
    """

    def __init__(self, delay: float = DEFAULT_DIAL_DELAY) -> None:
        """Create a limiter that holds the lock for delay seconds after each use."""
        if delay < 0:
            raise ValueError(f"delay must not be negative, got {delay}")
        self._delay = delay
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        """Return True while a dial is in progress."""
        return self._lock.locked()

    async def __aenter__(self) -> None:
        """Wait for the previous dial to finish."""
        await self._lock.acquire()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Release the lock after the trailing delay."""
        try:
            await asyncio.sleep(self._delay)
        finally:
            self._lock.release()


class KiwiConnector:
    """
    Opens KiwiSDR client sessions.

    Create one connector at startup and use it for every connection: it owns the
    session id allocator and the dial limiter that every session must share.

    Usage:
        connector = KiwiConnector()
        config = SessionConfig(server_host="kiwi.example.net:8073")
        client = await connector.connect(config, Tuning(freq=740_000, mode=AM))
        async for packet in AudioStream(client, duration=10):
            ...
    """

    def __init__(
        self,
        *,
        session: ClientSession | None = None,
        allocator: ClientIdAllocator | None = None,
        limiter: DialLimiter | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        """
        Initialize the connector.

        Args:
            session: Optional aiohttp ClientSession shared by all clients. If None,
                each client creates and closes its own session.
            allocator: Session id allocator, created if not given.
            limiter: Dial limiter, created if not given.
            queue_size: Inbound event queue capacity of each client.
        """
        self._session = session
        self._allocator = allocator or ClientIdAllocator()
        self._limiter = limiter or DialLimiter()
        self._queue_size = queue_size

    @property
    def allocator(self) -> ClientIdAllocator:
        """Return the session id allocator."""
        return self._allocator

    @property
    def limiter(self) -> DialLimiter:
        """Return the dial limiter."""
        return self._limiter

    async def connect(self, config: SessionConfig, tuning: Tuning | None = None) -> KiwiClient:
        """
        Connect to a KiwiSDR server and perform the handshake.

        Raises:
            TransportError: If the websocket cannot be opened.
        """
        async with self._limiter:
            client = KiwiClient(
                config,
                tuning or Tuning(),
                self._allocator.next_id(),
                session=self._session,
                queue_size=self._queue_size,
            )
            await client.connect()
        logger.debug("Client %d connected to %s", client.client_num, config.server_host)
        return client
