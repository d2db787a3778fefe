"""Bounded-duration audio streaming from a KiwiSDR client."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import suppress

from aiokiwisdr.audio import AudioPacketDecoder
from aiokiwisdr.errors import DecodeError, TransportError
from aiokiwisdr.models import AudioPacket, FrameTag

from .client import KiwiClient

logger = logging.getLogger(__name__)

KEEPALIVE_COMMAND = "SET keepalive"
DEFAULT_KEEPALIVE_INTERVAL = 1.0


class AudioStream:
    """
    Async iterable of the audio packets received by a client.

    The stream runs until duration seconds have elapsed, at which point it hangs
    up, or until the client's event stream ends. A terminal error from the client
    is raised to the iterating caller. While the stream runs, a keepalive command
    is sent once per interval whether or not frames arrive. The client is closed
    when the stream finishes, so a client supports a single stream.

    Usage:
        async for packet in AudioStream(client, duration=30):
            sink.write(packet.to_pcm_s16le())
    """

    def __init__(
        self,
        client: KiwiClient,
        duration: float,
        *,
        skip_bad_packets: bool = True,
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
    ) -> None:
        """
        Create a stream over client.

        Args:
            client: Connected client.
            duration: Seconds to stream before hanging up.
            skip_bad_packets: Log and skip SND frames that fail to decode instead
                of raising DecodeError.
            keepalive_interval: Seconds between keepalive commands.
        """
        if duration < 0:
            raise ValueError(f"duration must not be negative, got {duration}")
        if keepalive_interval <= 0:
            raise ValueError(f"keepalive_interval must be positive, got {keepalive_interval}")
        self._client = client
        self._duration = duration
        self._skip_bad_packets = skip_bad_packets
        self._keepalive_interval = keepalive_interval
        self._decoder = AudioPacketDecoder(compression=client.config.compress)
        self._started = False
        self._keepalives_sent = 0

    @property
    def keepalives_sent(self) -> int:
        """Return the number of keepalive commands sent so far."""
        return self._keepalives_sent

    def __aiter__(self) -> AsyncIterator[AudioPacket]:
        """Start the stream; a stream can only be iterated once."""
        if self._started:
            raise RuntimeError("AudioStream can only be iterated once")
        self._started = True
        return self._run()

    async def _run(self) -> AsyncIterator[AudioPacket]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._duration
        keepalive_task = loop.create_task(self._keepalive_loop())
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    await self._client.hang_up()
                    return
                try:
                    event = await asyncio.wait_for(self._client.next_event(), timeout=remaining)
                except TimeoutError:
                    continue

                if event is None:
                    logger.debug("Event stream of client %d ended", self._client.client_num)
                    return
                if event.error is not None:
                    raise event.error
                if event.tag != FrameTag.SND.value:
                    continue

                try:
                    packet = self._decoder.decode(event.payload)
                except DecodeError as err:
                    if not self._skip_bad_packets:
                        raise
                    logger.warning("Skipping audio packet: %s", err)
                    continue
                yield packet
        finally:
            keepalive_task.cancel()
            with suppress(asyncio.CancelledError):
                await keepalive_task
            await self._client.close()

    async def _keepalive_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._keepalive_interval)
                try:
                    await self._client.send(KEEPALIVE_COMMAND)
                except TransportError as err:
                    logger.warning("Failed to send keepalive: %s", err)
                else:
                    self._keepalives_sent += 1
        except asyncio.CancelledError:
            pass
