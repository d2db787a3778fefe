"""KiwiSDR client session: websocket connection, handshake and receive loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import suppress
from types import MappingProxyType, TracebackType

from aiohttp import ClientError, ClientSession, ClientWebSocketResponse, WSCloseCode, WSMsgType

from aiokiwisdr.errors import FrameTooShortError, TransportError
from aiokiwisdr.models import Frame, FrameTag, SessionConfig, Tuning
from aiokiwisdr.protocol import apply_msg, check_terminal, split_frame
from aiokiwisdr.util import query_escape, with_default_port

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100
"""Number of events buffered between the reader task and the consumer."""

_TRACE_FRAME_SIZE = 64


class KiwiClient:
    """
    Async client for one KiwiSDR receiver channel.

    A client is created by KiwiConnector.connect(), which opens the websocket and
    performs the handshake. Inbound frames are delivered in order through
    next_event() or events(); the last event of a failed session carries the
    error. Frames are never dropped: when the consumer falls behind, the reader
    task waits for room in the event queue.
    """

    _config: SessionConfig
    """Connection settings."""
    _tuning: Tuning
    """Frequency and mode requested during the handshake."""
    _client_num: int
    """Unique session id used in the connection path."""
    _info: dict[str, str]
    """Parameters reported by the server in MSG frames."""
    _session: ClientSession | None
    """aiohttp ClientSession used for the websocket."""
    _owns_session: bool
    """Whether this client owns and should close the session."""

    _loop: asyncio.AbstractEventLoop
    """Event loop for this client."""
    _ws: ClientWebSocketResponse | None = None
    """WebSocket connection to the server."""
    _send_lock: asyncio.Lock
    """Lock for serializing WebSocket writes."""
    _events: asyncio.Queue[Frame | None]
    """Frames and terminal errors waiting for the consumer; None marks the end."""
    _events_closed: bool = False
    """True once the reader task has stopped producing events."""
    _reader_task: asyncio.Task[None] | None = None
    """Background task reading messages from the server."""
    _hung_up: bool = False
    """True once a close frame was requested locally."""
    _closed: bool = False
    """True once close() was called."""

    def __init__(
        self,
        config: SessionConfig,
        tuning: Tuning,
        client_num: int,
        *,
        session: ClientSession | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        """
        Create a client that is not yet connected.

        Args:
            config: Connection settings.
            tuning: Frequency and mode to request.
            client_num: Unique session id, see ClientIdAllocator.
            session: Optional aiohttp ClientSession. If None, a session is created
                and managed by this client.
            queue_size: Capacity of the inbound event queue.
        """
        if queue_size <= 0:
            raise ValueError(f"queue_size must be positive, got {queue_size}")
        self._config = config
        self._tuning = tuning
        self._client_num = client_num
        self._info = {}
        self._session = session
        self._owns_session = session is None
        self._loop = asyncio.get_running_loop()
        self._send_lock = asyncio.Lock()
        self._events = asyncio.Queue(maxsize=queue_size)

    async def __aenter__(self) -> KiwiClient:
        """Return the client for use in an async with block."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the client when leaving an async with block."""
        await self.close()

    @property
    def config(self) -> SessionConfig:
        """Return the connection settings."""
        return self._config

    @property
    def tuning(self) -> Tuning:
        """Return the requested tuning."""
        return self._tuning

    @property
    def client_num(self) -> int:
        """Return the session id used in the connection path."""
        return self._client_num

    @property
    def info(self) -> Mapping[str, str]:
        """Return a read-only view of the parameters reported by the server."""
        return MappingProxyType(self._info)

    @property
    def path(self) -> str:
        """Return the connection path for this session."""
        return f"/{self._client_num}/{self._config.kind.value}"

    @property
    def url(self) -> str:
        """Return the websocket URL for this session."""
        return f"ws://{with_default_port(self._config.server_host)}{self.path}"

    @property
    def connected(self) -> bool:
        """Return True if the websocket is open."""
        return self._ws is not None and not self._ws.closed

    @property
    def closed(self) -> bool:
        """Return True once close() was called."""
        return self._closed

    async def connect(self) -> None:
        """
        Open the websocket and perform the handshake.

        Raises:
            TransportError: If the websocket cannot be opened.
        """
        if self._ws is not None:
            raise RuntimeError("Client is already connected")

        if self._session is None:
            self._session = ClientSession()

        logger.info("Connecting to KiwiSDR at %s", self.url)
        try:
            self._ws = await self._session.ws_connect(self.url)
        except (ClientError, OSError, TimeoutError) as err:
            await self._release_session()
            raise TransportError(f"dial {self.url}: {err}") from err

        await self._perform_handshake()

    def handshake_commands(self) -> list[str]:
        """Return the commands sent after connecting, in order."""
        config = self._config
        tuning = self._tuning
        # Authentication must come first.
        commands = [
            f"SET auth t=kiwi p={query_escape(config.password)}",
            "SET AR OK in=12000 out=44100",
            "SET squelch=0 max=0",
            "SET lms_autonotch=0",
            "SET genattn=0",
            "SET gen=0 mix=-1",
            f"SET ident_user={query_escape(config.identify)}",
        ]
        if tuning.freq > 0:
            commands.append(
                f"SET mod={tuning.mode.name} low_cut={tuning.mode.low_cut} "
                f"high_cut={tuning.mode.high_cut} freq={tuning.dial_khz:.3f}"
            )
        commands.extend(
            [
                f"SET agc={int(config.agc)} hang=0 thresh=-100 slope=6 decay=1000 "
                f"manGain={config.effective_man_gain}",
                f"SET compression={int(config.compress)}",
                "SET OVERRIDE inactivity_timeout=0",
            ]
        )
        return commands

    async def _perform_handshake(self) -> None:
        """Start the reader and send the handshake commands."""
        self._reader_task = self._loop.create_task(self._reader_loop())
        for command in self.handshake_commands():
            try:
                await self.send(command)
            except TransportError as err:
                # The reader reports why the server went away.
                logger.warning("Handshake interrupted: %s", err)
                return
        logger.info("Handshake with %s complete", self._config.server_host)

    async def send(self, command: str) -> None:
        """
        Send one text command to the server.

        Raises:
            TransportError: If the websocket is not open or the write fails.
        """
        ws = self._ws
        if ws is None or ws.closed:
            raise TransportError("WebSocket is not connected")
        async with self._send_lock:
            try:
                await ws.send_str(command)
            except (ClientError, OSError) as err:
                raise TransportError(f"write {command!r}: {err}") from err

    async def hang_up(self) -> None:
        """Send a going-away close frame. Failures are logged, never raised."""
        logger.info("Hanging up client %d", self._client_num)
        self._hung_up = True
        await self._send_close()

    async def close(self) -> None:
        """Hang up, stop the reader task and release resources."""
        if self._closed:
            return
        self._closed = True
        if self.connected:
            await self.hang_up()
        if self._reader_task is not None:
            if self._reader_task is not asyncio.current_task(loop=self._loop):
                self._reader_task.cancel()
                with suppress(asyncio.CancelledError):
                    await self._reader_task
            self._reader_task = None
        await self._release_session()

    async def next_event(self) -> Frame | None:
        """Return the next inbound event, or None once the event stream has ended."""
        if self._events_closed and self._events.empty():
            return None
        return await self._events.get()

    async def events(self) -> AsyncIterator[Frame]:
        """Iterate over inbound events until the event stream ends."""
        while True:
            event = await self.next_event()
            if event is None:
                return
            yield event

    async def _send_close(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            async with self._send_lock:
                await ws.close(code=WSCloseCode.GOING_AWAY)
        except Exception as err:
            logger.warning("Failed to send close frame: %s", err)

    async def _release_session(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _reader_loop(self) -> None:
        assert self._ws is not None
        try:
            try:
                await self._receive_frames(self._ws)
            except Exception as err:
                logger.exception("WebSocket reader encountered an error")
                await self._events.put(Frame(error=TransportError(f"read: {err}")))
            await self._send_close()
        finally:
            self._events_closed = True
            with suppress(asyncio.QueueFull):
                self._events.put_nowait(None)

    async def _receive_frames(self, ws: ClientWebSocketResponse) -> None:
        while True:
            msg = await ws.receive()
            if msg.type is WSMsgType.BINARY:
                data: bytes = msg.data
            elif msg.type is WSMsgType.TEXT:
                data = msg.data.encode()
            elif msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
                if self._hung_up:
                    logger.debug("WebSocket closed after hang up")
                else:
                    logger.info("WebSocket closed by server")
                    await self._events.put(Frame(error=TransportError("connection closed")))
                return
            elif msg.type is WSMsgType.ERROR:
                logger.error("WebSocket error: %s", ws.exception())
                await self._events.put(Frame(error=TransportError(f"read: {ws.exception()}")))
                return
            else:
                continue

            if not await self._handle_frame(data):
                return

    async def _handle_frame(self, data: bytes) -> bool:
        """Queue one inbound frame; return False if it ends the session."""
        if len(data) < _TRACE_FRAME_SIZE:
            logger.debug("recv: %r", data)
        try:
            tag, payload = split_frame(data)
        except FrameTooShortError as err:
            logger.warning("Received message too short: %r", data)
            await self._events.put(Frame(error=err))
            return False

        await self._events.put(Frame(tag=tag, payload=payload))

        if tag == FrameTag.MSG.value:
            apply_msg(self._info, payload)
            error = check_terminal(self._info)
            if error is not None:
                logger.warning("Server ended the session: %s", error)
                await self._events.put(Frame(error=error))
                return False
        return True
