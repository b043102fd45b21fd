"""
Streaming Client
================

WebSocket client for the Signal REST API receive endpoint.

This module provides the StreamingClient class which:
    - Connects to ``/v1/receive/<account>``
    - Receives and decodes JSON envelopes
    - Classifies envelopes and drops the ones the filter rejects
    - Buffers accepted messages for pop()/flush()

Design Rules:
    - Malformed frames are logged and skipped, never fatal
    - receive_loop() ends only by raising ReadError
    - Does NOT reconnect by itself (see ReconnectSupervisor)
    - A connection is never reused after a read failure
"""

import asyncio
import logging
from typing import List, Optional, Union

import websockets
from pydantic import ValidationError
from websockets.exceptions import WebSocketException

from signal_api_receiver.models.kinds import EnvelopeKind
from signal_api_receiver.models.message import Message
from signal_api_receiver.stream.buffer import MessageBuffer
from signal_api_receiver.stream.errors import DecodeError, DialError, ReadError
from signal_api_receiver.stream.filters import MessageFilter


logger = logging.getLogger(__name__)


def decode_message(raw: Union[str, bytes]) -> Message:
    """
    Decode one WebSocket frame into a Message.

    Raises:
        DecodeError: If the frame is not JSON or does not match the schema.
    """
    try:
        return Message.model_validate_json(raw)
    except ValidationError as e:
        raise DecodeError(f"invalid message frame: {e}") from e


class ClientMetrics:
    """Metrics for StreamingClient observability."""

    __slots__ = (
        "frames_received",
        "messages_recorded",
        "messages_ignored",
        "decode_errors",
        "connect_count",
    )

    def __init__(self) -> None:
        self.frames_received: int = 0
        self.messages_recorded: int = 0
        self.messages_ignored: int = 0
        self.decode_errors: int = 0
        self.connect_count: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_received": self.frames_received,
            "messages_recorded": self.messages_recorded,
            "messages_ignored": self.messages_ignored,
            "decode_errors": self.decode_errors,
            "connect_count": self.connect_count,
        }


class StreamingClient:
    """
    Signal API receive client.

    Owns a single WebSocket session and an in-memory FIFO of accepted
    messages. receive_loop() is the only writer to the buffer; pop() and
    flush() may be called concurrently from any number of callers.

    Attributes:
        url: Fully qualified receive URL (ws:// or wss://)
        buffer: MessageBuffer holding accepted messages
        message_filter: Policy deciding which envelopes are buffered
        metrics: Operational metrics

    Example:
        client = await StreamingClient.create(
            "ws://localhost:8080/v1/receive/+15551234567"
        )

        # Run in a background task (normally via ReconnectSupervisor)
        task = asyncio.create_task(client.receive_loop())

        # Poll from elsewhere
        message = client.pop()
    """

    def __init__(
        self,
        url: str,
        buffer: Optional[MessageBuffer] = None,
        message_filter: Optional[MessageFilter] = None,
        open_timeout: float = 10.0,
    ) -> None:
        """
        Initialize streaming client. Does not connect.

        Args:
            url: WebSocket URL of the receive endpoint
            buffer: Buffer to record into (a new one by default)
            message_filter: Accept policy (text data messages by default)
            open_timeout: Seconds allowed for the opening handshake
        """
        self.url = url
        self.buffer = buffer if buffer is not None else MessageBuffer()
        self.message_filter = message_filter if message_filter is not None else MessageFilter()
        self.open_timeout = open_timeout

        self._websocket: Optional[websockets.ClientConnection] = None
        self._connected: bool = False

        self.metrics = ClientMetrics()

    @classmethod
    async def create(cls, url: str, **kwargs) -> "StreamingClient":
        """
        Build a client and open its first connection.

        Raises:
            DialError: If the initial connection fails.
        """
        client = cls(url, **kwargs)
        await client.connect()
        return client

    @property
    def connected(self) -> bool:
        """Whether a session is open and has not failed yet."""
        return self._connected

    async def connect(self) -> None:
        """
        Replace the current session with a new one.

        Any existing connection is closed first, so on failure the client
        is left without a connection.

        Raises:
            DialError: Bad URL, network failure, handshake rejection or
                handshake timeout.
        """
        await self.close()

        logger.info(f"Connecting to the Signal API: {self.url}")
        try:
            self._websocket = await websockets.connect(
                self.url,
                open_timeout=self.open_timeout,
                ping_interval=20,
                ping_timeout=20,
                close_timeout=5,
            )
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            raise DialError(f"error creating a new websocket connection: {e}") from e

        self._connected = True
        self.metrics.connect_count += 1
        logger.info("Connected to the Signal API")

    async def close(self) -> None:
        """Close the current session, if any."""
        websocket = self._websocket
        self._websocket = None
        self._connected = False
        if websocket is None:
            return

        try:
            await websocket.close()
        except (WebSocketException, OSError) as e:
            logger.debug(f"Error while closing previous connection: {e}")

    async def receive_loop(self) -> None:
        """
        Receive frames until the connection fails.

        Blocks for the lifetime of the current session and records every
        accepted message into the buffer.

        Raises:
            ReadError: Always, once the read fails (including a clean
                close by the peer) or if there is no connection.
        """
        websocket = self._websocket
        if websocket is None:
            raise ReadError("no active connection, connect() must be called first")

        logger.info("Starting the receive loop from Signal API")
        while True:
            try:
                raw = await websocket.recv()
            except WebSocketException as e:
                self._connected = False
                logger.warning(f"Error returned by the websocket: {e}")
                raise ReadError(f"websocket read failed: {e}") from e

            self._record(raw)

    def pop(self) -> Optional[Message]:
        """Oldest buffered message, or None if nothing is buffered."""
        return self.buffer.pop()

    def flush(self) -> List[Message]:
        """Drain and return every buffered message in arrival order."""
        return self.buffer.flush()

    def metrics_snapshot(self) -> dict:
        """Client metrics plus connection and buffer state."""
        return {
            **self.metrics.to_dict(),
            "connected": self._connected,
            "buffer_size": len(self.buffer),
        }

    def _record(self, raw: Union[str, bytes]) -> Optional[EnvelopeKind]:
        """
        Decode, classify and maybe buffer one frame.

        Returns:
            The envelope kind, or None if the frame could not be decoded.
        """
        self.metrics.frames_received += 1

        try:
            message = decode_message(raw)
        except DecodeError as e:
            self.metrics.decode_errors += 1
            logger.error(f"Error decoding the message below: {e}")
            logger.error(_as_text(raw))
            return None

        kind = self.message_filter.classify(message)
        if not self.message_filter.accepts(kind):
            self.metrics.messages_ignored += 1
            logger.debug(f"Ignoring {kind.value} message: {_as_text(raw)}")
            return kind

        self.buffer.append(message)
        self.metrics.messages_recorded += 1
        logger.info(f"The following message was successfully recorded: {_as_text(raw)}")
        return kind


def _as_text(raw: Union[str, bytes]) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw
