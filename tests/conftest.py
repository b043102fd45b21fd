"""
Test Configuration
==================

Pytest fixtures and helpers for the Signal API receiver tests.
"""

import asyncio
import json
import time
from typing import Callable, List, Optional

import pytest
from websockets.asyncio.server import serve

from signal_api_receiver.models.message import Message
from signal_api_receiver.stream.buffer import MessageBuffer


def data_frame(text: Optional[str] = "hello", account: str = "+15550000000", **data_fields) -> dict:
    """Build a raw data message frame as sent by the Signal API."""
    return {
        "envelope": {
            "source": "+15551111111",
            "sourceNumber": "+15551111111",
            "sourceUuid": "3b1f0d5e-0000-4000-8000-000000000001",
            "sourceName": "Alice",
            "sourceDevice": 1,
            "timestamp": 1707321234567,
            "dataMessage": {
                "timestamp": 1707321234567,
                "message": text,
                "expiresInSeconds": 0,
                "viewOnce": False,
                **data_fields,
            },
        },
        "account": account,
    }


def make_message(account: str, text: str = "hello") -> Message:
    return Message.model_validate(data_frame(text=text, account=account))


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll predicate on the running loop until it holds."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class FakeSignalServer:
    """
    Local WebSocket server standing in for the Signal API.

    Every accepted connection takes the next queued session (a list of
    frames), sends it and closes normally.

    Example:
        async with FakeSignalServer() as server:
            server.add_session([data_frame("hi")])
            client = await StreamingClient.create(server.url)
    """

    def __init__(self) -> None:
        self._sessions: Optional[asyncio.Queue] = None
        self._server = None
        self.url = ""
        self.connections = 0

    def add_session(self, frames: List) -> None:
        self._sessions.put_nowait(frames)

    async def _handler(self, connection) -> None:
        self.connections += 1
        next_session = asyncio.ensure_future(self._sessions.get())
        closed = asyncio.ensure_future(connection.wait_closed())
        done, pending = await asyncio.wait(
            {next_session, closed}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        if next_session not in done:
            return

        for frame in next_session.result():
            await connection.send(frame if isinstance(frame, str) else json.dumps(frame))

    async def __aenter__(self) -> "FakeSignalServer":
        self._sessions = asyncio.Queue()
        self._server = await serve(self._handler, "127.0.0.1", 0)
        port = self._server.sockets[0].getsockname()[1]
        self.url = f"ws://127.0.0.1:{port}/v1/receive/+15550000000"
        return self

    async def __aexit__(self, *args) -> None:
        self._server.close()
        await self._server.wait_closed()


class FakeClient:
    """
    Scriptable receive client.

    connect() consumes the next entry of connect_results (None for success,
    an exception to raise). receive_loop() buffers queued messages until it
    meets a queued exception, or returns when it meets None.
    """

    def __init__(self) -> None:
        self.connect_results: asyncio.Queue = asyncio.Queue()
        self.recv_events: asyncio.Queue = asyncio.Queue()
        self.connect_calls = 0
        self.closed = False
        self.buffer = MessageBuffer()

    async def connect(self) -> None:
        self.connect_calls += 1
        result = await self.connect_results.get()
        if result is not None:
            raise result

    async def receive_loop(self) -> None:
        while True:
            item = await self.recv_events.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            self.buffer.append(item)

    async def close(self) -> None:
        self.closed = True

    def pop(self) -> Optional[Message]:
        return self.buffer.pop()

    def flush(self) -> List[Message]:
        return self.buffer.flush()


@pytest.fixture
def text_frame() -> dict:
    return data_frame(text="hello")


@pytest.fixture
def typing_frame() -> dict:
    return {
        "envelope": {
            "source": "+15551111111",
            "sourceDevice": 1,
            "timestamp": 1707321234567,
            "typingMessage": {"action": "STARTED", "timestamp": 1707321234567},
        },
        "account": "+15550000000",
    }


@pytest.fixture
def receipt_frame() -> dict:
    return {
        "envelope": {
            "source": "+15551111111",
            "timestamp": 1707321234567,
            "receiptMessage": {
                "when": 1707321234567,
                "isDelivery": True,
                "isRead": False,
                "isViewed": False,
                "timestamps": [1707321230000],
            },
        },
        "account": "+15550000000",
    }


@pytest.fixture
def sync_frame() -> dict:
    return {
        "envelope": {"source": "+15550000000", "timestamp": 1707321234567, "syncMessage": {}},
        "account": "+15550000000",
    }


@pytest.fixture
def group_update_frame() -> dict:
    return data_frame(
        text=None,
        groupInfo={"groupId": "Z3JvdXA=", "groupName": "Team", "revision": 3, "type": "UPDATE"},
    )


@pytest.fixture
def attachment_only_frame() -> dict:
    return data_frame(
        text=None,
        attachments=[{"contentType": "image/jpeg", "id": "abc123", "size": 2048}],
    )
