"""
HTTP Server Tests
=================

Routes of the FastAPI application, exercised with a client that never
touches the network.
"""

import asyncio
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from signal_api_receiver.models.message import Message
from signal_api_receiver.server import USAGE, create_app
from signal_api_receiver.stream import ReconnectSupervisor, StreamingClient

from conftest import make_message


@pytest.fixture
def receiver() -> StreamingClient:
    """Unconnected client whose buffer is filled directly."""
    return StreamingClient("ws://unused")


@pytest.fixture
def http(receiver) -> TestClient:
    return TestClient(create_app(receiver, metrics_provider=receiver.metrics_snapshot))


class TestPop:
    """Tests for GET /receive/pop."""

    def test_no_messages(self, http):
        response = http.get("/receive/pop")

        assert response.status_code == 204
        assert response.content == b""

    def test_one_message(self, http, receiver):
        receiver.buffer.append(make_message("0"))

        response = http.get("/receive/pop")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        body = response.json()
        assert body["account"] == "0"
        assert body["envelope"]["dataMessage"]["message"] == "hello"

    def test_messages_in_order(self, http, receiver):
        for i in range(3):
            receiver.buffer.append(make_message(str(i)))

        accounts = [http.get("/receive/pop").json()["account"] for _ in range(3)]

        assert accounts == ["0", "1", "2"]
        assert http.get("/receive/pop").status_code == 204


class TestFlush:
    """Tests for GET /receive/flush."""

    def test_no_messages(self, http):
        response = http.get("/receive/flush")

        assert response.status_code == 200
        assert response.json() == []

    def test_messages_in_order(self, http, receiver):
        for i in range(3):
            receiver.buffer.append(make_message(str(i)))

        response = http.get("/receive/flush")

        assert response.status_code == 200
        assert [m["account"] for m in response.json()] == ["0", "1", "2"]
        assert http.get("/receive/flush").json() == []


class TestRouting:
    """Tests for rejected methods and unknown paths."""

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
    @pytest.mark.parametrize("path", ["/receive/pop", "/receive/flush", "/nowhere"])
    def test_non_get_is_forbidden(self, http, receiver, method, path):
        receiver.buffer.append(make_message("0"))

        response = http.request(method, path)

        assert response.status_code == 403
        assert response.text == "GET is the only allowed verb"
        # Nothing was consumed
        assert len(receiver.buffer) == 1

    @pytest.mark.parametrize("path", ["/", "/receive", "/receive/peek", "/docs", "/receive/pop/extra"])
    def test_unknown_path(self, http, path):
        response = http.get(path)

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == (
            f"ERROR! GET {path} is not supported. The supported paths are below:{USAGE}"
        )

    def test_healthz(self, http):
        response = http.get("/healthz")

        assert response.status_code == 204

    def test_metrics(self, http, receiver):
        receiver.buffer.append(make_message("0"))

        body = http.get("/metrics").json()

        assert body["buffer_size"] == 1
        assert body["connected"] is False
        assert body["decode_errors"] == 0

    def test_metrics_without_provider(self, receiver):
        http = TestClient(create_app(receiver))

        assert http.get("/metrics").json() == {}


class StubClient:
    """Client that connects instantly and receives until cancelled."""

    def __init__(self) -> None:
        self.connect_calls = 0
        self.closed = False
        self.messages: List[Message] = []

    async def connect(self) -> None:
        self.connect_calls += 1

    async def receive_loop(self) -> None:
        await asyncio.sleep(3600)

    async def close(self) -> None:
        self.closed = True

    def pop(self) -> Optional[Message]:
        return self.messages.pop(0) if self.messages else None

    def flush(self) -> List[Message]:
        messages, self.messages = self.messages, []
        return messages


class TestLifespan:
    """Tests for startup and shutdown handling."""

    def test_connects_and_supervises(self):
        client = StubClient()
        supervisor = ReconnectSupervisor(client, reconnect_delay=0.01)
        app = create_app(client, supervisor=supervisor, connect_on_startup=True)

        with TestClient(app) as http:
            assert client.connect_calls == 1
            body = http.get("/metrics").json()
            assert body["supervisor"]["state"] == "RECEIVING"

        assert client.closed
        assert not supervisor.running

    def test_fake_client_serves_pop(self):
        client = StubClient()
        client.messages.append(make_message("fake"))

        with TestClient(create_app(client)) as http:
            assert http.get("/receive/pop").json()["account"] == "fake"
            assert http.get("/receive/pop").status_code == 204

        assert client.connect_calls == 0
