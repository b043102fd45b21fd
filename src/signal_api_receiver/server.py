"""
HTTP Server
===========

FastAPI application exposing the receive buffer to pollers.

Endpoints:
    GET /receive/pop   - 200 + oldest message, or 204 with no body
    GET /receive/flush - 200 + JSON array of every buffered message
    GET /healthz       - 204, liveness probe
    GET /metrics       - Client and supervisor metrics

Any other method is rejected with 403 and any other path with 404 plus
a plain-text usage message.

The application only depends on the ReceiverClient protocol, so it can be
exercised with a fake client and no network connection.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional, Protocol

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from signal_api_receiver import __version__
from signal_api_receiver.models.message import Message
from signal_api_receiver.stream.supervisor import ReconnectSupervisor


logger = logging.getLogger(__name__)


USAGE = """
GET /receive/pop   => Return the oldest message
GET /receive/flush => Return all messages
GET /healthz       => Liveness probe
GET /metrics       => Receiver metrics
"""


class ReceiverClient(Protocol):
    """Capabilities the HTTP layer needs from a receive client."""

    async def connect(self) -> None: ...

    async def receive_loop(self) -> None: ...

    async def close(self) -> None: ...

    def pop(self) -> Optional[Message]: ...

    def flush(self) -> List[Message]: ...


def create_app(
    client: ReceiverClient,
    supervisor: Optional[ReconnectSupervisor] = None,
    connect_on_startup: bool = False,
    metrics_provider: Optional[Callable[[], dict]] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        client: Receive client backing pop/flush
        supervisor: Started as a background task for the app lifetime
        connect_on_startup: Open the first connection before serving.
            A DialError here aborts startup.
        metrics_provider: Returns client metrics for GET /metrics

    Returns:
        FastAPI: Configured application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        supervisor_task: Optional[asyncio.Task] = None

        if connect_on_startup:
            await client.connect()

        if supervisor is not None:
            supervisor_task = asyncio.create_task(supervisor.run(), name="reconnect_supervisor")

        yield

        logger.info("Shutting down receiver...")
        if supervisor is not None and supervisor_task is not None:
            supervisor.stop()
            supervisor_task.cancel()
            try:
                await supervisor_task
            except asyncio.CancelledError:
                pass
        await client.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="signal-api-receiver",
        description="Pull-based HTTP bridge for the Signal API receive WebSocket",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.middleware("http")
    async def only_get(request: Request, call_next):
        if request.method != "GET":
            return PlainTextResponse("GET is the only allowed verb", status_code=403)
        return await call_next(request)

    @app.get("/healthz")
    async def healthz() -> Response:
        return Response(status_code=204)

    @app.get("/receive/pop")
    async def pop() -> Response:
        """Return the oldest message, or 204 when nothing is buffered."""
        message = client.pop()
        if message is None:
            return Response(status_code=204)
        return JSONResponse(message.to_wire())

    @app.get("/receive/flush")
    async def flush() -> JSONResponse:
        """Return every buffered message, oldest first."""
        return JSONResponse([message.to_wire() for message in client.flush()])

    @app.get("/metrics")
    async def metrics() -> JSONResponse:
        payload = {}
        if metrics_provider is not None:
            payload.update(metrics_provider())
        if supervisor is not None:
            payload["supervisor"] = supervisor.metrics()
        return JSONResponse(payload)

    @app.get("/{path:path}")
    async def not_found(request: Request) -> PlainTextResponse:
        return PlainTextResponse(
            f"ERROR! GET {request.url.path} is not supported. "
            f"The supported paths are below:{USAGE}",
            status_code=404,
        )

    return app
