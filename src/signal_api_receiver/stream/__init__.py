"""
Stream Module
=============

WebSocket ingestion, buffering and reconnection.

This module provides the ingestion layer of the receiver:
    - MessageBuffer: Thread-safe unbounded FIFO of accepted messages
    - MessageFilter: Configurable accept-set over envelope kinds
    - StreamingClient: WebSocket client that decodes, filters and buffers
    - ReconnectSupervisor: RECEIVING/RECONNECTING loop around the client

Example:
    from signal_api_receiver.stream import ReconnectSupervisor, StreamingClient

    client = await StreamingClient.create(
        "ws://localhost:8080/v1/receive/+15551234567"
    )
    supervisor = ReconnectSupervisor(client, reconnect_delay=1.0)
    task = asyncio.create_task(supervisor.run())

    # Poll from HTTP handlers
    message = client.pop()
    messages = client.flush()
"""

from signal_api_receiver.stream.buffer import MessageBuffer
from signal_api_receiver.stream.client import ClientMetrics, StreamingClient, decode_message
from signal_api_receiver.stream.errors import DecodeError, DialError, ReadError, ReceiverError
from signal_api_receiver.stream.filters import DEFAULT_ACCEPTED_KINDS, MessageFilter
from signal_api_receiver.stream.supervisor import ReconnectSupervisor, SupervisorState


__all__ = [
    "MessageBuffer",
    "MessageFilter",
    "DEFAULT_ACCEPTED_KINDS",
    "StreamingClient",
    "ClientMetrics",
    "decode_message",
    "ReconnectSupervisor",
    "SupervisorState",
    "ReceiverError",
    "DialError",
    "DecodeError",
    "ReadError",
]
