"""
Receiver Errors
===============

Failure taxonomy for the streaming client.

    DialError   - connect() could not open the WebSocket session.
                  Retried by the supervisor after a fixed delay.
    DecodeError - a frame is not valid JSON or does not match the schema.
                  Logged and dropped inside receive_loop().
    ReadError   - the active read failed. Ends receive_loop(); the
                  supervisor reconnects.

None of these reach the HTTP consumer.
"""


class ReceiverError(Exception):
    """Base class for streaming client errors."""


class DialError(ReceiverError, ConnectionError):
    """The streaming session could not be established."""


class DecodeError(ReceiverError, ValueError):
    """A received frame could not be decoded into a Message."""


class ReadError(ReceiverError):
    """Reading from the active streaming session failed."""
