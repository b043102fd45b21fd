"""
Signal API Receiver
===================

Pull-based HTTP bridge for the Signal REST API receive WebSocket.

The receiver keeps a WebSocket open to ``/v1/receive/<account>``, buffers
incoming text messages in memory and lets HTTP clients poll them one at a
time or all at once. Connection loss is recovered transparently.

Components:
    - models: Message/Envelope schema and envelope classification
    - stream: Streaming client, buffer, filter and reconnect supervisor
    - server: FastAPI application (pop/flush routes)
    - config: YAML + environment configuration

Example:
    signal-api-receiver --signal-api-url wss://signal-api.example.com \\
        --signal-account +15551234567
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
