"""
Signal API Receiver Entry Point
===============================

Command line entry point: loads settings, computes the receive URL and
serves the HTTP application with uvicorn.

Usage:
    signal-api-receiver --signal-api-url wss://signal-api.example.com \\
        --signal-account +15551234567 --addr :8105

    python -m signal_api_receiver.main --config config.yaml
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

import uvicorn

from signal_api_receiver.config import (
    Settings,
    build_receive_url,
    load_config,
    parse_listen_address,
    setup_logging,
)
from signal_api_receiver.server import create_app
from signal_api_receiver.stream import MessageFilter, ReconnectSupervisor, StreamingClient


logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="signal-api-receiver",
        description="Expose the Signal API receive WebSocket as pollable HTTP routes",
    )
    parser.add_argument("--config", default=None, help="Path to a config.yaml file")
    parser.add_argument("--addr", default=None, help="The address to listen and serve on, e.g. :8105")
    parser.add_argument(
        "--signal-api-url",
        default=None,
        help="The URL of the Signal api including the scheme. e.g wss://signal-api.example.com",
    )
    parser.add_argument("--signal-account", default=None, help="The account number for signal")
    return parser.parse_args(argv)


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    """Overlay command line flags on loaded settings."""
    if args.addr:
        settings.server.host, settings.server.port = parse_listen_address(args.addr)
    if args.signal_api_url:
        settings.signal.api_url = args.signal_api_url
    if args.signal_account:
        settings.signal.account = args.signal_account
    return settings


def build_client(settings: Settings) -> StreamingClient:
    """
    Create the streaming client described by settings.

    Raises:
        ValueError: If the Signal API URL is invalid.
    """
    url = build_receive_url(settings.signal.api_url, settings.signal.account)
    logger.info(f"The fully qualified URL for signal-api was computed as {url!r}")
    return StreamingClient(
        url,
        message_filter=MessageFilter(settings.stream.accepted_kinds),
        open_timeout=settings.stream.open_timeout_seconds,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = apply_args(load_config(args.config), args)
    except ValueError as e:
        print(f"invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(settings)

    try:
        client = build_client(settings)
    except ValueError as e:
        logger.error(f"error building the Signal API url: {e}")
        return 1

    supervisor = ReconnectSupervisor(client, reconnect_delay=settings.stream.reconnect_delay_seconds)
    app = create_app(
        client,
        supervisor=supervisor,
        connect_on_startup=True,
        metrics_provider=client.metrics_snapshot,
    )

    logger.info(f"Starting HTTP server on {settings.server.host}:{settings.server.port}")
    uvicorn.run(app, host=settings.server.host, port=settings.server.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
