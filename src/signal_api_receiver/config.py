"""
Signal API Receiver Configuration
=================================

This module handles configuration loading for the receiver.

Configuration Sources (in order of precedence):
    1. Command line flags (applied by main.py)
    2. Environment variables
    3. config.yaml file
    4. Default values (lowest priority)

Environment Variable Mapping:
    SIGNAL_API_URL          -> signal.api_url
    SIGNAL_ACCOUNT          -> signal.account
    SIGNAL_RECONNECT_DELAY  -> stream.reconnect_delay_seconds
    SIGNAL_OPEN_TIMEOUT     -> stream.open_timeout_seconds
    SIGNAL_ACCEPTED_KINDS   -> stream.accepted_kinds (comma separated)
    SIGNAL_RECEIVER_ADDR    -> server.host / server.port
    PORT                    -> server.port
    SIGNAL_LOG_LEVEL        -> logging.level
    SIGNAL_LOG_FORMAT       -> logging.format

Example:
    from signal_api_receiver.config import load_config, build_receive_url

    settings = load_config()
    url = build_receive_url(settings.signal.api_url, settings.signal.account)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit, quote

import yaml
from pydantic import BaseModel, Field, field_validator

from signal_api_receiver.models.kinds import EnvelopeKind


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class SignalConfig(BaseModel):
    """Upstream Signal REST API configuration."""

    api_url: str = Field(
        default="",
        description="URL of the Signal API including the scheme, e.g. wss://signal-api.example.com",
    )
    account: str = Field(default="", description="The account number for signal")


class StreamConfig(BaseModel):
    """Streaming connection configuration."""

    reconnect_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Fixed delay between failed reconnect attempts",
    )
    open_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for the WebSocket opening handshake",
    )
    accepted_kinds: List[EnvelopeKind] = Field(
        default_factory=lambda: [EnvelopeKind.DATA],
        description="Envelope kinds that are buffered",
    )


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8105, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        if value not in ("json", "text"):
            raise ValueError("logging.format must be 'json' or 'text'")
        return value


class Settings(BaseModel):
    """
    Main settings class for the receiver.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    signal: SignalConfig = Field(default_factory=SignalConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        for path in (Path("config.yaml"), Path("config.yml")):
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    elif config_path:
        logger.warning(f"Config file {config_path} not found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Upstream
    if env_url := os.environ.get("SIGNAL_API_URL"):
        config_data.setdefault("signal", {})["api_url"] = env_url
    if env_account := os.environ.get("SIGNAL_ACCOUNT"):
        config_data.setdefault("signal", {})["account"] = env_account

    # Stream settings
    if env_delay := os.environ.get("SIGNAL_RECONNECT_DELAY"):
        config_data.setdefault("stream", {})["reconnect_delay_seconds"] = float(env_delay)
    if env_timeout := os.environ.get("SIGNAL_OPEN_TIMEOUT"):
        config_data.setdefault("stream", {})["open_timeout_seconds"] = float(env_timeout)
    if env_kinds := os.environ.get("SIGNAL_ACCEPTED_KINDS"):
        config_data.setdefault("stream", {})["accepted_kinds"] = [
            kind.strip() for kind in env_kinds.split(",") if kind.strip()
        ]

    # Server settings (PORT wins over the address port)
    if env_addr := os.environ.get("SIGNAL_RECEIVER_ADDR"):
        host, port = parse_listen_address(env_addr)
        config_data.setdefault("server", {}).update(host=host, port=port)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("SIGNAL_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_format := os.environ.get("SIGNAL_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_format


# =============================================================================
# Helpers
# =============================================================================

def build_receive_url(api_url: str, account: str) -> str:
    """
    Compute the WebSocket receive URL for an account.

    The path of ``api_url`` is replaced with ``/v1/receive/<account>``.
    The query string (e.g. a proxy token) is kept, the fragment dropped.

    Args:
        api_url: Signal API URL including scheme, e.g. ``wss://signal.example.com``
        account: Account number, e.g. ``+15551234567``

    Raises:
        ValueError: If the URL has no scheme or no host.
    """
    parts = urlsplit(api_url)
    if not parts.scheme:
        raise ValueError(f"the given url {api_url!r} does not contain a scheme")
    if not parts.netloc:
        raise ValueError(f"the given url {api_url!r} does not contain a host")

    path = f"/v1/receive/{quote(account, safe='+')}"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


def parse_listen_address(addr: str) -> Tuple[str, int]:
    """
    Parse a ``host:port`` listen address.

    An empty host means all interfaces, so ``":8105"`` gives
    ``("0.0.0.0", 8105)``.

    Raises:
        ValueError: If the port is missing or not a valid number.
    """
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {addr!r}, expected host:port")
    port_number = int(port)
    if not 1 <= port_number <= 65535:
        raise ValueError(f"invalid port in listen address {addr!r}")
    return host.strip("[]") or "0.0.0.0", port_number


LOG_FORMATS = {
    "json": '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}',
    "text": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

# Per-frame debug output, kept at WARNING unless DEBUG is requested
_QUIET_LOGGERS = ("websockets", "uvicorn.access")


def setup_logging(settings: Settings) -> int:
    """
    Configure root logging from settings.

    Returns:
        The effective root log level.
    """
    level = logging.getLevelName(settings.logging.level.upper())
    if not isinstance(level, int):
        logger.warning(f"Unknown log level {settings.logging.level!r}, using INFO")
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMATS[settings.logging.format],
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else max(level, logging.WARNING))
    return level
