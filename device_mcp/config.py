"""
Server configuration for the device MCP front end.

Protocol constants live at module level. Per-device settings (board name,
firmware version, catalog page budget) live in ServerConfig, which can be
filled from the environment:

    DEVICE_MCP_BOARD_NAME          serverInfo.name reported by initialize
    DEVICE_MCP_FIRMWARE_VERSION    serverInfo.version reported by initialize
    DEVICE_MCP_MAX_PAYLOAD_SIZE    byte budget for one tools/list page
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from device_mcp import __version__

#: MCP protocol revision this server speaks.
PROTOCOL_VERSION = "2024-11-05"

#: Hard ceiling for one serialized tools/list result, in bytes.
DEFAULT_MAX_PAYLOAD_SIZE = 8000

#: Room kept free for the closing syntax of a tools/list page.
PAYLOAD_SAFETY_MARGIN = 30

#: Methods starting with this prefix are notifications and get no reply.
NOTIFICATION_PREFIX = "notifications"

BOARD_NAME_ENV = "DEVICE_MCP_BOARD_NAME"
FIRMWARE_VERSION_ENV = "DEVICE_MCP_FIRMWARE_VERSION"
MAX_PAYLOAD_SIZE_ENV = "DEVICE_MCP_MAX_PAYLOAD_SIZE"


@dataclass
class ServerConfig:
    """Identity and limits advertised by one device."""
    board_name: str = "device-mcp"
    firmware_version: str = __version__
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE
    protocol_version: str = PROTOCOL_VERSION

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ServerConfig":
        """Build a config, overriding defaults with any DEVICE_MCP_* variables."""
        environ = os.environ if environ is None else environ
        config = cls()

        if environ.get(BOARD_NAME_ENV):
            config.board_name = environ[BOARD_NAME_ENV]
        if environ.get(FIRMWARE_VERSION_ENV):
            config.firmware_version = environ[FIRMWARE_VERSION_ENV]

        raw_size = environ.get(MAX_PAYLOAD_SIZE_ENV)
        if raw_size:
            try:
                config.max_payload_size = int(raw_size)
            except ValueError as e:
                raise ValueError(
                    f"{MAX_PAYLOAD_SIZE_ENV} must be an integer, got '{raw_size}'"
                ) from e
            if config.max_payload_size <= PAYLOAD_SAFETY_MARGIN:
                raise ValueError(
                    f"{MAX_PAYLOAD_SIZE_ENV} must be larger than {PAYLOAD_SAFETY_MARGIN}"
                )

        return config
