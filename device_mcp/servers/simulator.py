"""
Simulated device MCP server.

An in-memory board (speaker, backlight, display, no camera) behind the
standard tool set, served over stdin/stdout. Useful for developing agents
without hardware and for end-to-end tests of the stdio transport.

Launch:
    python -m device_mcp.servers.simulator

Test manually:
    echo '{"jsonrpc":"2.0","method":"initialize","params":{},"id":1}' | python -m device_mcp.servers.simulator
    echo '{"jsonrpc":"2.0","method":"tools/call","params":{"name":"self.audio_speaker.set_volume","arguments":{"volume":40}},"id":2}' | python -m device_mcp.servers.simulator
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

from device_mcp.board import AudioCodec, Backlight, Board, Display
from device_mcp.config import BOARD_NAME_ENV, ServerConfig
from device_mcp.scheduler import MainLoop
from device_mcp.server import McpServer
from device_mcp.tools import add_common_tools, add_user_only_tools
from device_mcp.transport import StdioChannel

logger = logging.getLogger(__name__)


class SimulatedCodec(AudioCodec):
    def __init__(self):
        self.volume = 70

    def set_output_volume(self, volume: int) -> None:
        logger.info(f"Speaker volume {self.volume} -> {volume}")
        self.volume = volume


class SimulatedBacklight(Backlight):
    def __init__(self):
        self.brightness = 75

    def set_brightness(self, brightness: int, permanent: bool = False) -> None:
        logger.info(f"Backlight {self.brightness} -> {brightness}{' (saved)' if permanent else ''}")
        self.brightness = brightness


class SimulatedDisplay(Display):
    themes = ("light", "dark")

    def __init__(self, width: int = 240, height: int = 240):
        self.width = width
        self.height = height
        self.theme = "light"
        self.previewed: list[str] = []

    def set_theme(self, theme_name: str) -> bool:
        if theme_name not in self.themes:
            return False
        self.theme = theme_name
        return True

    def get_info(self) -> dict[str, Any]:
        return {"width": self.width, "height": self.height, "monochrome": False}

    def snapshot(self, url: str, quality: int) -> bool:
        # No network in the simulator.
        logger.warning(f"Snapshot upload to {url} not supported by the simulator")
        return False

    def preview_image(self, url: str) -> bool:
        self.previewed.append(url)
        return True


class SimulatedBoard(Board):
    """Board whose peripherals only keep state in memory."""

    def __init__(self):
        self.audio_codec = SimulatedCodec()
        self.backlight = SimulatedBacklight()
        self.display = SimulatedDisplay()
        self.camera = None
        self.reboots = 0
        self.assets_download_url = ""
        self.settings: dict[str, Any] = {"wifi_ssid": "simulated"}

    def get_device_status_json(self) -> dict[str, Any]:
        return {
            "audio_speaker": {"volume": self.audio_codec.volume},
            "screen": {"brightness": self.backlight.brightness, "theme": self.display.theme},
            "battery": {"level": 100, "charging": False},
            "network": {"type": "wifi", "ssid": self.settings.get("wifi_ssid", "")},
        }

    def get_system_info_json(self) -> dict[str, Any]:
        return {
            "board": "simulator",
            "chip": "none",
            "flash_size": 0,
            "uptime_reboots": self.reboots,
        }

    def reboot(self) -> None:
        logger.warning("Simulated reboot")
        self.reboots += 1

    def upgrade_firmware(self, url: str) -> bool:
        logger.error(f"Firmware upgrade from {url} not supported by the simulator")
        return False

    def erase_nvs(self) -> None:
        logger.warning("Erasing simulated settings")
        self.settings.clear()
        self.reboot()

    def set_assets_download_url(self, url: str) -> None:
        self.assets_download_url = url


def build_server(
    send,
    main_loop: MainLoop,
    board: Board | None = None,
    config: ServerConfig | None = None,
    reboot_delay: float = 1.0,
) -> McpServer:
    """Wire a simulated board into an McpServer with the standard tools."""
    board = board or SimulatedBoard()
    if config is None:
        config = ServerConfig.from_env({BOARD_NAME_ENV: "simulator", **os.environ})

    server = McpServer(send=send, main_loop=main_loop, config=config, camera=board.camera)
    add_common_tools(server, board)
    add_user_only_tools(server, board, reboot_delay=reboot_delay)
    return server


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    channel = StdioChannel()
    loop = MainLoop()
    server = build_server(channel.send, loop)

    logger.info(f"Simulator serving {len(server.registry)} tools: {server.registry.names()}")
    loop.start()
    try:
        channel.run(server.parse_message)
    finally:
        loop.stop()


if __name__ == "__main__":
    main()
