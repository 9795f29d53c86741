"""
Interfaces of the device collaborators the standard tools drive.

The MCP core never touches hardware itself. The host application supplies
concrete implementations of these classes (or of the parts its board has)
and device_mcp.tools binds them into tool bodies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class AudioCodec(ABC):

    @abstractmethod
    def set_output_volume(self, volume: int) -> None:
        ...


class Backlight(ABC):

    @abstractmethod
    def set_brightness(self, brightness: int, permanent: bool = False) -> None:
        ...


class Display(ABC):
    """A screen with themes, snapshot upload and image preview."""

    @abstractmethod
    def set_theme(self, theme_name: str) -> bool:
        """Switch theme. Returns False if no theme has that name."""
        ...

    @abstractmethod
    def get_info(self) -> dict[str, Any]:
        """Width, height and whether the panel is monochrome."""
        ...

    @abstractmethod
    def snapshot(self, url: str, quality: int) -> bool:
        """Capture the screen as JPEG and upload it to url."""
        ...

    @abstractmethod
    def preview_image(self, url: str) -> bool:
        """Download an image from url and show it."""
        ...


class Camera(ABC):

    @abstractmethod
    def capture(self) -> bool:
        ...

    @abstractmethod
    def explain(self, question: str) -> str:
        """Send the last capture to the explain endpoint, return its answer (JSON text)."""
        ...

    @abstractmethod
    def set_explain_url(self, url: str, token: str = "") -> None:
        ...


class Board(ABC):
    """
    The device itself.

    Optional peripherals (backlight, display, camera) are None on boards
    that lack them; the matching tools are then not registered.
    """

    audio_codec: AudioCodec
    backlight: Backlight | None = None
    display: Display | None = None
    camera: Camera | None = None

    @abstractmethod
    def get_device_status_json(self) -> dict[str, Any]:
        """Live status: speaker, screen, battery, network."""
        ...

    @abstractmethod
    def get_system_info_json(self) -> dict[str, Any]:
        ...

    @abstractmethod
    def reboot(self) -> None:
        ...

    @abstractmethod
    def upgrade_firmware(self, url: str) -> bool:
        """Download and install firmware from url. Reboots on success."""
        ...

    @abstractmethod
    def erase_nvs(self) -> None:
        """Erase persistent settings storage and restart."""
        ...

    @abstractmethod
    def set_assets_download_url(self, url: str) -> None:
        ...


class PetEngine(ABC):
    """
    The virtual pet. Mutators return False when the pet is on cooldown or
    the action is not possible in its current state.
    """

    @abstractmethod
    def get_status_description(self) -> str:
        ...

    @abstractmethod
    def check_warning(self) -> str:
        """Empty string when the pet needs nothing."""
        ...

    @abstractmethod
    def feed(self, amount: int) -> bool:
        ...

    @abstractmethod
    def clean(self) -> bool:
        ...

    @abstractmethod
    def play(self, kind: str) -> bool:
        ...

    @abstractmethod
    def hug(self) -> bool:
        ...

    @abstractmethod
    def reset_daily(self) -> None:
        ...

    @abstractmethod
    def debug_set(self, mood: int, satiety: int, cleanliness: int) -> None:
        ...

    @abstractmethod
    def list_types(self) -> str:
        ...

    @abstractmethod
    def select_type(self, type_id: str) -> bool:
        ...

    @abstractmethod
    def get_type_info(self, type_id: str) -> str:
        ...

    @abstractmethod
    def enable_auto_announcement(self, enable: bool, interval_minutes: int) -> None:
        ...
