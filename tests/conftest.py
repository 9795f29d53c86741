from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from device_mcp.board import AudioCodec, Backlight, Board, Camera, Display, PetEngine  # noqa: E402
from device_mcp.scheduler import MainLoop  # noqa: E402
from device_mcp.server import McpServer  # noqa: E402


class Outbox:
    """Collects what the server sends, decoded."""

    def __init__(self):
        self.raw: list[str] = []

    def __call__(self, message: str) -> None:
        self.raw.append(message)

    @property
    def messages(self) -> list[dict[str, Any]]:
        return [json.loads(m) for m in self.raw]

    def last(self) -> dict[str, Any]:
        return json.loads(self.raw[-1])

    def clear(self) -> None:
        self.raw.clear()


class FakeCodec(AudioCodec):
    def __init__(self):
        self.volume = None

    def set_output_volume(self, volume: int) -> None:
        self.volume = volume


class FakeBacklight(Backlight):
    def __init__(self):
        self.calls = []

    def set_brightness(self, brightness: int, permanent: bool = False) -> None:
        self.calls.append((brightness, permanent))


class FakeDisplay(Display):
    def __init__(self):
        self.theme = "light"
        self.snapshot_ok = True
        self.snapshots = []
        self.previews = []

    def set_theme(self, theme_name: str) -> bool:
        if theme_name not in ("light", "dark"):
            return False
        self.theme = theme_name
        return True

    def get_info(self) -> dict[str, Any]:
        return {"width": 128, "height": 64, "monochrome": True}

    def snapshot(self, url: str, quality: int) -> bool:
        self.snapshots.append((url, quality))
        return self.snapshot_ok

    def preview_image(self, url: str) -> bool:
        self.previews.append(url)
        return True


class FakeCamera(Camera):
    def __init__(self):
        self.capture_ok = True
        self.explain_url = None
        self.questions = []

    def capture(self) -> bool:
        return self.capture_ok

    def explain(self, question: str) -> str:
        self.questions.append(question)
        return json.dumps({"success": True, "text": f"answer to {question}"})

    def set_explain_url(self, url: str, token: str = "") -> None:
        self.explain_url = (url, token)


class FakeBoard(Board):
    def __init__(self, with_peripherals: bool = True):
        self.audio_codec = FakeCodec()
        self.backlight = FakeBacklight() if with_peripherals else None
        self.display = FakeDisplay() if with_peripherals else None
        self.camera = FakeCamera() if with_peripherals else None
        self.reboots = 0
        self.upgrades = []
        self.nvs_erased = False
        self.assets_url = None

    def get_device_status_json(self) -> dict[str, Any]:
        return {"audio_speaker": {"volume": self.audio_codec.volume}}

    def get_system_info_json(self) -> dict[str, Any]:
        return {"board": "fake"}

    def reboot(self) -> None:
        self.reboots += 1

    def upgrade_firmware(self, url: str) -> bool:
        self.upgrades.append(url)
        return True

    def erase_nvs(self) -> None:
        self.nvs_erased = True

    def set_assets_download_url(self, url: str) -> None:
        self.assets_url = url


class FakePet(PetEngine):
    """Deterministic pet: every action succeeds unless `cooldown` is set."""

    def __init__(self):
        self.cooldown = False
        self.mood = 50
        self.satiety = 50
        self.cleanliness = 50
        self.kind = "cat"
        self.warning = ""
        self.announcement = None
        self.daily_resets = 0

    def get_status_description(self) -> str:
        return f"{self.kind}: mood={self.mood} satiety={self.satiety} cleanliness={self.cleanliness}"

    def check_warning(self) -> str:
        return self.warning

    def feed(self, amount: int) -> bool:
        if self.cooldown:
            return False
        self.satiety += amount
        return True

    def clean(self) -> bool:
        if self.cooldown:
            return False
        self.cleanliness += 15
        return True

    def play(self, kind: str) -> bool:
        if self.cooldown:
            return False
        self.mood += 8
        return True

    def hug(self) -> bool:
        if self.cooldown:
            return False
        self.mood += 5
        return True

    def reset_daily(self) -> None:
        self.daily_resets += 1

    def debug_set(self, mood: int, satiety: int, cleanliness: int) -> None:
        self.mood, self.satiety, self.cleanliness = mood, satiety, cleanliness

    def list_types(self) -> str:
        return "cat, dog, panda"

    def select_type(self, type_id: str) -> bool:
        if type_id not in ("cat", "dog", "panda"):
            return False
        self.kind = type_id
        return True

    def get_type_info(self, type_id: str) -> str:
        return f"{type_id}: a fine pet"

    def enable_auto_announcement(self, enable: bool, interval_minutes: int) -> None:
        self.announcement = (enable, interval_minutes)


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def loop():
    """A main loop driven by the test via run_pending()."""
    return MainLoop()


@pytest.fixture
def server(outbox, loop):
    return McpServer(send=outbox, main_loop=loop)


@pytest.fixture
def board():
    return FakeBoard()


@pytest.fixture
def pet():
    return FakePet()


def request(method: str, params: Any = None, request_id: Any = 1) -> str:
    message: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return json.dumps(message)
