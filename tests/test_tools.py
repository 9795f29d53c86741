import json

import pytest

from device_mcp.schema import PropertyList
from device_mcp.tools import add_common_tools, add_pet_tools, add_user_only_tools

from conftest import FakeBoard, request


def call(server, outbox, loop, name, arguments=None):
    params = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    server.parse_message(request("tools/call", params))
    loop.run_pending()
    return outbox.last()


def text_of(reply):
    return reply["result"]["content"][0]["text"]


@pytest.fixture
def device(server, board, pet):
    server.add_tool("board.wave", "Wave the arm", PropertyList(), lambda props: True)
    add_common_tools(server, board, pet)
    add_user_only_tools(server, board, reboot_delay=0)
    add_pet_tools(server, pet)
    return server


def test_common_tools_come_first(device):
    names = device.registry.names()
    assert names[0] == "self.get_device_status"
    assert names.index("board.wave") > names.index("self.pet.get_type_info")
    assert names.index("board.wave") < names.index("self.get_system_info")


def test_optional_peripherals_are_skipped(server):
    board = FakeBoard(with_peripherals=False)
    add_common_tools(server, board)
    add_user_only_tools(server, board)
    names = server.registry.names()
    assert "self.screen.set_brightness" not in names
    assert "self.screen.set_theme" not in names
    assert "self.camera.take_photo" not in names
    assert "self.screen.snapshot" not in names
    assert "self.pet.list_types" not in names
    assert "self.audio_speaker.set_volume" in names


def test_user_only_flags(device):
    user_only = {t.name for t in device.registry if t.user_only}
    assert user_only == {
        "self.get_system_info",
        "self.reboot",
        "self.upgrade_firmware",
        "self.screen.get_info",
        "self.screen.snapshot",
        "self.screen.preview_image",
        "self.assets.set_download_url",
        "self.nvs.erase_all",
        "self.pet.reset_daily",
    }


def test_set_volume(device, outbox, loop, board):
    assert text_of(call(device, outbox, loop, "self.audio_speaker.set_volume", {"volume": 40})) == "true"
    assert board.audio_codec.volume == 40


def test_set_volume_out_of_range(device, outbox, loop, board):
    reply = call(device, outbox, loop, "self.audio_speaker.set_volume", {"volume": 101})
    assert reply["error"]["message"] == "Value exceeds maximum allowed: 100"
    assert board.audio_codec.volume is None


def test_device_status_is_json_text(device, outbox, loop, board):
    board.audio_codec.volume = 33
    reply = call(device, outbox, loop, "self.get_device_status")
    assert json.loads(text_of(reply)) == {"audio_speaker": {"volume": 33}}


def test_brightness_is_saved(device, outbox, loop, board):
    call(device, outbox, loop, "self.screen.set_brightness", {"brightness": 20})
    assert board.backlight.calls == [(20, True)]


def test_set_theme(device, outbox, loop, board):
    assert text_of(call(device, outbox, loop, "self.screen.set_theme", {"theme": "dark"})) == "true"
    assert text_of(call(device, outbox, loop, "self.screen.set_theme", {"theme": "neon"})) == "false"
    assert board.display.theme == "dark"


def test_take_photo(device, outbox, loop, board):
    reply = call(device, outbox, loop, "self.camera.take_photo", {"question": "what is this?"})
    assert json.loads(text_of(reply))["text"] == "answer to what is this?"


def test_take_photo_capture_failure(device, outbox, loop, board):
    board.camera.capture_ok = False
    reply = call(device, outbox, loop, "self.camera.take_photo", {"question": "?"})
    assert reply["error"]["message"] == "Failed to capture photo"


def test_reboot_is_deferred(device, outbox, loop, board):
    device.parse_message(request("tools/call", {"name": "self.reboot"}))
    # Runs the tool body, which schedules the reboot itself on the same loop
    loop.run_pending()
    assert text_of(outbox.last()) == "true"
    assert board.reboots == 1


def test_upgrade_firmware(device, outbox, loop, board):
    reply = call(device, outbox, loop, "self.upgrade_firmware", {"url": "https://ota.example.com/fw.bin"})
    assert text_of(reply) == "true"
    assert board.upgrades == ["https://ota.example.com/fw.bin"]


def test_screen_tools(device, outbox, loop, board):
    info = json.loads(text_of(call(device, outbox, loop, "self.screen.get_info")))
    assert info == {"width": 128, "height": 64, "monochrome": True}

    call(device, outbox, loop, "self.screen.snapshot", {"url": "http://up"})
    assert board.display.snapshots == [("http://up", 80)]

    board.display.snapshot_ok = False
    reply = call(device, outbox, loop, "self.screen.snapshot", {"url": "http://up", "quality": 10})
    assert reply["error"]["message"] == "Failed to snapshot screen"

    call(device, outbox, loop, "self.screen.preview_image", {"url": "http://img"})
    assert board.display.previews == ["http://img"]


def test_assets_and_nvs(device, outbox, loop, board):
    call(device, outbox, loop, "self.assets.set_download_url", {"url": "http://assets"})
    assert board.assets_url == "http://assets"
    call(device, outbox, loop, "self.nvs.erase_all")
    assert board.nvs_erased is True


def test_pet_feed_default_amount(device, outbox, loop, pet):
    reply = call(device, outbox, loop, "self.pet.feed")
    assert pet.satiety == 55
    assert text_of(reply) == pet.get_status_description()


def test_pet_actions_on_cooldown(device, outbox, loop, pet):
    pet.cooldown = True
    assert "cooldown" in text_of(call(device, outbox, loop, "self.pet.feed", {"amount": 3}))
    assert "cooldown" in text_of(call(device, outbox, loop, "self.pet.clean"))
    assert "cooldown" in text_of(call(device, outbox, loop, "self.pet.play"))
    assert "cooldown" in text_of(call(device, outbox, loop, "self.pet.hug"))


def test_pet_warning(device, outbox, loop, pet):
    assert text_of(call(device, outbox, loop, "self.pet.check_warning")) == "Pet is doing fine, no warnings."
    pet.warning = "Pet is hungry!"
    assert text_of(call(device, outbox, loop, "self.pet.check_warning")) == "Pet is hungry!"


def test_pet_set_state_and_types(device, outbox, loop, pet):
    call(device, outbox, loop, "self.pet.set_state", {"mood": 10})
    assert (pet.mood, pet.satiety, pet.cleanliness) == (10, 70, 70)

    reply = call(device, outbox, loop, "self.pet.select_type", {"type_id": "griffin"})
    assert text_of(reply).startswith("Pet type not found")
    call(device, outbox, loop, "self.pet.select_type", {"type_id": "panda"})
    assert pet.kind == "panda"
    assert text_of(call(device, outbox, loop, "self.pet.list_types")) == "cat, dog, panda"


def test_pet_auto_announcement(device, outbox, loop, pet):
    reply = call(device, outbox, loop, "self.pet.configure_auto_announcement", {"enable": False, "interval_min": 10})
    assert json.loads(text_of(reply)) == {
        "enabled": False,
        "interval_minutes": 10,
        "status": "Auto announcement disabled",
    }
    assert pet.announcement == (False, 10)


def test_pet_reset_daily(device, outbox, loop, pet):
    call(device, outbox, loop, "self.pet.reset_daily")
    assert pet.daily_resets == 1
