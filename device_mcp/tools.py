"""
Standard device tools.

Binds the collaborators from device_mcp.board into McpServer tools. Hosts
call these once at startup, board-specific tools first:

    server.add_tool("self.robot.wave", ...)        # board-specific
    add_common_tools(server, board, pet)            # moved in front
    add_user_only_tools(server, board)
    add_pet_tools(server, pet)

Integer ranges declared on the properties are enforced here, in the tool
bodies, with Property.check_range(); an out-of-range value fails the call
with the range error as its message.
"""

from __future__ import annotations

import logging
import time

from device_mcp.board import Board, PetEngine
from device_mcp.schema import Property, PropertyList, PropertyType
from device_mcp.server import McpServer

logger = logging.getLogger(__name__)

INTEGER = PropertyType.INTEGER
STRING = PropertyType.STRING
BOOLEAN = PropertyType.BOOLEAN


def add_common_tools(server: McpServer, board: Board, pet: PetEngine | None = None) -> None:
    """Register the common tools ahead of any board-specific ones."""

    def register():
        server.add_tool(
            "self.get_device_status",
            "Provides the real-time information of the device, including the current status "
            "of the audio speaker, screen, battery, network, etc.\n"
            "Use this tool for: \n"
            "1. Answering questions about current condition (e.g. what is the current volume "
            "of the audio speaker?)\n"
            "2. As the first step to control the device (e.g. turn up / down the volume of "
            "the audio speaker, etc.)",
            PropertyList(),
            lambda props: board.get_device_status_json(),
        )

        def set_volume(props):
            board.audio_codec.set_output_volume(props["volume"].check_range())
            return True

        server.add_tool(
            "self.audio_speaker.set_volume",
            "Set the volume of the audio speaker. If the current volume is unknown, you must "
            "call `self.get_device_status` tool first and then call this tool.",
            PropertyList([Property("volume", INTEGER, min_value=0, max_value=100)]),
            set_volume,
        )

        backlight = board.backlight
        if backlight is not None:
            def set_brightness(props):
                backlight.set_brightness(props["brightness"].check_range(), True)
                return True

            server.add_tool(
                "self.screen.set_brightness",
                "Set the brightness of the screen.",
                PropertyList([Property("brightness", INTEGER, min_value=0, max_value=100)]),
                set_brightness,
            )

        display = board.display
        if display is not None:
            server.add_tool(
                "self.screen.set_theme",
                "Set the theme of the screen. The theme can be `light` or `dark`.",
                PropertyList([Property("theme", STRING)]),
                lambda props: display.set_theme(props["theme"].value),
            )

        camera = board.camera
        if camera is not None:
            def take_photo(props):
                if not camera.capture():
                    raise RuntimeError("Failed to capture photo")
                return camera.explain(props["question"].value)

            server.add_tool(
                "self.camera.take_photo",
                "Take a photo and explain it. Use this tool after the user asks you to see "
                "something.\n"
                "Args:\n"
                "  `question`: The question that you want to ask about the photo.\n"
                "Return:\n"
                "  A JSON object that provides the photo information.",
                PropertyList([Property("question", STRING)]),
                take_photo,
            )

        if pet is not None:
            _add_pet_type_tools(server, pet)

    server.add_common_tools(register)


def _add_pet_type_tools(server: McpServer, pet: PetEngine) -> None:
    server.add_tool(
        "self.pet.list_types",
        "List all available pet types (cat, dog, panda, etc.).",
        PropertyList(),
        lambda props: pet.list_types(),
    )

    def select_type(props):
        if not pet.select_type(props["type_id"].value):
            return "Pet type not found. Use self.pet.list_types to see available pets."
        return pet.get_status_description()

    server.add_tool(
        "self.pet.select_type",
        "Change pet type. type_id: cat/dog/rabbit/hamster/parrot/lion/tiger/panda/bear/wolf/"
        "fox/penguin/rhino/elephant/giraffe/koala/sloth/dragon/unicorn",
        PropertyList([Property("type_id", STRING)]),
        select_type,
    )
    server.add_tool(
        "self.pet.get_type_info",
        "Get info about a specific pet type.",
        PropertyList([Property("type_id", STRING)]),
        lambda props: pet.get_type_info(props["type_id"].value),
    )


def add_user_only_tools(server: McpServer, board: Board, reboot_delay: float = 1.0) -> None:
    """Register system tools that are only listed with withUserTools."""
    loop = server.main_loop

    server.add_user_only_tool(
        "self.get_system_info",
        "Get the system information",
        PropertyList(),
        lambda props: board.get_system_info_json(),
    )

    def reboot(props):
        def _do_reboot():
            logger.warning("User requested reboot")
            time.sleep(reboot_delay)
            board.reboot()

        loop.schedule(_do_reboot)
        return True

    server.add_user_only_tool("self.reboot", "Reboot the system", PropertyList(), reboot)

    def upgrade_firmware(props):
        url = props["url"].value
        logger.info(f"User requested firmware upgrade from URL: {url}")

        def _do_upgrade():
            if not board.upgrade_firmware(url):
                logger.error("Firmware upgrade failed")

        loop.schedule(_do_upgrade)
        return True

    server.add_user_only_tool(
        "self.upgrade_firmware",
        "Upgrade firmware from a specific URL. This will download and install the firmware, "
        "then reboot the device.",
        PropertyList([Property("url", STRING)]),
        upgrade_firmware,
    )

    display = board.display
    if display is not None:
        server.add_user_only_tool(
            "self.screen.get_info",
            "Information about the screen, including width, height, etc.",
            PropertyList(),
            lambda props: display.get_info(),
        )

        def snapshot(props):
            url = props["url"].value
            quality = props["quality"].check_range()
            if not display.snapshot(url, quality):
                raise RuntimeError("Failed to snapshot screen")
            logger.info(f"Snapshot uploaded to {url}")
            return True

        server.add_user_only_tool(
            "self.screen.snapshot",
            "Snapshot the screen and upload it to a specific URL",
            PropertyList([
                Property("url", STRING),
                Property("quality", INTEGER, 80, min_value=1, max_value=100),
            ]),
            snapshot,
        )

        def preview_image(props):
            url = props["url"].value
            if not display.preview_image(url):
                raise RuntimeError(f"Failed to download image: {url}")
            return True

        server.add_user_only_tool(
            "self.screen.preview_image",
            "Preview an image on the screen",
            PropertyList([Property("url", STRING)]),
            preview_image,
        )

    def set_download_url(props):
        board.set_assets_download_url(props["url"].value)
        return True

    server.add_user_only_tool(
        "self.assets.set_download_url",
        "Set the download url for the assets",
        PropertyList([Property("url", STRING)]),
        set_download_url,
    )

    def erase_nvs(props):
        logger.warning("User requested to erase all NVS data")
        board.erase_nvs()
        return True

    server.add_user_only_tool(
        "self.nvs.erase_all",
        "Erase all NVS data and reboot. WARNING: This will reset all settings!",
        PropertyList(),
        erase_nvs,
    )


def add_pet_tools(server: McpServer, pet: PetEngine) -> None:
    """Register the pet care tools."""
    server.add_tool(
        "self.pet.get_state",
        "Get pet status: mood, satiety, cleanliness (0-100), pet type and emotion.",
        PropertyList(),
        lambda props: pet.get_status_description(),
    )

    def check_warning(props):
        return pet.check_warning() or "Pet is doing fine, no warnings."

    server.add_tool(
        "self.pet.check_warning",
        "Check if pet needs care. Returns warning message or 'Pet is doing fine'.",
        PropertyList(),
        check_warning,
    )

    def feed(props):
        if not pet.feed(props["amount"].check_range()):
            return "Pet is full or on cooldown (60s between feedings)"
        return pet.get_status_description()

    server.add_tool(
        "self.pet.feed",
        "Feed pet. Satiety +10-20, Mood +3. Cooldown: 60s.",
        PropertyList([Property("amount", INTEGER, 5, min_value=1, max_value=10)]),
        feed,
    )

    def clean(props):
        if not pet.clean():
            return "Pet is already clean or on cooldown (120s between cleanings)"
        return pet.get_status_description()

    server.add_tool(
        "self.pet.clean",
        "Clean pet. Cleanliness +15, Mood +5. Cooldown: 120s.",
        PropertyList(),
        clean,
    )

    def play(props):
        if not pet.play(props["kind"].value):
            return "Pet is tired or on cooldown (60s between play sessions)"
        return pet.get_status_description()

    server.add_tool(
        "self.pet.play",
        "Play with pet. Mood +8, Satiety -3. Cooldown: 60s.",
        PropertyList([Property("kind", STRING, "dance")]),
        play,
    )

    def hug(props):
        if not pet.hug():
            return "Pet was recently hugged (30s cooldown)"
        return pet.get_status_description()

    server.add_tool("self.pet.hug", "Hug pet. Mood +5. Cooldown: 30s.", PropertyList(), hug)

    def reset_daily(props):
        pet.reset_daily()
        return True

    server.add_user_only_tool(
        "self.pet.reset_daily",
        "Reset daily tasks (testing).",
        PropertyList(),
        reset_daily,
    )

    def set_state(props):
        pet.debug_set(
            props["mood"].check_range(),
            props["satiety"].check_range(),
            props["cleanliness"].check_range(),
        )
        return pet.get_status_description()

    server.add_tool(
        "self.pet.set_state",
        "Set pet state values directly (for debugging).",
        PropertyList([
            Property("mood", INTEGER, 70, min_value=0, max_value=100),
            Property("satiety", INTEGER, 70, min_value=0, max_value=100),
            Property("cleanliness", INTEGER, 70, min_value=0, max_value=100),
        ]),
        set_state,
    )

    def configure_auto_announcement(props):
        enable = props["enable"].value
        interval = props["interval_min"].check_range()
        pet.enable_auto_announcement(enable, interval)
        return {
            "enabled": enable,
            "interval_minutes": interval,
            "status": "Auto announcement enabled" if enable else "Auto announcement disabled",
        }

    server.add_tool(
        "self.pet.configure_auto_announcement",
        "Configure auto pet status announcements. enable: on/off, interval_min: minutes "
        "between announcements.",
        PropertyList([
            Property("enable", BOOLEAN, True),
            Property("interval_min", INTEGER, 3, min_value=1, max_value=60),
        ]),
        configure_auto_announcement,
    )
