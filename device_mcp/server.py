"""
MCP server for the device.

Receives JSON-RPC 2.0 text from whatever channel the host owns, validates
the envelope, and answers three methods:

    initialize  → protocol version, capabilities and server identity
    tools/list  → one size-bounded page of the tool catalog
    tools/call  → runs a tool body on the device main loop

Notifications ("notifications/...") and messages that cannot be addressed
(bad JSON, missing or non-numeric id) are dropped without a reply.

To build a server:

    from device_mcp.scheduler import MainLoop
    from device_mcp.schema import Property, PropertyList, PropertyType
    from device_mcp.server import McpServer

    loop = MainLoop()
    server = McpServer(send=channel.send, main_loop=loop)
    server.add_tool(
        "self.audio_speaker.set_volume",
        "Set the volume of the audio speaker.",
        PropertyList([Property("volume", PropertyType.INTEGER, min_value=0, max_value=100)]),
        lambda props: codec.set_output_volume(props["volume"].value) or True,
    )
    loop.start()
    channel.run(server.parse_message)
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Callable

from device_mcp.board import Camera
from device_mcp.config import NOTIFICATION_PREFIX, PAYLOAD_SAFETY_MARGIN, ServerConfig
from device_mcp.registry import Tool, ToolCallback, ToolRegistry
from device_mcp.scheduler import MainLoop
from device_mcp.schema import MissingArgument, PropertyList, bind_arguments

logger = logging.getLogger(__name__)


def _compact(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def _is_number(value: Any) -> bool:
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int) and not isinstance(value, bool)


class McpServer:
    """
    JSON-RPC request router in front of the device tool registry.

    Args:
        send: Delivers one outbound JSON-RPC message (text). Called from
              the caller's thread for protocol errors and list/initialize
              replies, and from the main loop thread for tool results, so
              it must be thread-safe.
        main_loop: The owning execution context tool bodies run on
        config: Server identity and page budget
        camera: Receives the vision endpoint announced in initialize
    """

    def __init__(
        self,
        send: Callable[[str], None],
        main_loop: MainLoop,
        config: ServerConfig | None = None,
        camera: Camera | None = None,
        registry: ToolRegistry | None = None,
    ):
        self._send = send
        self.main_loop = main_loop
        self.config = config or ServerConfig()
        self.camera = camera
        self.registry = registry if registry is not None else ToolRegistry()

    # ── Registration ──────────────────────────────────────

    def add_tool(
        self,
        name: str,
        description: str,
        properties: PropertyList,
        callback: ToolCallback,
    ) -> bool:
        """Register a tool visible to every tools/list caller."""
        return self.registry.add(Tool(name, description, properties, callback))

    def add_user_only_tool(
        self,
        name: str,
        description: str,
        properties: PropertyList,
        callback: ToolCallback,
    ) -> bool:
        """Register a tool listed only when the caller asks for user tools."""
        return self.registry.add(Tool(name, description, properties, callback, user_only=True))

    def add_common_tools(self, register_fn: Callable[[], None]) -> None:
        """Register the common batch in front of the tools added so far."""
        self.registry.add_common(register_fn)

    def find_tool(self, name: str) -> Tool | None:
        return self.registry.find(name)

    # ── Inbound ───────────────────────────────────────────

    def parse_message(self, message: str) -> None:
        """Handle one raw JSON-RPC message."""
        try:
            data = json.loads(message)
        except (ValueError, TypeError, RecursionError) as e:
            logger.error(f"Failed to parse MCP message: {e}: {message!r}")
            return
        self.handle_message(data)

    def handle_message(self, data: Any) -> None:
        """Validate a decoded JSON-RPC envelope and dispatch it."""
        if not isinstance(data, dict):
            logger.error(f"Invalid MCP message, expected an object: {data!r}")
            return

        version = data.get("jsonrpc")
        if version != "2.0":
            logger.error(f"Invalid JSONRPC version: {version}")
            return

        method = data.get("method")
        if not isinstance(method, str):
            logger.error("Missing method")
            return

        if method.startswith(NOTIFICATION_PREFIX):
            return

        params = data.get("params")
        if params is not None and not isinstance(params, dict):
            logger.error(f"Invalid params for method: {method}")
            return

        request_id = data.get("id")
        if not _is_number(request_id):
            logger.error(f"Invalid id for method: {method}")
            return
        request_id = int(request_id)

        if method == "initialize":
            self._handle_initialize(request_id, params)
        elif method == "tools/list":
            self._handle_tools_list(request_id, params)
        elif method == "tools/call":
            self._handle_tools_call(request_id, params)
        else:
            logger.error(f"Method not implemented: {method}")
            self.reply_error(request_id, f"Method not implemented: {method}")

    def _handle_initialize(self, request_id: int, params: dict | None) -> None:
        if params is not None and isinstance(params.get("capabilities"), dict):
            self.parse_capabilities(params["capabilities"])

        self.reply_result(request_id, {
            "protocolVersion": self.config.protocol_version,
            "capabilities": {"tools": {}},
            "serverInfo": {
                "name": self.config.board_name,
                "version": self.config.firmware_version,
            },
        })

    def parse_capabilities(self, capabilities: dict[str, Any]) -> None:
        """Forward the client's vision endpoint, if any, to the camera."""
        vision = capabilities.get("vision")
        if not isinstance(vision, dict):
            return
        url = vision.get("url")
        if not isinstance(url, str) or self.camera is None:
            return
        token = vision.get("token")
        self.camera.set_explain_url(url, token if isinstance(token, str) else "")
        logger.info(f"Vision explain endpoint set: {url}")

    def _handle_tools_list(self, request_id: int, params: dict | None) -> None:
        cursor = ""
        with_user_tools = False
        if params is not None:
            if isinstance(params.get("cursor"), str):
                cursor = params["cursor"]
            if isinstance(params.get("withUserTools"), bool):
                with_user_tools = params["withUserTools"]
        self.get_tools_list(request_id, cursor, with_user_tools)

    def _handle_tools_call(self, request_id: int, params: dict | None) -> None:
        if params is None:
            logger.error("tools/call: Missing params")
            self.reply_error(request_id, "Missing params")
            return

        name = params.get("name")
        if not isinstance(name, str):
            logger.error("tools/call: Missing name")
            self.reply_error(request_id, "Missing name")
            return

        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            logger.error("tools/call: Invalid arguments")
            self.reply_error(request_id, "Invalid arguments")
            return

        self.do_tool_call(request_id, name, arguments)

    # ── Catalog ───────────────────────────────────────────

    def get_tools_list(self, request_id: int, cursor: str, with_user_tools: bool) -> None:
        """
        Reply with one page of the catalog.

        The page starts at the tool named by cursor (the start of the
        catalog when empty) and stops before the first tool that would push
        the serialized result past max_payload_size; that tool's name is
        returned as nextCursor.
        """
        max_size = self.config.max_payload_size
        size = len('{"tools":[')
        tools: list[dict[str, Any]] = []
        next_cursor = ""
        found_cursor = not cursor

        for tool in self.registry:
            if not found_cursor:
                if tool.name != cursor:
                    continue
                found_cursor = True

            if tool.user_only and not with_user_tools:
                continue

            entry = tool.to_json()
            entry_size = len(_compact(entry).encode("utf-8")) + 1
            if size + entry_size + PAYLOAD_SAFETY_MARGIN > max_size:
                next_cursor = tool.name
                break

            tools.append(entry)
            size += entry_size

        if not found_cursor:
            logger.error(f"tools/list: cursor {cursor} not found, returning empty page")

        if not tools and next_cursor:
            logger.error(f"tools/list: Failed to add tool {next_cursor} because of payload size limit")
            self.reply_error(
                request_id,
                f"Failed to add tool {next_cursor} because of payload size limit",
            )
            return

        result: dict[str, Any] = {"tools": tools}
        if next_cursor:
            result["nextCursor"] = next_cursor
        self.reply_result(request_id, result)

    # ── Invocation ────────────────────────────────────────

    def do_tool_call(self, request_id: int, name: str, arguments: dict[str, Any] | None) -> None:
        """Bind arguments for the named tool and schedule it on the main loop."""
        tool = self.registry.find(name)
        if tool is None:
            logger.error(f"tools/call: Unknown tool: {name}")
            self.reply_error(request_id, f"Unknown tool: {name}")
            return

        try:
            bound = bind_arguments(tool.properties, arguments)
        except MissingArgument as e:
            logger.error(f"tools/call: Missing valid argument: {e.name}")
            self.reply_error(request_id, f"Missing valid argument: {e.name}")
            return

        self.main_loop.schedule(lambda: self._run_tool(request_id, tool, bound))

    def _run_tool(self, request_id: int, tool: Tool, arguments: PropertyList) -> None:
        try:
            result = tool.call(arguments)
        except Exception as e:
            logger.error(f"tools/call: {tool.name} failed: {e}", exc_info=True)
            self.reply_error(request_id, str(e))
            return
        self.reply_result(request_id, result)

    # ── Outbound ──────────────────────────────────────────

    def reply_result(self, request_id: int, result: Any) -> None:
        """Send a JSON-RPC success response."""
        self._send(_compact({"jsonrpc": "2.0", "id": request_id, "result": result}))

    def reply_error(self, request_id: int, message: str) -> None:
        """Send a JSON-RPC error response."""
        self._send(_compact({"jsonrpc": "2.0", "id": request_id, "error": {"message": message}}))
