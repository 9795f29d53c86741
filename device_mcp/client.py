"""
Device client — the agent side of the device MCP protocol.

Usage:
    transport = StdioTransport([sys.executable, "-m", "device_mcp.servers.simulator"])
    client = DeviceClient(transport)

    client.start()                       # launches the device, sends initialize
    tools = client.list_tools()          # follows nextCursor to the end
    result = client.call("self.audio_speaker.set_volume", {"volume": 40})
    client.stop()
"""

from __future__ import annotations

import logging
from typing import Any

from device_mcp.transport import JsonRpcRequest, Transport

logger = logging.getLogger(__name__)


class DeviceClient:
    """
    Talks to one device over a Transport.

    Responsibilities:
    - Capability negotiation (initialize)
    - Full catalog discovery across tools/list pages
    - Tool invocation, raising on protocol and tool errors
    """

    def __init__(self, transport: Transport):
        self.transport = transport
        self.server_info: dict[str, Any] = {}
        self.tools: list[dict] = []

    def start(self, capabilities: dict[str, Any] | None = None) -> dict[str, Any]:
        """Start the transport and negotiate capabilities."""
        self.transport.start()
        return self.initialize(capabilities)

    def stop(self) -> None:
        self.transport.stop()

    def is_running(self) -> bool:
        return self.transport.is_alive()

    def request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Send one request and return its result, raising RuntimeError on an error reply."""
        request = JsonRpcRequest(
            method=method,
            params=params or {},
            id=self.transport.next_id(),
        )
        response = self.transport.send(request)

        if response.is_error:
            raise RuntimeError(f"{method} failed: {response.error_message}")
        if response.id != request.id:
            raise RuntimeError(
                f"{method}: reply id {response.id} does not match request id {request.id}"
            )
        return response.result

    def initialize(self, capabilities: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Negotiate capabilities.

        Args:
            capabilities: e.g. {"vision": {"url": ..., "token": ...}}

        Returns:
            The server's initialize result.
        """
        params = {"capabilities": capabilities} if capabilities else {}
        result = self.request("initialize", params)
        self.server_info = result.get("serverInfo", {})
        logger.info(
            f"Connected to {self.server_info.get('name')} {self.server_info.get('version')} "
            f"(protocol {result.get('protocolVersion')})"
        )
        return result

    def list_tools(self, with_user_tools: bool = False) -> list[dict]:
        """
        Discover the whole catalog, following nextCursor until it is absent.

        Returns:
            Tool summaries in catalog order.
        """
        tools: list[dict] = []
        cursor = ""
        while True:
            params: dict[str, Any] = {"withUserTools": with_user_tools}
            if cursor:
                params["cursor"] = cursor
            page = self.request("tools/list", params)
            tools.extend(page.get("tools", []))

            cursor = page.get("nextCursor", "")
            if not cursor:
                break
            logger.debug(f"tools/list: continuing at {cursor}")

        self.tools = tools
        logger.info(f"Discovered {len(tools)} tools: {[t['name'] for t in tools]}")
        return tools

    def call(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """
        Call a tool on the device.

        Returns:
            The tool result ({"content": [...], "isError": false}).
        """
        params: dict[str, Any] = {"name": name}
        if arguments is not None:
            params["arguments"] = arguments
        return self.request("tools/call", params)

    def call_text(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        """Call a tool and return the text of its content items."""
        result = self.call(name, arguments)
        return "\n".join(
            item.get("text", "") for item in result.get("content", [])
            if item.get("type") == "text"
        )

    def get_tool(self, name: str) -> dict | None:
        """Look up a discovered tool summary by name."""
        return next((t for t in self.tools if t["name"] == name), None)
