"""
Tool descriptors and the ordered tool registry.

A Tool couples a name and description with its declared PropertyList and
the callable that implements it. The registry keeps tools in catalog order:
insertion order, except that tools registered through add_common() are
moved in front of everything registered before them. Keeping that batch
first gives the agent a stable catalog prefix across tools/list calls.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from device_mcp.schema import PropertyList

logger = logging.getLogger(__name__)

# A tool body receives its bound arguments and returns a bool, int, str,
# or a JSON-compatible dict/list.
ToolCallback = Callable[[PropertyList], Any]


def result_text(value: Any) -> str:
    """Render a tool body's return value as the text of an MCP content item."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, str)):
        return str(value)
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


@dataclass
class Tool:
    """One callable device capability."""
    name: str
    description: str
    properties: PropertyList
    callback: ToolCallback
    user_only: bool = False

    def to_json(self) -> dict[str, Any]:
        """Return the tool summary advertised by tools/list."""
        schema: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": self.properties.to_json(),
            },
        }
        required = self.properties.required()
        if required:
            schema["inputSchema"]["required"] = required
        if self.user_only:
            schema["annotations"] = {"audience": ["user"]}
        return schema

    def call(self, arguments: PropertyList) -> dict[str, Any]:
        """
        Run the tool body and wrap its return value as MCP content.

        Exceptions raised by the body propagate to the caller.
        """
        value = self.callback(arguments)
        return {
            "content": [{"type": "text", "text": result_text(value)}],
            "isError": False,
        }


class ToolRegistry:
    """Insertion-ordered, name-unique collection of tools."""

    def __init__(self):
        self._tools: list[Tool] = []
        # Tools moved aside while a common batch registers, one group per
        # active add_common() call.
        self._held: list[list[Tool]] = []

    def add(self, tool: Tool) -> bool:
        """
        Register a tool.

        A tool whose name is already taken is ignored (the first one stays).

        Returns:
            True if the tool was added.
        """
        if not tool.name:
            raise ValueError("Tool has no name")
        if self.find(tool.name) is not None:
            logger.warning(f"Tool {tool.name} already added")
            return False

        logger.info(f"Add tool: {tool.name}{' [user]' if tool.user_only else ''}")
        self._tools.append(tool)
        return True

    def add_common(self, register_fn: Callable[[], None]) -> None:
        """
        Register the common tool batch ahead of everything added so far.

        register_fn performs the add() calls for the common tools. Tools
        registered before this call are moved behind the batch, keeping
        their relative order.
        """
        held = self._tools
        self._held.append(held)
        self._tools = []
        try:
            register_fn()
        finally:
            self._held.pop()
            self._tools.extend(held)

    def find(self, name: str) -> Tool | None:
        for group in [self._tools, *self._held]:
            for tool in group:
                if tool.name == name:
                    return tool
        return None

    def names(self) -> list[str]:
        return [t.name for t in self._tools]

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools))

    def __len__(self) -> int:
        return len(self._tools)
