"""
Bridge between a device's MCP catalog and LangChain.

Converts the tools a DeviceClient discovered into LangChain
StructuredTools an agent can bind directly:

    client = DeviceClient(transport)
    client.start()
    lc_tools = device_langchain_tools(client)
    agent = create_agent(model, tools=lc_tools)

Device tool names are dotted ("self.pet.feed"); LLM tool-calling APIs only
accept [a-zA-Z0-9_-], so the LangChain name replaces dots with
underscores ("self_pet_feed"). Calls are still sent under the device name.
"""

from __future__ import annotations

import re
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field, create_model

from device_mcp.client import DeviceClient

_JSON_TYPES: dict[str, type] = {
    "boolean": bool,
    "integer": int,
    "string": str,
}


def langchain_name(tool_name: str) -> str:
    """Map a device tool name onto the LLM-safe alphabet."""
    return re.sub(r"[^a-zA-Z0-9_-]", "_", tool_name)[:64]


def args_model(tool_schema: dict) -> type[BaseModel]:
    """
    Build a pydantic model from a tool's inputSchema.

    Required properties become required fields; defaults and integer
    ranges carry over.
    """
    input_schema = tool_schema.get("inputSchema", {})
    properties = input_schema.get("properties", {})
    required = set(input_schema.get("required", []))

    fields: dict[str, Any] = {}
    for pname, pinfo in properties.items():
        py_type = _JSON_TYPES.get(pinfo.get("type"), Any)
        constraints = {}
        if "minimum" in pinfo:
            constraints["ge"] = pinfo["minimum"]
        if "maximum" in pinfo:
            constraints["le"] = pinfo["maximum"]
        default = ... if pname in required else pinfo.get("default")
        fields[pname] = (py_type, Field(default, **constraints))

    model_name = "".join(
        part.capitalize() for part in langchain_name(tool_schema["name"]).split("_")
    ) + "Args"
    return create_model(model_name, **fields)


def device_to_langchain_tool(
    client: DeviceClient,
    tool_schema: dict,
    description_override: str | None = None,
) -> StructuredTool:
    """
    Create a LangChain StructuredTool that calls one device tool.

    Args:
        client: A started DeviceClient
        tool_schema: The tool summary from tools/list
        description_override: Optional override for the tool description

    Returns:
        A StructuredTool that proxies calls to the device.
    """
    device_name = tool_schema["name"]
    description = description_override or tool_schema.get("description") or device_name

    def _call_device(**kwargs: Any) -> str:
        """Proxy call to the device."""
        try:
            return client.call_text(device_name, kwargs)
        except Exception as e:
            return f"Error calling {device_name}: {e}"

    return StructuredTool.from_function(
        func=_call_device,
        name=langchain_name(device_name),
        description=description,
        args_schema=args_model(tool_schema),
    )


def device_langchain_tools(
    client: DeviceClient,
    with_user_tools: bool = False,
) -> list[StructuredTool]:
    """Discover the device catalog and wrap every tool for LangChain."""
    tools = client.list_tools(with_user_tools=with_user_tools)
    return [device_to_langchain_tool(client, schema) for schema in tools]


def prompt_instructions(schema: dict) -> str:
    """Render a tool summary as prompt text for agents without tool calling."""
    name = schema.get("name", "unknown")
    description = schema.get("description", "")
    input_schema = schema.get("inputSchema", {})
    params = input_schema.get("properties", {})
    required = set(input_schema.get("required", []))

    lines = [f"## Tool: {name}", description, ""]
    if params:
        lines.append("Parameters:")
        for pname, pinfo in params.items():
            ptype = pinfo.get("type", "any")
            notes = []
            if pname in required:
                notes.append("required")
            elif "default" in pinfo:
                notes.append(f"default {pinfo['default']!r}")
            if "minimum" in pinfo and "maximum" in pinfo:
                notes.append(f"{pinfo['minimum']}..{pinfo['maximum']}")
            suffix = f": {', '.join(notes)}" if notes else ""
            lines.append(f"  - {pname} ({ptype}){suffix}")

    return "\n".join(lines)
