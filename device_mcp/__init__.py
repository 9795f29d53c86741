"""
Device MCP — tool registry and JSON-RPC front end for an AI-assistant device.

Architecture:
    ┌──────────────┐  JSON-RPC 2.0  ┌──────────────┐  schedule  ┌──────────────┐
    │   AI agent   │ ─────────────  │  McpServer   │ ─────────  │   MainLoop   │
    │ DeviceClient │  initialize    │   router +   │  tool      │ device-owned │
    └──────────────┘  tools/list    │   registry   │  bodies    │    thread    │
                      tools/call    └──────────────┘            └──────────────┘

The device registers its capabilities as tools (name, description, typed
properties, callable). McpServer validates requests, pages the catalog
under a byte budget, binds arguments and runs tool bodies one at a time on
the MainLoop.

DeviceClient and the LangChain bridge are the agent side: they discover
the catalog and expose device tools to a LangChain agent.
"""

__version__ = "0.1.0"

from device_mcp.registry import Tool, ToolRegistry
from device_mcp.scheduler import MainLoop
from device_mcp.schema import MissingArgument, Property, PropertyList, PropertyType, bind_arguments
from device_mcp.server import McpServer
from device_mcp.client import DeviceClient


# Bridge requires langchain — lazy import to keep device servers lightweight
def device_langchain_tools(*args, **kwargs):
    from device_mcp.bridge import device_langchain_tools as _impl
    return _impl(*args, **kwargs)


__all__ = [
    "DeviceClient",
    "MainLoop",
    "McpServer",
    "MissingArgument",
    "Property",
    "PropertyList",
    "PropertyType",
    "Tool",
    "ToolRegistry",
    "bind_arguments",
    "device_langchain_tools",
]
