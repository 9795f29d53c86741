"""
Run Device — drive a device MCP server from the terminal.

Launches the device server (the simulator by default) as a stdio
subprocess, negotiates capabilities, and then lists or calls tools the way
an AI agent would.

Usage:
    # Serve the simulator on this process's stdin/stdout
    python run_device.py --serve

    # List the catalog (follows nextCursor across pages)
    python run_device.py --list
    python run_device.py --list --user

    # Call a tool
    python run_device.py --call self.audio_speaker.set_volume --args '{"volume": 40}'

    # Show the catalog as LangChain tools
    python run_device.py --langchain

    # Talk to a different device server
    python run_device.py --list --command "python -m my_board.mcp"
"""

from __future__ import annotations

import argparse
import json
import logging
import shlex
import signal
import sys

from device_mcp.client import DeviceClient
from device_mcp.transport import StdioTransport

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s", stream=sys.stderr)
logger = logging.getLogger(__name__)

DEFAULT_COMMAND = [sys.executable, "-m", "device_mcp.servers.simulator"]


def print_catalog(tools: list[dict]) -> None:
    print(f"\nDevice tools ({len(tools)}):\n")
    for tool in tools:
        properties = tool.get("inputSchema", {}).get("properties", {})
        args = ", ".join(f"{name}:{info.get('type')}" for name, info in properties.items())
        marker = " [user]" if tool.get("annotations", {}).get("audience") == ["user"] else ""
        print(f"  {tool['name']:<40} ({args or 'no args'}){marker}")
    print()


def print_langchain_tools(client: DeviceClient, with_user_tools: bool) -> None:
    from device_mcp.bridge import device_langchain_tools, prompt_instructions

    lc_tools = device_langchain_tools(client, with_user_tools=with_user_tools)
    for lc_tool, schema in zip(lc_tools, client.tools):
        print(f"{'=' * 60}")
        print(f"  LangChain tool: {lc_tool.name}")
        print(f"{'=' * 60}")
        print(prompt_instructions(schema))
        print()


def main():
    parser = argparse.ArgumentParser(
        description="Drive a device MCP server from the terminal.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_device.py --list
  python run_device.py --call self.get_device_status
  python run_device.py --call self.screen.set_theme --args '{"theme": "dark"}'
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Serve the simulator on stdin/stdout and exit")
    parser.add_argument("--list", action="store_true", help="List the device tool catalog")
    parser.add_argument("--user", action="store_true", help="Include user-only tools")
    parser.add_argument("--call", type=str, metavar="TOOL", help="Tool name to call")
    parser.add_argument("--args", type=str, default=None, help="Tool arguments as a JSON object")
    parser.add_argument("--langchain", action="store_true", help="Show the catalog as LangChain tools")
    parser.add_argument("--command", type=str, default=None, help="Device server command (default: simulator)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.serve:
        from device_mcp.servers.simulator import main as serve_simulator
        serve_simulator()
        return

    if not (args.list or args.call or args.langchain):
        parser.error("one of --serve, --list, --call or --langchain is required")

    arguments = None
    if args.args:
        try:
            arguments = json.loads(args.args)
        except json.JSONDecodeError as e:
            parser.error(f"--args is not valid JSON: {e}")
        if not isinstance(arguments, dict):
            parser.error("--args must be a JSON object")

    command = shlex.split(args.command) if args.command else DEFAULT_COMMAND
    client = DeviceClient(StdioTransport(command))

    # Graceful shutdown on Ctrl+C
    def shutdown(sig, frame):
        print("\nStopping device server...")
        client.stop()
        sys.exit(0)
    signal.signal(signal.SIGINT, shutdown)

    try:
        init = client.start()
        info = init.get("serverInfo", {})
        print(f"Connected: {info.get('name')} {info.get('version')} (protocol {init.get('protocolVersion')})")

        if args.list:
            print_catalog(client.list_tools(with_user_tools=args.user))

        if args.langchain:
            print_langchain_tools(client, with_user_tools=args.user)

        if args.call:
            print(client.call_text(args.call, arguments))
    except RuntimeError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        client.stop()


if __name__ == "__main__":
    main()
