import os
import sys

import pytest

from device_mcp.client import DeviceClient
from device_mcp.config import ServerConfig
from device_mcp.scheduler import MainLoop
from device_mcp.servers.simulator import SimulatedBoard, build_server
from device_mcp.transport import LoopbackTransport, StdioTransport

from conftest import ROOT


@pytest.fixture
def simulator():
    board = SimulatedBoard()
    transport = LoopbackTransport(timeout=5)
    server = build_server(
        transport.deliver,
        MainLoop(),
        board=board,
        config=ServerConfig(board_name="simulator", firmware_version="9.9.9", max_payload_size=1000),
        reboot_delay=0,
    )
    transport.attach(server)
    client = DeviceClient(transport)
    client.start()
    yield client, server, board
    client.stop()


def test_initialize_reports_server_info(simulator):
    client, _, _ = simulator
    assert client.server_info == {"name": "simulator", "version": "9.9.9"}
    assert client.is_running()


def test_list_tools_follows_every_page(simulator):
    client, server, _ = simulator

    tools = client.list_tools()

    public = [t.name for t in server.registry if not t.user_only]
    assert [t["name"] for t in tools] == public
    assert client.get_tool("self.audio_speaker.set_volume")["inputSchema"]["required"] == ["volume"]
    assert client.get_tool("self.reboot") is None


def test_list_tools_with_user_tools(simulator):
    client, server, _ = simulator
    tools = client.list_tools(with_user_tools=True)
    assert [t["name"] for t in tools] == server.registry.names()
    reboot = client.get_tool("self.reboot")
    assert reboot["annotations"] == {"audience": ["user"]}


def test_call_changes_board_state(simulator):
    client, _, board = simulator
    result = client.call("self.audio_speaker.set_volume", {"volume": 15})
    assert result == {"content": [{"type": "text", "text": "true"}], "isError": False}
    assert board.audio_codec.volume == 15
    assert '"volume":15' in client.call_text("self.get_device_status")


def test_tool_failure_raises(simulator):
    client, _, _ = simulator
    with pytest.raises(RuntimeError, match="Failed to snapshot screen"):
        client.call("self.screen.snapshot", {"url": "http://upload"})


def test_unknown_tool_raises(simulator):
    client, _, _ = simulator
    with pytest.raises(RuntimeError, match="Unknown tool: self.fly"):
        client.call("self.fly")


def test_reboot_runs_after_reply(simulator):
    client, server, board = simulator
    assert client.call_text("self.reboot") == "true"
    assert server.main_loop.wait_idle(timeout=5)
    assert board.reboots == 1


def test_send_requires_start():
    transport = LoopbackTransport()
    with pytest.raises(RuntimeError):
        DeviceClient(transport).list_tools()


def test_stdio_simulator_end_to_end():
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT), env.get("PYTHONPATH")]))
    env["DEVICE_MCP_MAX_PAYLOAD_SIZE"] = "900"
    transport = StdioTransport([sys.executable, "-m", "device_mcp.servers.simulator"], env=env)
    client = DeviceClient(transport)
    try:
        info = client.start()
        assert info["protocolVersion"] == "2024-11-05"
        assert info["serverInfo"]["name"] == "simulator"

        names = [t["name"] for t in client.list_tools()]
        assert names[:2] == ["self.get_device_status", "self.audio_speaker.set_volume"]
        assert "self.reboot" not in names

        assert client.call_text("self.screen.set_theme", {"theme": "dark"}) == "true"
        with pytest.raises(RuntimeError, match="Missing valid argument: theme"):
            client.call("self.screen.set_theme", {"theme": 1})
    finally:
        client.stop()
