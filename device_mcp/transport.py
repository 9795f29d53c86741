"""
Transport layer for device MCP traffic.

Device side:
  - StdioChannel: one JSON-RPC message per line on stdin/stdout. Its
    send() is what McpServer writes replies through.

Agent side (used by DeviceClient):
  - StdioTransport: launches a device server as a subprocess and talks to
    it over its stdin/stdout pipes.
  - LoopbackTransport: talks to an McpServer in the same process. Handy
    for tests and for embedding a simulated device in an agent.
"""

from __future__ import annotations

import json
import logging
import queue
import subprocess
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import IO, Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request."""
    method: str
    params: dict[str, Any]
    id: int

    def to_json(self) -> str:
        return json.dumps({
            "jsonrpc": "2.0",
            "method": self.method,
            "params": self.params,
            "id": self.id,
        })


@dataclass
class JsonRpcResponse:
    """JSON-RPC 2.0 response."""
    id: int | None
    result: Any = None
    error: dict | None = None

    @classmethod
    def from_json(cls, data: str) -> "JsonRpcResponse":
        parsed = json.loads(data)
        return cls(
            id=parsed.get("id"),
            result=parsed.get("result"),
            error=parsed.get("error"),
        )

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def error_message(self) -> str:
        return (self.error or {}).get("message", "")


class Transport(ABC):
    """Agent-side connection to one device."""

    def __init__(self):
        self._request_id = 0

    @abstractmethod
    def send(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """Send a request and return the response."""
        ...

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def is_alive(self) -> bool:
        ...

    def next_id(self) -> int:
        """Generate the next request ID."""
        self._request_id += 1
        return self._request_id


class StdioTransport(Transport):
    """
    JSON-RPC over stdin/stdout pipes to a device server subprocess.

    We write requests to its stdin and read one response line per request
    from its stdout. The server logs to stderr.
    """

    def __init__(self, command: list[str], env: dict[str, str] | None = None):
        """
        Args:
            command: Command to launch the device server process.
                     e.g., [sys.executable, "-m", "device_mcp.servers.simulator"]
            env: Optional environment variables for the subprocess.
        """
        super().__init__()
        self.command = command
        self.env = env
        self._process: subprocess.Popen | None = None

    def start(self) -> None:
        """Launch the device server subprocess."""
        if self._process and self._process.poll() is None:
            logger.warning("Transport already running, stopping first")
            self.stop()

        logger.info(f"Starting stdio transport: {' '.join(self.command)}")
        self._process = subprocess.Popen(
            self.command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=self.env,
            bufsize=1,  # Line-buffered
        )

    def stop(self) -> None:
        """Terminate the device server subprocess."""
        if self._process:
            self._process.terminate()
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
            self._process = None
            logger.info("Stdio transport stopped")

    def is_alive(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def send(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """Send JSON-RPC request via stdin, read response from stdout."""
        if not self.is_alive():
            raise RuntimeError("Transport not running. Call start() first.")

        self._process.stdin.write(request.to_json() + "\n")
        self._process.stdin.flush()

        response_line = self._process.stdout.readline()
        if not response_line:
            # Process may have died
            stderr = self._process.stderr.read() if self._process.stderr else ""
            raise RuntimeError(
                f"Device server process died. stderr: {stderr[-500:]}"
            )

        return JsonRpcResponse.from_json(response_line.strip())


class LoopbackTransport(Transport):
    """
    In-process transport to an McpServer.

    Pass deliver() as the server's send callable, then attach the server:

        transport = LoopbackTransport()
        server = McpServer(send=transport.deliver, main_loop=MainLoop())
        transport.attach(server)
        transport.start()   # starts the server's main loop
    """

    def __init__(self, timeout: float = 5.0):
        super().__init__()
        self.timeout = timeout
        self._server = None
        self._replies: queue.Queue[str] = queue.Queue()

    def attach(self, server) -> None:
        self._server = server

    def deliver(self, message: str) -> None:
        """Outbound callable for the attached server."""
        self._replies.put(message)

    def start(self) -> None:
        if self._server is None:
            raise RuntimeError("No server attached. Call attach() first.")
        if not self._server.main_loop.is_running():
            self._server.main_loop.start()

    def stop(self) -> None:
        if self._server is not None:
            self._server.main_loop.stop()

    def is_alive(self) -> bool:
        return self._server is not None and self._server.main_loop.is_running()

    def send(self, request: JsonRpcRequest) -> JsonRpcResponse:
        if not self.is_alive():
            raise RuntimeError("Transport not running. Call start() first.")

        self._server.parse_message(request.to_json())
        try:
            reply = self._replies.get(timeout=self.timeout)
        except queue.Empty:
            raise RuntimeError(
                f"No reply to {request.method} (id={request.id}) within {self.timeout}s"
            ) from None
        return JsonRpcResponse.from_json(reply)


class StdioChannel:
    """
    Device-side line channel on stdin/stdout.

    send() may be called from the main loop thread while run() reads on
    another, so writes are serialized with a lock.
    """

    def __init__(self, stdin: IO[str] | None = None, stdout: IO[str] | None = None):
        self._stdin = stdin
        self._stdout = stdout
        self._lock = threading.Lock()
        self._closed = False

    def send(self, message: str) -> None:
        """Write one outbound message as a line."""
        stdout = self._stdout or sys.stdout
        with self._lock:
            if self._closed:
                return
            try:
                stdout.write(message + "\n")
                stdout.flush()
            except (BrokenPipeError, OSError) as e:
                self._closed = True
                logger.warning(f"Stdio channel closed while sending: {e}")

    def run(self, on_message: Callable[[str], None]) -> None:
        """
        Read messages until stdin is closed, handing each to on_message.

        This blocks until EOF.
        """
        stdin = self._stdin or sys.stdin
        for line in stdin:
            line = line.strip()
            if not line:
                continue
            try:
                on_message(line)
            except Exception as e:
                logger.error(f"Failed to handle message: {e}", exc_info=True)
