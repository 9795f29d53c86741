"""
The device's owning execution context.

All hardware-affecting work (tool bodies, reboots, upgrades) runs on one
MainLoop: an ordered work queue drained by a single thread. Callables run
in the order they were scheduled, one at a time, each to completion.

Usage:
    loop = MainLoop()
    loop.start()
    loop.schedule(lambda: codec.set_output_volume(40))
    ...
    loop.stop()

Hosts that already own a thread can skip start() and call run_pending()
from their own loop instead.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

logger = logging.getLogger(__name__)

_STOP = object()


class MainLoop:
    """Single-threaded FIFO executor for scheduled callables."""

    def __init__(self, name: str = "device-main-loop"):
        self.name = name
        self._queue: queue.Queue = queue.Queue()
        self._thread: threading.Thread | None = None
        # Scheduled callables not yet finished.
        self._pending = 0
        self._idle = threading.Condition()

    def schedule(self, callback: Callable[[], None]) -> None:
        """Queue a callable. Safe to call from any thread, never blocks."""
        with self._idle:
            self._pending += 1
        self._queue.put(callback)

    def start(self) -> None:
        """Start the executor thread."""
        if self.is_running():
            logger.warning(f"{self.name} already running")
            return
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"{self.name} started")

    def stop(self, timeout: float = 5.0) -> None:
        """Let already-queued work finish, then stop the executor thread."""
        if not self.is_running():
            return
        self._queue.put(_STOP)
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.error(f"{self.name} did not stop within {timeout}s")
        else:
            logger.info(f"{self.name} stopped")
        self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_pending(self) -> int:
        """
        Run every queued callable on the calling thread.

        Work scheduled by those callables is run too. Only valid while the
        executor thread is not running.

        Returns:
            Number of callables executed.
        """
        if self.is_running():
            raise RuntimeError(f"{self.name} is running on its own thread")

        count = 0
        while True:
            try:
                callback = self._queue.get_nowait()
            except queue.Empty:
                return count
            if callback is not _STOP:
                self._execute(callback)
                count += 1

    def wait_idle(self, timeout: float | None = None) -> bool:
        """
        Block until every scheduled callable has run.

        Returns:
            False if the timeout expired first.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    def _run(self) -> None:
        while True:
            callback = self._queue.get()
            if callback is _STOP:
                return
            self._execute(callback)

    def _execute(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception as e:
            # A failing callable must not take the loop down with it.
            logger.error(f"Scheduled task failed: {e}", exc_info=True)
        finally:
            with self._idle:
                self._pending -= 1
                if self._pending == 0:
                    self._idle.notify_all()
