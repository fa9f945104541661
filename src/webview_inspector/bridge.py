"""Start the inspector bridge next to a host application."""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field

import uvicorn

from .app import create_app
from .channel import CommandReceiver, CommandSender, open_channel
from .config import BridgeSettings

logger = logging.getLogger(__name__)

STARTUP_TIMEOUT = 5.0


@dataclass
class BridgeState:
    """Shared, read-mostly state every handler sees."""

    app_name: str
    sender: CommandSender
    settings: BridgeSettings
    pid: int = field(default_factory=os.getpid)
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime_seconds(self) -> int:
        return int(time.monotonic() - self.started_at)


class BridgeHandle:
    """Running bridge: the host drains ``receiver`` and calls ``stop()`` on exit."""

    def __init__(
        self,
        state: BridgeState,
        receiver: CommandReceiver,
        server: uvicorn.Server,
        thread: threading.Thread,
    ) -> None:
        self.state = state
        self.receiver = receiver
        self._server = server
        self._thread = thread

    @property
    def url(self) -> str:
        settings = self.state.settings
        return f"http://{settings.host}:{settings.port}"

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def stop(self, timeout: float = STARTUP_TIMEOUT) -> None:
        """Close the channel and shut the HTTP server down."""
        self.receiver.close()
        self._server.should_exit = True
        self._thread.join(timeout)
        logger.info(f"Inspector bridge for {self.state.app_name} stopped")

    def __enter__(self) -> BridgeHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def start_bridge(
    app_name: str | None = None,
    settings: BridgeSettings | None = None,
) -> BridgeHandle:
    """Serve the bridge on a daemon thread and return its handle.

    Args:
        app_name: Name reported by /status. Defaults to ``settings.app_name``.
        settings: Bridge settings. Loaded from the environment if None.

    Raises:
        RuntimeError: The server did not come up (port in use, for instance).
    """
    settings = settings or BridgeSettings()
    sender, receiver = open_channel(settings.channel_capacity)
    state = BridgeState(app_name or settings.app_name, sender, settings)

    config = uvicorn.Config(
        create_app(state),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="inspector-bridge", daemon=True)
    thread.start()

    deadline = time.monotonic() + STARTUP_TIMEOUT
    while not server.started:
        if not thread.is_alive() or time.monotonic() > deadline:
            receiver.close()
            server.should_exit = True
            raise RuntimeError(
                f"Inspector bridge failed to start on {settings.host}:{settings.port}"
            )
        time.sleep(0.01)

    handle = BridgeHandle(state, receiver, server, thread)
    logger.info(f"Inspector bridge for {state.app_name} listening on {handle.url}")
    return handle
