"""Ordered command channel between the HTTP bridge and the host's evaluation loop.

Request handlers on the bridge's server thread are the producers; the host's
evaluation loop, usually on its GUI thread, is the only consumer. Commands
travel through one thread-safe FIFO queue, and each carries a one-shot
``Correlator`` that the consumer resolves exactly once.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import itertools
import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from functools import cached_property

from .commands import Command
from .errors import BridgeTimeout, ChannelClosed
from .schemas import EvalResponse

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 32
POLL_INTERVAL = 0.05


class Correlator:
    """One-shot reply slot for a single command."""

    def __init__(self, command_id: int) -> None:
        self.command_id = command_id
        self.created_at = time.monotonic()
        self._future: concurrent.futures.Future[EvalResponse] = concurrent.futures.Future()
        self._lock = threading.Lock()
        self._resolved = False

    @property
    def abandoned(self) -> bool:
        """True once the waiter gave up (deadline or cancellation)."""
        return self._future.cancelled()

    def abandon(self) -> None:
        self._future.cancel()

    def resolve(self, response: EvalResponse) -> bool:
        """Deliver the response.

        Returns False when nobody is waiting any more; the response is dropped.
        Raises RuntimeError on a second resolution.
        """
        with self._lock:
            if self._resolved:
                raise RuntimeError(f"Command {self.command_id} resolved twice")
            self._resolved = True
        try:
            self._future.set_result(response)
        except concurrent.futures.InvalidStateError:
            age = time.monotonic() - self.created_at
            logger.warning(
                f"Discarding late response for command {self.command_id} "
                f"({age:.2f}s after enqueue, waiter already gone)"
            )
            return False
        return True

    async def wait(self, timeout: float) -> EvalResponse:
        """Await the response; the command is not retracted on timeout."""
        try:
            return await asyncio.wait_for(asyncio.wrap_future(self._future), timeout)
        except asyncio.TimeoutError:
            self.abandon()
            raise BridgeTimeout(
                f"No response from the evaluation loop within {timeout}s "
                f"(command {self.command_id})"
            ) from None
        except asyncio.CancelledError:
            self.abandon()
            raise


@dataclass
class EvalCommand:
    """A typed request plus its reply slot, consumed exactly once."""

    id: int
    request: Command
    correlator: Correlator = field(repr=False)

    @cached_property
    def script(self) -> str:
        """JavaScript rendering of the request, for webview hosts."""
        return self.request.render()

    def respond(self, response: EvalResponse) -> bool:
        return self.correlator.resolve(response)


class _ChannelCore:
    def __init__(self, capacity: int) -> None:
        self.queue: queue.Queue[EvalCommand] = queue.Queue(maxsize=capacity)
        self.closed = threading.Event()
        self.lock = threading.Lock()
        self.ids = itertools.count(1)
        # Suspended recv_async calls, woken from any thread.
        self.waiters: set[tuple[asyncio.AbstractEventLoop, asyncio.Event]] = set()

    def notify(self) -> None:
        with self.lock:
            waiters = list(self.waiters)
        for loop, wakeup in waiters:
            if not loop.is_closed():
                loop.call_soon_threadsafe(wakeup.set)


class CommandSender:
    """Producer side; safe to share across handlers and threads."""

    def __init__(self, core: _ChannelCore) -> None:
        self._core = core

    @property
    def closed(self) -> bool:
        return self._core.closed.is_set()

    async def enqueue(self, request: Command) -> Correlator:
        """Queue a command and return its reply slot.

        Suspends while the channel is full. Raises ChannelClosed once the
        evaluation loop has shut down. Cancelling a suspended call withdraws
        the command; it never reaches the queue.
        """
        core = self._core
        if core.closed.is_set():
            raise ChannelClosed("Evaluation loop is not running")
        with core.lock:
            command_id = next(core.ids)
            command = EvalCommand(command_id, request, Correlator(command_id))
            try:
                core.queue.put_nowait(command)
                queued = True
            except queue.Full:
                queued = False
        if not queued:
            logger.debug(f"Channel full, waiting to enqueue command {command_id}")
            try:
                await asyncio.to_thread(self._put_blocking, command)
            except asyncio.CancelledError:
                with core.lock:
                    command.correlator.abandon()
                logger.debug(f"Withdrew command {command_id} before it was queued")
                raise
        core.notify()
        logger.debug(f"Enqueued {request.kind} command {command_id}")
        return command.correlator

    def _put_blocking(self, command: EvalCommand) -> None:
        core = self._core
        while not core.closed.is_set():
            # Checked and put under the lock so a withdrawn command never lands.
            with core.lock:
                if command.correlator.abandoned:
                    return
                try:
                    core.queue.put_nowait(command)
                    return
                except queue.Full:
                    pass
            time.sleep(POLL_INTERVAL)
        raise ChannelClosed("Evaluation loop shut down while the channel was full")


class CommandReceiver:
    """Consumer side; owned by the host's single evaluation loop."""

    def __init__(self, core: _ChannelCore) -> None:
        self._core = core

    @property
    def closed(self) -> bool:
        return self._core.closed.is_set()

    def recv(self, timeout: float | None = None) -> EvalCommand | None:
        """Block for the next command; None on timeout or once closed."""
        core = self._core
        deadline = None if timeout is None else time.monotonic() + timeout
        while not core.closed.is_set():
            wait = POLL_INTERVAL
            if deadline is not None:
                wait = min(wait, max(0.0, deadline - time.monotonic()))
            try:
                return core.queue.get(timeout=wait)
            except queue.Empty:
                if deadline is not None and time.monotonic() >= deadline:
                    return None
        return None

    async def recv_async(self) -> EvalCommand | None:
        """Suspend until the next command; None once closed."""
        core = self._core
        loop = asyncio.get_running_loop()
        while not core.closed.is_set():
            try:
                return core.queue.get_nowait()
            except queue.Empty:
                pass
            waiter = (loop, asyncio.Event())
            with core.lock:
                core.waiters.add(waiter)
            try:
                # Re-check after registering; a put in between would not wake us.
                if core.queue.empty() and not core.closed.is_set():
                    await waiter[1].wait()
            finally:
                with core.lock:
                    core.waiters.discard(waiter)
        return None

    def drain(self) -> list[EvalCommand]:
        """Take every command queued right now without blocking."""
        commands: list[EvalCommand] = []
        while not self._core.closed.is_set():
            try:
                commands.append(self._core.queue.get_nowait())
            except queue.Empty:
                break
        return commands

    def __iter__(self):
        while True:
            command = self.recv()
            if command is None:
                return
            yield command

    def close(self) -> None:
        """Stop accepting commands; queued ones are left unresolved."""
        if not self._core.closed.is_set():
            self._core.closed.set()
            self._core.notify()
            logger.info("Command channel closed")


def open_channel(capacity: int = DEFAULT_CAPACITY) -> tuple[CommandSender, CommandReceiver]:
    """Create a bounded FIFO channel and return its two ends."""
    core = _ChannelCore(capacity)
    return CommandSender(core), CommandReceiver(core)
