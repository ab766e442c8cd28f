"""Graceful shutdown coordination on termination signals."""

import asyncio
import signal
import sys
from collections.abc import Callable, Sequence
from enum import StrEnum
from types import FrameType

import structlog

from src.infrastructure.observability import shutdown_observability
from src.infrastructure.server.protocol import Drainable

logger = structlog.get_logger()


class ShutdownState(StrEnum):
    """Lifecycle state of the process."""

    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


def termination_signals() -> tuple[signal.Signals, ...]:
    """Signals that start a graceful shutdown on this platform.

    SIGTERM is only listened for on POSIX systems; elsewhere that source
    never fires.
    """
    if sys.platform == "win32":
        return (signal.SIGINT,)
    return (signal.SIGINT, signal.SIGTERM)


class ShutdownCoordinator:
    """Waits for the first termination trigger and runs the shutdown sequence.

    Every source (each signal, plus request_shutdown()) completes the same
    future; the first one to arrive decides the outcome and later ones are
    ignored.
    """

    def __init__(self, signals: Sequence[signal.Signals] | None = None) -> None:
        """Initialize the coordinator.

        Args:
            signals: Signals to listen for. Defaults to termination_signals().
        """
        self._signals = tuple(signals) if signals is not None else termination_signals()
        self._state = ShutdownState.RUNNING
        self._loop: asyncio.AbstractEventLoop | None = None
        self._trigger: asyncio.Future[str] | None = None
        self._loop_handlers: list[signal.Signals] = []
        self._previous_handlers: dict[signal.Signals, Callable | int | None] = {}

    @property
    def state(self) -> ShutdownState:
        return self._state

    @property
    def installed(self) -> bool:
        return self._trigger is not None

    def install(self) -> None:
        """Register the signal sources on the running event loop.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self._trigger is not None:
            return

        loop = asyncio.get_running_loop()
        self._loop = loop
        self._trigger = loop.create_future()

        for sig in self._signals:
            previous = signal.getsignal(sig)
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
                self._loop_handlers.append(sig)
                self._previous_handlers[sig] = previous
            except NotImplementedError:
                # Event loops without signal support (Windows)
                if sig is signal.SIGINT:
                    signal.signal(sig, self._handle_signal_threadsafe)
                    self._previous_handlers[sig] = previous

        logger.debug("shutdown_signals_installed", signals=[s.name for s in self._signals])

    def uninstall(self) -> None:
        """Restore the signal handlers that were in place before install()."""
        if self._loop is not None:
            for sig in self._loop_handlers:
                # Resets to SIG_DFL; the loop below puts the previous handler back
                self._loop.remove_signal_handler(sig)
        for sig, previous in self._previous_handlers.items():
            if previous is not None:  # Installed outside Python
                signal.signal(sig, previous)
        self._loop_handlers.clear()
        self._previous_handlers.clear()

    def request_shutdown(self, reason: str) -> None:
        """Trigger shutdown. Only the first call has an effect.

        Args:
            reason: What triggered the shutdown (e.g. the signal name).
        """
        if self._trigger is None:
            raise RuntimeError("ShutdownCoordinator not installed")
        if not self._trigger.done():
            self._trigger.set_result(reason)

    async def wait(self) -> str:
        """Suspend until the first trigger fires.

        Returns:
            The reason passed by the winning trigger.
        """
        self.install()
        assert self._trigger is not None
        return await self._trigger

    async def run(
        self,
        server: Drainable,
        flush_telemetry: Callable[[], None] = shutdown_observability,
    ) -> str:
        """Wait for a trigger, then drain the server and flush telemetry.

        Args:
            server: The server to drain.
            flush_telemetry: Hook that flushes and stops trace export.

        Returns:
            The reason that started the shutdown.
        """
        try:
            reason = await self.wait()
            self._state = ShutdownState.SHUTTING_DOWN
            logger.warning("signal_received_starting_graceful_shutdown", signal=reason)
            try:
                await server.drain()
            finally:
                flush_telemetry()
        finally:
            self.uninstall()

        logger.info("shutdown_complete", signal=reason)
        return reason

    def _handle_signal_threadsafe(self, signum: int, _frame: FrameType | None) -> None:
        assert self._loop is not None
        self._loop.call_soon_threadsafe(
            self.request_shutdown, signal.Signals(signum).name
        )
