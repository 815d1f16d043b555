"""
Run lifecycle: RUNNING -> CANCELLING -> STOPPED.

The controller owns the cancellation token. SIGINT/SIGTERM set it; every
stage of the run (discovery, streaming) is awaited through the controller
so a set token cancels whatever is outstanding.
"""

import asyncio
import signal
from enum import Enum
from typing import Optional

import click

from .exceptions import RunInterrupted
from .log import logger
from .multiplexer import MultiplexHandle, DEFAULT_GRACE_PERIOD
from .progress import ProgressReporter


# Extra time on top of the grace period for a SIGKILLed process to be reaped
KILL_MARGIN = 1.0


class LifecycleState(str, Enum):
    RUNNING = "running"
    CANCELLING = "cancelling"
    STOPPED = "stopped"


class LifecycleController:
    """
    Drives shutdown of a tail run.

    Args:
        reporter: Spinner reporter to silence when cancelling
        grace_period: Seconds a stream task gets to stop after cancellation
        stream: Where the shutdown notice is printed
    """

    def __init__(self, reporter: Optional[ProgressReporter] = None,
                 grace_period: float = DEFAULT_GRACE_PERIOD, stream=None):
        self.reporter = reporter
        self.grace_period = grace_period
        self.stream = stream
        self.state = LifecycleState.RUNNING
        self._cancel_event: Optional[asyncio.Event] = None
        self._signals = []

    @property
    def cancel_event(self) -> asyncio.Event:
        if self._cancel_event is None:
            self._cancel_event = asyncio.Event()
        return self._cancel_event

    @property
    def cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    def install_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_cancel)
                self._signals.append(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                # No loop signal support here; KeyboardInterrupt ends the run instead
                logger.debug(f"Cannot install handler for {sig!r}")

    def remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals.clear()

    def request_cancel(self):
        """Enter CANCELLING. Later requests are ignored."""
        if self.state != LifecycleState.RUNNING:
            return
        self.state = LifecycleState.CANCELLING
        logger.debug("Cancellation requested")
        self.cancel_event.set()

    async def guard(self, awaitable):
        """
        Await ``awaitable`` unless cancellation is requested first.

        Raises:
            RunInterrupted: If the token was set before the awaitable finished
        """
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.cancel_event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if work.done():
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        if self.reporter:
            await self.reporter.stop_active()
        self.state = LifecycleState.STOPPED
        raise RunInterrupted()

    async def supervise(self, handle: MultiplexHandle) -> bool:
        """
        Wait for every stream to end, or shut them down on cancellation.

        Returns:
            True if the streams ended on their own, False if cancelled
        """
        waiter = asyncio.ensure_future(handle.wait_all())
        canceller = asyncio.ensure_future(self.cancel_event.wait())
        await asyncio.wait({waiter, canceller}, return_when=asyncio.FIRST_COMPLETED)

        if waiter.done():
            canceller.cancel()
            self.state = LifecycleState.STOPPED
            return True

        await self.shutdown(handle)
        waiter.cancel()
        try:
            await waiter
        except asyncio.CancelledError:
            pass
        return False

    async def shutdown(self, handle: MultiplexHandle):
        """Stop the spinner, cancel every stream and wait out the grace period."""
        if self.state == LifecycleState.RUNNING:
            self.state = LifecycleState.CANCELLING

        if self.reporter:
            await self.reporter.stop_active()
        click.echo("", file=self.stream)
        click.echo("Stopping all log streams...", file=self.stream)

        acknowledged = await handle.cancel_all(self.grace_period + KILL_MARGIN)
        if not acknowledged:
            logger.warning("Some log streams were still running at exit")
        self.state = LifecycleState.STOPPED
