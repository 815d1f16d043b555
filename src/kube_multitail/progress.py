"""
Single-line progress spinners.

Spinners are cosmetic: they redraw one terminal line in place and are
disabled entirely when the target stream is not a terminal.
"""

import asyncio
import sys
from enum import Enum
from typing import Optional, Union

import click

from .logging_config import spinner_filter
from .models import ProgressCounter


GLYPHS = "|/-\\"
DEFAULT_INTERVAL = 0.1


class SpinnerKind(str, Enum):
    MESSAGE = "message"
    COUNTER = "counter"


class Spinner:
    """A running spinner; the handle returned by ProgressReporter.start()."""

    def __init__(self, kind: SpinnerKind, target: Union[str, ProgressCounter],
                 stream, interval: float = DEFAULT_INTERVAL):
        self.kind = kind
        self.target = target
        self.stream = stream
        self.interval = interval
        self.task: Optional[asyncio.Task] = None
        self._tick = 0
        self._width = 0

    def render(self) -> str:
        glyph = GLYPHS[self._tick % len(GLYPHS)]
        if self.kind == SpinnerKind.COUNTER:
            counter = self.target
            return f" [{glyph}] {counter.label} ({counter.value}/{counter.total}) "
        return f" [{glyph}] {self.target} "

    def draw(self):
        text = self.render()
        self._width = max(self._width, len(text))
        click.echo(f"\r{text}", file=self.stream, nl=False)
        self.stream.flush()
        self._tick += 1

    def clear_line(self):
        if not self._width:
            return
        click.echo("\r" + " " * self._width + "\r", file=self.stream, nl=False)
        self.stream.flush()
        self._width = 0

    async def _run(self):
        while True:
            self.draw()
            await asyncio.sleep(self.interval)

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()


class ProgressReporter:
    """
    Starts and stops spinners on a terminal stream.

    Args:
        stream: Output stream, stderr by default
        interval: Seconds between redraws
        enabled: Force spinners on or off; by default on only for a TTY
    """

    def __init__(self, stream=None, interval: float = DEFAULT_INTERVAL,
                 enabled: Optional[bool] = None):
        self.stream = stream or sys.stderr
        self.interval = interval
        if enabled is None:
            isatty = getattr(self.stream, 'isatty', None)
            enabled = bool(isatty and isatty())
        self.enabled = enabled
        self.active: Optional[Spinner] = None

    def start(self, kind: SpinnerKind, target: Union[str, ProgressCounter]) -> Optional[Spinner]:
        """Start a spinner; returns None when spinners are disabled."""
        if not self.enabled:
            return None
        spinner = Spinner(kind, target, self.stream, self.interval)
        spinner.task = asyncio.create_task(spinner._run())
        spinner_filter.attach(spinner)
        self.active = spinner
        return spinner

    async def stop(self, spinner: Optional[Spinner]):
        """Stop a spinner and clear its line. Safe to call twice or with None."""
        if spinner is None:
            return
        spinner_filter.detach(spinner)
        if spinner.task and not spinner.task.done():
            spinner.task.cancel()
            try:
                await spinner.task
            except asyncio.CancelledError:
                pass
        spinner.clear_line()
        if self.active is spinner:
            self.active = None

    async def stop_active(self):
        await self.stop(self.active)
