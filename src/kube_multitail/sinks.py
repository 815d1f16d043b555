"""
Output sinks for the merged log stream.

Each write is one whole line under the sink's lock, so lines from
concurrent stream tasks never interleave within a line.
"""

import sys
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import click
from colorama import Fore, Style

from .log import logger
from .models import StreamTask


PALETTE = [
    Fore.RED,
    Fore.GREEN,
    Fore.YELLOW,
    Fore.BLUE,
    Fore.MAGENTA,
    Fore.CYAN,
]


def palette_color(index: int) -> str:
    """Round-robin color for the index-th stream task."""
    return PALETTE[index % len(PALETTE)]


def format_line(task: StreamTask, line: str) -> str:
    return f"{task.prefix} {line}"


class Sink(ABC):
    """A destination for filtered, prefixed log lines."""

    name = "sink"

    def open(self):
        pass

    @abstractmethod
    def write(self, task: StreamTask, line: str):
        """Write one log line produced by ``task``."""
        pass

    def close(self):
        pass


class ConsoleSink(Sink):
    """Terminal output; only the ``[pod:container]`` prefix is colorized."""

    name = "console"

    def __init__(self, stream=None, color: Optional[bool] = None):
        self.stream = stream or sys.stdout
        if color is None:
            isatty = getattr(self.stream, 'isatty', None)
            color = bool(isatty and isatty())
        self.color = color
        self._lock = threading.Lock()

    def render(self, task: StreamTask, line: str) -> str:
        if self.color and task.color:
            return f"{task.color}{task.prefix}{Style.RESET_ALL} {line}"
        return format_line(task, line)

    def write(self, task: StreamTask, line: str):
        text = self.render(task, line)
        with self._lock:
            click.echo(text, file=self.stream, color=self.color)


class FileSink(Sink):
    """Plain-text file, truncated once when opened and appended to afterwards."""

    name = "file"

    def __init__(self, path):
        self.path = Path(path)
        self.lines_written = 0
        self._file = None
        self._lock = threading.Lock()

    def open(self):
        if self._file is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Truncate exactly once, then append only
        self.path.open('w', encoding='utf-8').close()
        self._file = self.path.open('a', encoding='utf-8', buffering=1)
        logger.debug(f"Opened output file {self.path}")

    def write(self, task: StreamTask, line: str):
        if self._file is None:
            raise RuntimeError(f"File sink {self.path} is not open")
        text = format_line(task, line) + "\n"
        with self._lock:
            self._file.write(text)
            self.lines_written += 1

    def close(self):
        with self._lock:
            if self._file is not None:
                self._file.flush()
                self._file.close()
                self._file = None


def open_sinks(sinks: List[Sink]) -> List[Sink]:
    for sink in sinks:
        sink.open()
    return sinks


def close_sinks(sinks: List[Sink]):
    for sink in sinks:
        try:
            sink.close()
        except OSError as e:
            logger.error(f"Error closing {sink.name} sink: {e}")
