"""
Stream multiplexer

Starts one stream task per (pod, container) pair of a topology and merges
their filtered, prefixed lines into the configured sinks.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

import click

from .exceptions import StreamOpenError
from .filters import LineFilter
from .log import logger
from .models import (
    StreamMode, StreamStatus, StreamTask, Topology, DiscoveryWarning, WarningKind
)
from .sinks import Sink, palette_color
from .sources.base import LogSource


DEFAULT_GRACE_PERIOD = 5.0


class MultiplexHandle:
    """Handle over the stream tasks started by StreamMultiplexer.start()."""

    def __init__(self, streams: Dict[Tuple[str, str], StreamTask],
                 warnings: List[DiscoveryWarning],
                 grace_period: float = DEFAULT_GRACE_PERIOD):
        self.streams = streams
        self.warnings = warnings
        self.grace_period = grace_period

    @property
    def tasks(self) -> List[asyncio.Task]:
        return [stream.task for stream in self.streams.values() if stream.task]

    @property
    def active_count(self) -> int:
        return sum(1 for s in self.streams.values() if s.task and not s.task.done())

    async def wait_all(self):
        """Wait until every stream task has terminated."""
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)

    async def cancel_all(self, grace_period: Optional[float] = None) -> bool:
        """
        Cancel every running stream task.

        Returns:
            True if all tasks acknowledged within the grace period
        """
        if grace_period is None:
            grace_period = self.grace_period

        pending = [task for task in self.tasks if not task.done()]
        for task in pending:
            task.cancel()
        if not pending:
            return True

        logger.debug(f"Cancelling {len(pending)} log streams")
        _, still_pending = await asyncio.wait(pending, timeout=grace_period)
        if still_pending:
            logger.warning(f"{len(still_pending)} log streams did not stop within {grace_period}s")
            return False
        return True

    def get_all_streams_info(self) -> List[Dict[str, object]]:
        return [stream.get_info() for stream in self.streams.values()]


class StreamMultiplexer:
    """
    Fan-out/fan-in engine for container log streams.

    Features:
    - Exactly one stream task per (pod, container)
    - Case-insensitive filtering and ``[pod:container]`` prefixing
    - Round-robin prefix colors stored on each task
    - Failed streams are reported once and never retried
    """

    def __init__(self, source: LogSource, namespace: Optional[str] = None,
                 grace_period: float = DEFAULT_GRACE_PERIOD, announce=None):
        self.source = source
        self.namespace = namespace
        self.grace_period = grace_period
        # Terminal stream for the "Starting logs for pod" line, or None
        self.announce = announce

    def start(
        self,
        topology: Topology,
        mode: StreamMode,
        line_filter: Optional[LineFilter],
        sinks: List[Sink]
    ) -> MultiplexHandle:
        """Create the stream tasks. Must be called from a running event loop."""
        streams: Dict[Tuple[str, str], StreamTask] = {}
        warnings: List[DiscoveryWarning] = []

        targets = list(topology.targets())
        pod_total = len({pod_name for pod_name, _ in targets})
        pod_names = []
        for pod_name, container in targets:
            if pod_name not in pod_names:
                pod_names.append(pod_name)
                self._announce(f"Starting logs for pod: {pod_name} "
                               f"({len(pod_names)}/{pod_total})")
            stream = StreamTask(pod_name, container, mode, color=palette_color(len(streams)))
            stream.task = asyncio.create_task(
                self._consume(stream, line_filter, sinks, warnings)
            )
            streams[stream.key] = stream
        if pod_names:
            self._announce(None)

        logger.debug(f"Started {len(streams)} log streams ({mode})")
        return MultiplexHandle(streams, warnings, self.grace_period)

    def _announce(self, message: Optional[str]):
        if self.announce is None:
            return
        if message is None:
            click.echo("", file=self.announce)
        else:
            click.echo(f"\r{message}\033[K", file=self.announce, nl=False)

    async def _consume(
        self,
        stream: StreamTask,
        line_filter: Optional[LineFilter],
        sinks: List[Sink],
        warnings: List[DiscoveryWarning]
    ):
        """Read one container's log stream until it ends, fails or is cancelled."""
        stream.status = StreamStatus.RUNNING
        lines = self.source.stream_logs(stream.pod, stream.container, stream.mode, self.namespace)
        try:
            try:
                async for line in lines:
                    matched = line_filter is None or line_filter.matches(line)
                    stream.record_line(line, matched)
                    if matched:
                        for sink in sinks:
                            sink.write(stream, line)

                    # Allow other tasks to run
                    await asyncio.sleep(0)
            finally:
                # Stops the source inside this task even when cancelled outside the generator
                await lines.aclose()

        except asyncio.CancelledError:
            stream.status = StreamStatus.CANCELLED
            raise
        except StreamOpenError as e:
            self._fail(stream, e.message, warnings)
        except Exception as e:
            self._fail(stream, f"Log stream {stream.prefix} failed: {e}", warnings)
        else:
            stream.status = StreamStatus.STOPPED
            logger.debug(f"Log stream {stream.prefix} ended after {stream.line_count} lines")

    def _fail(self, stream: StreamTask, message: str, warnings: List[DiscoveryWarning]):
        stream.status = StreamStatus.FAILED
        stream.error = message
        warnings.append(DiscoveryWarning(WarningKind.STREAM, f"{stream.pod}:{stream.container}", message))
        logger.warning(message)
