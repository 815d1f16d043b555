"""
TailRunner ties discovery, streaming and the lifecycle together for one run.
"""

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .discovery import DiscoveryCoordinator
from .exceptions import EXIT_OK, MissingAppsError, RunInterrupted
from .filters import LineFilter
from .lifecycle import LifecycleController
from .log import logger
from .models import StreamMode, DiscoveryWarning
from .multiplexer import StreamMultiplexer, MultiplexHandle
from .progress import ProgressReporter, SpinnerKind
from .sinks import Sink, ConsoleSink, FileSink, open_sinks, close_sinks
from .utils import format_topology_summary, format_stream_report, format_warnings


@dataclass
class RunOptions:
    """Everything a run needs, already merged from config and command line"""
    apps: Tuple[str, ...]
    namespace: Optional[str] = None
    since: Optional[str] = None
    grep: Tuple[str, ...] = ()
    errors: bool = False
    output_file: Optional[Path] = None
    console: bool = True
    color: Optional[bool] = None
    verbose: bool = False
    concurrency_limit: int = 10
    grace_period: float = 5.0
    spinner_interval: float = 0.1

    @property
    def mode(self) -> StreamMode:
        return StreamMode(self.since)

    @property
    def quiet(self) -> bool:
        return not self.console


class TailRunner:
    """
    Runs one multi-pod tail.

    Args:
        options: Run options
        client: Object implementing PodLister, ContainerLister and LogSource
        stdout: Stream for log lines and human-readable messages
        stderr: Stream for spinners
    """

    def __init__(self, options: RunOptions, client, stdout=None, stderr=None):
        if not options.apps:
            raise MissingAppsError()
        self.options = options
        self.client = client
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self.reporter = ProgressReporter(self.stderr, interval=options.spinner_interval)
        self.controller = LifecycleController(self.reporter, options.grace_period, self.stdout)
        self.sinks: List[Sink] = []
        self.handle: Optional[MultiplexHandle] = None
        self.warnings: List[DiscoveryWarning] = []

    def echo(self, message: str = ""):
        click.echo(message, file=self.stdout)

    def build_sinks(self) -> List[Sink]:
        sinks = []
        if self.options.console:
            sinks.append(ConsoleSink(self.stdout, color=self.options.color))
        if self.options.output_file is not None:
            sinks.append(FileSink(self.options.output_file))
        return sinks

    async def run(self) -> int:
        """Run to completion or cancellation; returns the process exit code."""
        self.controller.install_signal_handlers()
        try:
            return await self._run()
        except RunInterrupted as e:
            return e.exit_code
        finally:
            self.controller.remove_signal_handlers()
            close_sinks(self.sinks)

    async def _run(self) -> int:
        options = self.options
        mode = options.mode
        line_filter = LineFilter.build(options.grep, options.errors)
        if line_filter:
            logger.debug(f"Filtering lines with {line_filter!r}")

        discovery = DiscoveryCoordinator(
            self.client, self.client,
            concurrency_limit=options.concurrency_limit,
            reporter=self.reporter
        )
        topology, self.warnings = await self.controller.guard(
            discovery.resolve(options.apps, options.namespace)
        )

        # Only reached with at least one pod, so a failed discovery never truncates the file
        self.sinks = open_sinks(self.build_sinks())
        file_sink = next((s for s in self.sinks if isinstance(s, FileSink)), None)

        if mode.is_follow:
            self.echo(f"Starting log tailing for {topology.pod_count} pods and their containers.")
        else:
            self.echo(f"Showing historical logs from {mode.since} to now for "
                      f"{topology.pod_count} pods and their containers.")
            self.echo("Building summary of apps and containers...")
            self.echo(format_topology_summary(topology))
        if file_sink:
            self.echo(f"Logs are being saved to: {file_sink.path}")
        self.echo("Press Ctrl+C to stop all log streams")
        self.echo("-" * 40)

        multiplexer = StreamMultiplexer(
            self.client,
            namespace=options.namespace,
            grace_period=options.grace_period,
            announce=self.stderr if self.reporter.enabled else None
        )
        self.handle = multiplexer.start(topology, mode, line_filter, self.sinks)

        spinner = None
        if not mode.is_follow and options.quiet:
            spinner = self.reporter.start(SpinnerKind.MESSAGE, "Collecting logs...")

        completed = await self.controller.supervise(self.handle)
        await self.reporter.stop(spinner)

        self.warnings.extend(self.handle.warnings)
        if completed and not mode.is_follow:
            self.echo()
            if file_sink:
                self.echo(f"Historical logs collection completed. Logs saved to: {file_sink.path}")
            else:
                self.echo("Historical logs collection completed.")

        self.report()
        return EXIT_OK

    def report(self):
        """End-of-run report: stream table when verbose, warnings when any occurred."""
        if self.options.verbose and self.handle is not None:
            self.echo()
            self.echo(format_stream_report(self.handle.get_all_streams_info()))
        if self.warnings:
            self.echo()
            self.echo(f"{len(self.warnings)} warning(s) during this run:")
            self.echo(format_warnings(self.warnings))


def run_tail(options: RunOptions, client, stdout=None, stderr=None) -> int:
    """Blocking entry point used by the CLI."""
    runner = TailRunner(options, client, stdout, stderr)
    try:
        return asyncio.run(runner.run())
    except KeyboardInterrupt:
        # Platforms without loop signal handlers
        click.echo("\nStopping all log streams...", file=runner.stdout)
        return EXIT_OK
