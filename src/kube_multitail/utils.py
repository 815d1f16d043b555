"""Utility functions for the CLI"""

import functools
import re
from typing import Any, Dict, List, Optional

import click
from tabulate import tabulate

from .exceptions import KubeMultitailError, InvalidSinceError
from .models import DiscoveryWarning, Topology


# kubectl accepts Go durations (30s, 10m, 1h30m); days are converted to hours
_SINCE_PATTERN = re.compile(r'^(?=.)(?:\d+d)?(?:\d+(?:\.\d+)?(?:ms|h|m|s))*$')
_DAYS_PATTERN = re.compile(r'(\d+)d')


def parse_since(value: Optional[str]) -> Optional[str]:
    """Validate a --since duration and normalize it for kubectl"""
    if value is None:
        return None
    value = value.strip()
    if not _SINCE_PATTERN.match(value):
        raise InvalidSinceError(value)
    return _DAYS_PATTERN.sub(lambda m: f"{int(m.group(1)) * 24}h", value)


def format_size(size_bytes: float) -> str:
    """Format bytes to human-readable size"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f}{unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f}TB"


def format_topology_summary(topology: Topology) -> str:
    """Tree of apps and their container names"""
    lines = []
    for app, containers in sorted(topology.containers_by_app().items()):
        if not containers:
            continue
        lines.append(f"App: {app}")
        for container in containers:
            lines.append(f"  - {container}")
    return "\n".join(lines)


def format_stream_report(streams: List[Dict[str, Any]]) -> str:
    """Table of per-stream status and counters, from StreamTask.get_info() dicts"""
    if not streams:
        return "No log streams were started"

    rows = [
        [s["pod"], s["container"], s["mode"], s["status"], s["lines"], s["matched"],
         format_size(s["bytes"]), s["error"] or '-']
        for s in streams
    ]
    return tabulate(
        rows,
        headers=['POD', 'CONTAINER', 'MODE', 'STATUS', 'LINES', 'MATCHED', 'BYTES', 'ERROR'],
        tablefmt='simple'
    )


def format_warnings(warnings: List[DiscoveryWarning]) -> str:
    rows = [[w.kind.value, w.subject, w.message] for w in warnings]
    return tabulate(rows, headers=['KIND', 'SUBJECT', 'WARNING'], tablefmt='simple')


def error_handler(func):
    """Decorator to turn application errors into a message and exit code"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KubeMultitailError as e:
            if e.exit_code:
                click.echo(f"Error: {e.message}", err=True)
            ctx = click.get_current_context()
            ctx.exit(e.exit_code)

    return wrapper
