"""
Data model for a multi-pod tail run.

The topology (App -> Pod -> Container) is built once by discovery and is
read-only afterwards. StreamTask holds the runtime state of one log reader.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Iterator, Tuple


class StreamStatus(str, Enum):
    """Status of a log stream"""
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"
    CANCELLED = "cancelled"


class WarningKind(str, Enum):
    APP = "app"
    POD = "pod"
    STREAM = "stream"


@dataclass(frozen=True)
class StreamMode:
    """Follow mode when ``since`` is None, historical mode otherwise."""
    since: Optional[str] = None

    @classmethod
    def follow(cls) -> 'StreamMode':
        return cls(None)

    @classmethod
    def historical(cls, since: str) -> 'StreamMode':
        return cls(since)

    @property
    def is_follow(self) -> bool:
        return self.since is None

    def __str__(self) -> str:
        return "follow" if self.is_follow else f"since {self.since}"


@dataclass(frozen=True)
class DiscoveryWarning:
    kind: WarningKind
    subject: str
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Pod:
    name: str
    app: str
    containers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class App:
    name: str
    pods: Tuple[Pod, ...] = ()


@dataclass(frozen=True)
class Topology:
    """Resolved App -> Pod -> Container mapping."""
    apps: Tuple[App, ...] = ()

    @property
    def pods(self) -> List[Pod]:
        return [pod for app in self.apps for pod in app.pods]

    @property
    def pod_count(self) -> int:
        return len(self.pods)

    def targets(self) -> Iterator[Tuple[str, str]]:
        """Yield every unique (pod, container) pair, in topology order."""
        seen = set()
        for pod in self.pods:
            for container in pod.containers:
                key = (pod.name, container)
                if key in seen:
                    continue
                seen.add(key)
                yield key

    def containers_by_app(self) -> Dict[str, List[str]]:
        """App name -> de-duplicated container names across its pods."""
        result = {}
        for app in self.apps:
            names = []
            for pod in app.pods:
                for container in pod.containers:
                    if container not in names:
                        names.append(container)
            result[app.name] = names
        return result


class ProgressCounter:
    """Monotonic counter shared between discovery tasks and a spinner."""

    def __init__(self, total: int = 0, label: str = ""):
        self.total = total
        self.label = label
        self._value = 0
        self._lock = threading.Lock()

    def increment(self, amount: int = 1):
        with self._lock:
            self._value += amount

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass
class StreamTask:
    """One log-consumption job bound to a single (pod, container)."""
    pod: str
    container: str
    mode: StreamMode
    color: str = ""
    status: StreamStatus = StreamStatus.STARTING
    line_count: int = 0
    matched_count: int = 0
    byte_count: int = 0
    error: Optional[str] = None
    task: Optional[asyncio.Task] = None
    created_at: datetime = field(default_factory=datetime.now)
    last_line_at: Optional[datetime] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.pod, self.container)

    @property
    def prefix(self) -> str:
        return f"[{self.pod}:{self.container}]"

    @property
    def is_active(self) -> bool:
        return self.status in (StreamStatus.STARTING, StreamStatus.RUNNING)

    def record_line(self, line: str, matched: bool):
        self.line_count += 1
        self.byte_count += len(line.encode('utf-8', errors='replace'))
        if matched:
            self.matched_count += 1
        self.last_line_at = datetime.now()

    def get_info(self) -> Dict[str, object]:
        """Get stream information"""
        return {
            "pod": self.pod,
            "container": self.container,
            "mode": str(self.mode),
            "status": self.status.value,
            "lines": self.line_count,
            "matched": self.matched_count,
            "bytes": self.byte_count,
            "error": self.error,
        }
