"""
Pod and container discovery.

Discovery runs in two phases separated by full barriers:

1. one pod query per app, all concurrently;
2. one container query per discovered pod, at most ``concurrency_limit``
   in flight, a new query starting as soon as any earlier one finishes.

Failed or empty queries become warnings; only an empty final topology
aborts the run.
"""

import asyncio
from typing import Iterable, List, Optional, Tuple

from .exceptions import TotalDiscoveryFailure
from .log import logger
from .models import App, Pod, Topology, DiscoveryWarning, WarningKind, ProgressCounter
from .progress import ProgressReporter, SpinnerKind
from .sources.base import PodLister, ContainerLister


DEFAULT_CONCURRENCY_LIMIT = 10


def unique(items: Iterable[str]) -> List[str]:
    """De-duplicate preserving first occurrence."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


class DiscoveryCoordinator:
    """
    Builds the App -> Pod -> Container topology for a run.

    Args:
        pod_lister: Resolves app labels to pods
        container_lister: Resolves pods to containers
        concurrency_limit: Maximum container queries in flight
        reporter: Optional spinner reporter for progress counters
    """

    def __init__(
        self,
        pod_lister: PodLister,
        container_lister: ContainerLister,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        reporter: Optional[ProgressReporter] = None
    ):
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        self.pod_lister = pod_lister
        self.container_lister = container_lister
        self.concurrency_limit = concurrency_limit
        self.reporter = reporter
        self.warnings: List[DiscoveryWarning] = []

    def _warn(self, kind: WarningKind, subject: str, message: str):
        warning = DiscoveryWarning(kind, subject, message)
        self.warnings.append(warning)
        logger.warning(message)

    async def resolve(
        self,
        apps: Iterable[str],
        namespace: Optional[str] = None
    ) -> Tuple[Topology, List[DiscoveryWarning]]:
        """
        Resolve every app to its pods and containers.

        Returns:
            The topology and the warnings raised while building it

        Raises:
            TotalDiscoveryFailure: If no app resolved to any pod with containers
        """
        apps = unique(apps)
        self.warnings = []

        logger.info("Finding pods for apps...")
        pod_counter = ProgressCounter(len(apps), "Finding pods...")
        pods_by_app = await self._with_counter(
            pod_counter,
            asyncio.gather(*(self._find_pods(app, namespace, pod_counter) for app in apps))
        )

        claimed = set()
        resolved: List[Tuple[str, List[str]]] = []
        for app, pods in zip(apps, pods_by_app):
            own = [pod for pod in unique(pods) if pod not in claimed]
            claimed.update(own)
            resolved.append((app, own))

        pod_total = sum(len(pods) for _, pods in resolved)
        if pod_total == 0:
            raise TotalDiscoveryFailure(apps)

        logger.info("Fetching containers for pods...")
        semaphore = asyncio.Semaphore(self.concurrency_limit)
        container_counter = ProgressCounter(pod_total, "Fetching containers...")
        flat = [(app, pod) for app, pods in resolved for pod in pods]
        containers = await self._with_counter(
            container_counter,
            asyncio.gather(*(
                self._find_containers(pod, namespace, semaphore, container_counter)
                for _, pod in flat
            ))
        )
        containers_by_pod = {pod: names for (_, pod), names in zip(flat, containers)}

        topology = Topology(tuple(
            App(app, tuple(
                Pod(pod, app, tuple(containers_by_pod[pod]))
                for pod in pods if containers_by_pod[pod]
            ))
            for app, pods in resolved
        ))

        if topology.pod_count == 0:
            raise TotalDiscoveryFailure(apps)

        logger.debug(f"Resolved {topology.pod_count} pods for {len(apps)} apps")
        return topology, list(self.warnings)

    async def _with_counter(self, counter: ProgressCounter, awaitable):
        spinner = self.reporter.start(SpinnerKind.COUNTER, counter) if self.reporter else None
        try:
            return await awaitable
        finally:
            if self.reporter:
                await self.reporter.stop(spinner)

    async def _find_pods(self, app: str, namespace: Optional[str],
                         counter: ProgressCounter) -> List[str]:
        reason = ""
        try:
            pods = await self.pod_lister.list_pods(app, namespace)
        except Exception as e:
            reason = f" ({e})"
            pods = []
        finally:
            counter.increment()

        if not pods:
            self._warn(WarningKind.APP, app, f"No pods found for app '{app}'{reason}")
        return pods

    async def _find_containers(self, pod: str, namespace: Optional[str],
                               semaphore: asyncio.Semaphore,
                               counter: ProgressCounter) -> List[str]:
        reason = ""
        async with semaphore:
            try:
                containers = await self.container_lister.list_containers(pod, namespace)
            except Exception as e:
                reason = f" ({e})"
                containers = []
            finally:
                counter.increment()

        containers = unique(containers)
        if not containers:
            self._warn(WarningKind.POD, pod, f"No containers found for pod {pod}{reason}")
        return containers
