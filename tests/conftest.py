"""
Pytest configuration and fixtures
"""

import asyncio
import logging
import pytest

from kube_multitail.logging_config import LOGGER_NAME, spinner_filter
from kube_multitail.sources.base import PodLister, ContainerLister, LogSource


class FakeCluster(PodLister, ContainerLister, LogSource):
    """
    In-memory stand-in for kubectl.

    Args:
        pods: app -> pod names, or an exception to raise
        containers: pod -> container names, or an exception to raise
        logs: (pod, container) -> lines, or an exception to raise
        delay: Seconds each listing query takes
    """

    def __init__(self, pods=None, containers=None, logs=None, delay=0.0):
        self.pods = pods or {}
        self.containers = containers or {}
        self.logs = logs or {}
        self.delay = delay
        self.pod_queries = []
        self.container_queries = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.open_streams = set()
        self.closed_streams = []

    async def list_pods(self, app, namespace=None):
        self.pod_queries.append((app, namespace))
        await asyncio.sleep(self.delay)
        result = self.pods.get(app, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def list_containers(self, pod, namespace=None):
        self.container_queries.append((pod, namespace))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        result = self.containers.get(pod, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def stream_logs(self, pod, container, mode, namespace=None):
        key = (pod, container)
        result = self.logs.get(key, [])
        if isinstance(result, Exception):
            raise result
        self.open_streams.add(key)
        try:
            for line in result:
                yield line
                await asyncio.sleep(0)
            if mode.is_follow:
                # Live stream with no new output
                await asyncio.Event().wait()
        finally:
            self.open_streams.discard(key)
            self.closed_streams.append(key)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so handlers never outlive a test's streams"""
    yield
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
    spinner_filter._spinners.clear()


@pytest.fixture
def svc_a_cluster():
    """svc-a with 2 pods x 2 containers, two lines per container"""
    pods = {"svc-a": ["svc-a-1", "svc-a-2"]}
    containers = {
        "svc-a-1": ["app", "sidecar"],
        "svc-a-2": ["app", "sidecar"],
    }
    logs = {
        (pod, container): [f"{pod} {container} line 1", f"{pod} {container} line 2"]
        for pod in pods["svc-a"]
        for container in containers[pod]
    }
    return FakeCluster(pods=pods, containers=containers, logs=logs)


@pytest.fixture
def make_cluster():
    return FakeCluster
