"""
Base classes for the cluster capabilities a tail run consumes.

Discovery needs a PodLister and a ContainerLister, streaming needs a
LogSource. Any backend (kubectl, an API client, a test fake) can provide
them; KubectlClient implements all three.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional

from ..models import StreamMode


class PodLister(ABC):
    """Resolves an app label value to pod names."""

    @abstractmethod
    async def list_pods(self, app: str, namespace: Optional[str] = None) -> List[str]:
        """
        List the pods labelled ``app=<app>``.

        Args:
            app: Value of the ``app`` label
            namespace: Namespace to query, or None for the current one

        Returns:
            Pod names, possibly empty

        Raises:
            KubectlError: If the query could not be run
        """
        pass


class ContainerLister(ABC):
    """Resolves a pod name to its container names."""

    @abstractmethod
    async def list_containers(self, pod: str, namespace: Optional[str] = None) -> List[str]:
        """
        List the containers declared in a pod spec.

        Raises:
            KubectlError: If the query could not be run
        """
        pass


class LogSource(ABC):
    """Produces the log lines of one container."""

    @abstractmethod
    def stream_logs(
        self,
        pod: str,
        container: str,
        mode: StreamMode,
        namespace: Optional[str] = None
    ) -> AsyncIterator[str]:
        """
        Stream log lines for a container.

        This is an async generator. In follow mode it never ends on its own;
        in historical mode it ends once every line since the horizon has been
        yielded. Closing the generator, or cancelling the task consuming it,
        must release the underlying resources.

        Args:
            pod: Pod name
            container: Container name within the pod
            mode: Follow or historical mode
            namespace: Namespace, or None for the current one

        Yields:
            Log lines without their trailing newline

        Raises:
            StreamOpenError: If the stream could not be opened or ended in error
        """
        pass
