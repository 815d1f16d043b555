"""
kubectl-backed pod lister, container lister and log source.

Every call spawns ``kubectl`` with asyncio subprocess support. Each process
runs in its own session so a terminal Ctrl+C reaches this process only;
kubectl children are then stopped explicitly through terminate/kill.
"""

import asyncio
from typing import AsyncIterator, List, Optional

from ..exceptions import KubectlError, StreamOpenError
from ..log import logger
from ..models import StreamMode
from .base import PodLister, ContainerLister, LogSource


# Read buffer size for log streams; longer lines are read in pieces
STREAM_LINE_LIMIT = 1024 * 1024


async def read_lines(reader: asyncio.StreamReader) -> AsyncIterator[bytes]:
    """
    Yield newline-terminated chunks from a reader, however long they are.

    StreamReader.readline() drops data and raises once a line exceeds the
    reader limit; here such a line is collected piece by piece instead.
    """
    pieces: List[bytes] = []
    while True:
        try:
            chunk = await reader.readuntil(b'\n')
        except asyncio.IncompleteReadError as e:
            # EOF, possibly after a final line without newline
            if pieces or e.partial:
                yield b''.join(pieces) + e.partial
            return
        except asyncio.LimitOverrunError as e:
            pieces.append(await reader.readexactly(e.consumed))
            continue
        yield b''.join(pieces) + chunk
        pieces = []


class KubectlClient(PodLister, ContainerLister, LogSource):
    """
    Cluster access through the kubectl command line.

    Args:
        kubectl: Executable name or path
        context: kubeconfig context, or None for the current one
        grace_period: Seconds to wait after SIGTERM before killing a process
    """

    def __init__(self, kubectl: str = "kubectl", context: Optional[str] = None,
                 grace_period: float = 5.0):
        self.kubectl = kubectl
        self.context = context
        self.grace_period = grace_period

    def _scope_args(self, namespace: Optional[str]) -> List[str]:
        args = []
        if self.context:
            args.extend(['--context', self.context])
        if namespace:
            args.extend(['-n', namespace])
        return args

    def pods_args(self, app: str, namespace: Optional[str] = None) -> List[str]:
        return [
            'get', 'pods', '-l', f'app={app}',
            *self._scope_args(namespace),
            '--no-headers', '-o', 'custom-columns=:metadata.name'
        ]

    def containers_args(self, pod: str, namespace: Optional[str] = None) -> List[str]:
        return [
            'get', 'pod', pod,
            *self._scope_args(namespace),
            '-o', 'jsonpath={.spec.containers[*].name}'
        ]

    def logs_args(self, pod: str, container: str, mode: StreamMode,
                  namespace: Optional[str] = None) -> List[str]:
        args = ['logs']
        if mode.is_follow:
            args.append('-f')
        else:
            args.append(f'--since={mode.since}')
        args.extend([pod, '-c', container])
        args.extend(self._scope_args(namespace))
        return args

    async def _run(self, args: List[str]) -> str:
        """Run a short kubectl query and return its stdout."""
        logger.debug(f"Running {self.kubectl} {' '.join(args)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                self.kubectl, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True
            )
        except OSError as e:
            raise KubectlError(args, str(e))

        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            await self.terminate(proc)
            raise

        if proc.returncode != 0:
            message = stderr.decode('utf-8', errors='replace').strip()
            raise KubectlError(args, message or f"exit code {proc.returncode}", proc.returncode)

        return stdout.decode('utf-8', errors='replace')

    async def list_pods(self, app: str, namespace: Optional[str] = None) -> List[str]:
        output = await self._run(self.pods_args(app, namespace))
        return output.split()

    async def list_containers(self, pod: str, namespace: Optional[str] = None) -> List[str]:
        output = await self._run(self.containers_args(pod, namespace))
        return output.split()

    async def stream_logs(
        self,
        pod: str,
        container: str,
        mode: StreamMode,
        namespace: Optional[str] = None
    ) -> AsyncIterator[str]:
        args = self.logs_args(pod, container, mode, namespace)
        logger.debug(f"Starting {self.kubectl} {' '.join(args)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                self.kubectl, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LINE_LIMIT,
                start_new_session=True
            )
        except OSError as e:
            raise StreamOpenError(pod, container, str(e))

        try:
            async for raw in read_lines(proc.stdout):
                yield raw.decode('utf-8', errors='replace').rstrip('\r\n')

            stderr = await proc.stderr.read()
            returncode = await proc.wait()
            if returncode != 0:
                message = stderr.decode('utf-8', errors='replace').strip()
                raise StreamOpenError(pod, container, message or f"exit code {returncode}")
        finally:
            if proc.returncode is None:
                await self.terminate(proc)

    async def terminate(self, proc):
        """Stop a kubectl process, escalating to SIGKILL after the grace period."""
        if proc.returncode is not None:
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.grace_period)
        except asyncio.TimeoutError:
            logger.debug(f"kubectl pid {proc.pid} ignored SIGTERM, killing it")
            try:
                proc.kill()
            except ProcessLookupError:
                return
            await proc.wait()
