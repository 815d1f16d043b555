"""
Cluster capabilities used by discovery and streaming.
"""

from .base import (
    PodLister,
    ContainerLister,
    LogSource
)
from .kubectl import KubectlClient

__all__ = [
    'PodLister',
    'ContainerLister',
    'LogSource',
    'KubectlClient'
]
