# application/ports/container_engine.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional


@dataclass(frozen=True)
class ContainerHandle:
    id: str

    @property
    def short_id(self) -> str:
        return self.id[:12]


@dataclass(frozen=True)
class BindMount:
    host_path: str
    container_path: str
    read_only: bool = False


class ContainerEnginePort(ABC):
    """
    Container runtime operations the load test runner depends on.

    Implementations must be safe to share between concurrent runs.
    Infrastructure failures are raised as application.exceptions errors:
    DependencyUnavailableError for pulls and lost connections,
    ContainerLifecycleError for create/start.
    """

    @abstractmethod
    def image_exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def pull_image(self, name: str) -> None:
        ...

    @abstractmethod
    def create_container(
        self,
        image: str,
        command: List[str],
        binds: List[BindMount],
        user: Optional[str] = None,
        extra_hosts: Optional[Dict[str, str]] = None,
    ) -> ContainerHandle:
        ...

    @abstractmethod
    def start(self, handle: ContainerHandle) -> None:
        ...

    @abstractmethod
    def wait_for_exit(self, handle: ContainerHandle, timeout: Optional[float] = None) -> Optional[int]:
        """
        Block until the container exits and return its status code.
        With a timeout, return None if the container is still running.
        """
        ...

    @abstractmethod
    def stream_logs(self, handle: ContainerHandle) -> Iterator[bytes]:
        ...

    @abstractmethod
    def remove(self, handle: ContainerHandle, force: bool = True) -> bool:
        """
        Remove the container. Returns False when it was already gone.
        """
        ...
