# infrastructure/docker/docker_engine_client.py
from __future__ import annotations

from typing import Dict, Iterator, List, Optional

import docker
import requests
from docker.errors import APIError, DockerException, ImageNotFound, NotFound

from application.exceptions import ContainerLifecycleError, DependencyUnavailableError
from application.ports.container_engine import BindMount, ContainerEnginePort, ContainerHandle
from application.ports.logger import LoggerPort

DEFAULT_CLIENT_TIMEOUT_SEC = 60
DEFAULT_MAX_POOL_SIZE = 100


def create_docker_client(
    docker_host: str = "",
    timeout_sec: int = DEFAULT_CLIENT_TIMEOUT_SEC,
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
) -> docker.DockerClient:
    """
    Connect to the docker daemon.

    An empty docker_host falls back to DOCKER_HOST / the platform socket.
    """
    try:
        if docker_host:
            return docker.DockerClient(
                base_url=docker_host,
                timeout=timeout_sec,
                max_pool_size=max_pool_size,
            )
        return docker.from_env(timeout=timeout_sec, max_pool_size=max_pool_size)
    except DockerException as exc:
        raise DependencyUnavailableError(f"Docker engine is not reachable: {exc}") from exc


class DockerEngineClient(ContainerEnginePort):
    """ContainerEnginePort backed by the docker SDK."""

    def __init__(self, client: docker.DockerClient, logger: LoggerPort) -> None:
        self._client = client
        self._logger = logger

    def image_exists(self, name: str) -> bool:
        try:
            self._client.images.get(name)
        except ImageNotFound:
            return False
        except (DockerException, requests.exceptions.RequestException) as exc:
            raise DependencyUnavailableError(f"Failed to inspect image {name}: {exc}") from exc
        return True

    def pull_image(self, name: str) -> None:
        self._logger.info("docker.pull", image=name)
        try:
            self._client.images.pull(name)
        except (DockerException, requests.exceptions.RequestException) as exc:
            raise DependencyUnavailableError(f"Failed to pull image {name}: {exc}") from exc

    def create_container(
        self,
        image: str,
        command: List[str],
        binds: List[BindMount],
        user: Optional[str] = None,
        extra_hosts: Optional[Dict[str, str]] = None,
    ) -> ContainerHandle:
        volumes = {
            bind.host_path: {
                "bind": bind.container_path,
                "mode": "ro" if bind.read_only else "rw",
            }
            for bind in binds
        }
        try:
            container = self._client.containers.create(
                image,
                command=command,
                volumes=volumes,
                user=user,
                extra_hosts=extra_hosts or None,
            )
        except requests.exceptions.ConnectionError as exc:
            raise DependencyUnavailableError(f"Docker engine is not reachable: {exc}") from exc
        except (DockerException, requests.exceptions.RequestException) as exc:
            raise ContainerLifecycleError(f"Failed to create container from {image}: {exc}") from exc
        return ContainerHandle(id=container.id)

    def start(self, handle: ContainerHandle) -> None:
        try:
            self._client.api.start(handle.id)
        except (DockerException, requests.exceptions.RequestException) as exc:
            raise ContainerLifecycleError(f"Failed to start container {handle.short_id}: {exc}") from exc

    def wait_for_exit(self, handle: ContainerHandle, timeout: Optional[float] = None) -> Optional[int]:
        try:
            response = self._client.api.wait(handle.id, timeout=timeout)
        except requests.exceptions.ConnectTimeout as exc:
            # the daemon never answered; not the same as the container still running
            raise DependencyUnavailableError(
                f"Docker engine is not reachable while waiting for container {handle.short_id}: {exc}"
            ) from exc
        except requests.exceptions.ReadTimeout:
            return None
        except requests.exceptions.ConnectionError as exc:
            # urllib3 read timeouts on the unix socket surface as ConnectionError
            if timeout is not None and "timed out" in str(exc).lower():
                return None
            raise DependencyUnavailableError(
                f"Lost connection while waiting for container {handle.short_id}: {exc}"
            ) from exc
        except DockerException as exc:
            raise ContainerLifecycleError(f"Failed to wait for container {handle.short_id}: {exc}") from exc
        return int(response.get("StatusCode", -1))

    def stream_logs(self, handle: ContainerHandle) -> Iterator[bytes]:
        return self._client.api.logs(
            handle.id,
            stdout=True,
            stderr=True,
            stream=True,
            follow=True,
        )

    def remove(self, handle: ContainerHandle, force: bool = True) -> bool:
        try:
            self._client.api.remove_container(handle.id, force=force)
        except NotFound:
            return False
        except APIError as exc:
            if exc.status_code == 409 and "already in progress" in str(exc).lower():
                return False
            raise
        return True
