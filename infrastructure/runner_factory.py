# infrastructure/runner_factory.py
from __future__ import annotations

from typing import Optional

from application.ports.logger import LoggerPort
from application.services.load_test_runner import LoadTestRunner
from infrastructure.config.settings import RunnerSettings
from infrastructure.docker.docker_engine_client import DockerEngineClient, create_docker_client
from infrastructure.logging.console_logger import ConsoleLogger
from infrastructure.workspace.local_workspace_manager import LocalWorkspaceManager


def build_runner(settings: RunnerSettings, logger: Optional[LoggerPort] = None) -> LoadTestRunner:
    """Wire the docker client, workspace manager and runner from settings."""
    logger = logger or ConsoleLogger()
    client = create_docker_client(
        docker_host=settings.docker_host,
        timeout_sec=settings.client_timeout_sec,
        max_pool_size=settings.max_pool_size,
    )
    return LoadTestRunner(
        engine=DockerEngineClient(client, logger),
        workspace=LocalWorkspaceManager(
            settings.base_dir,
            logger,
            cleanup_enabled=settings.cleanup_enabled,
        ),
        logger=logger,
        options=settings.runner_options(),
    )
