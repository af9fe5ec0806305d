# infrastructure/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from application.services.load_test_runner import (
    DEFAULT_CONTAINER_MOUNT_DIR,
    DEFAULT_K6_IMAGE,
    RunnerOptions,
)
from application.services.container_log_collector import DEFAULT_LOG_TIMEOUT_SEC
from application.services.script_generator import DEFAULT_GATEWAY_ALIAS
from domain.exceptions import ValidationError
from infrastructure.docker.docker_engine_client import DEFAULT_CLIENT_TIMEOUT_SEC, DEFAULT_MAX_POOL_SIZE

ENV_PREFIX = "K6_RUNNER_"
DEFAULT_BASE_DIR_NAME = "k6-runs"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class RunnerSettings:
    """
    Runner configuration, resolved once at startup.

    docker_host: daemon URI such as tcp://localhost:2375 or
        unix:///var/run/docker.sock. Empty means DOCKER_HOST or the
        platform default.
    base_dir: host directory holding one sub-directory per run.
    container_mount_dir: where base_dir/<run id> is mounted inside k6.
    """

    docker_host: str
    base_dir: Path
    container_mount_dir: str = DEFAULT_CONTAINER_MOUNT_DIR
    image: str = DEFAULT_K6_IMAGE
    gateway_alias: str = DEFAULT_GATEWAY_ALIAS
    container_user: Optional[str] = "root"
    log_timeout_sec: float = DEFAULT_LOG_TIMEOUT_SEC
    wait_poll_interval_sec: float = 5.0
    cleanup_enabled: bool = False
    client_timeout_sec: int = DEFAULT_CLIENT_TIMEOUT_SEC
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE
    log_level: str = "INFO"

    def runner_options(self) -> RunnerOptions:
        return RunnerOptions(
            image=self.image,
            container_mount_dir=self.container_mount_dir,
            container_user=self.container_user,
            gateway_alias=self.gateway_alias,
            log_timeout_sec=self.log_timeout_sec,
            wait_poll_interval_sec=self.wait_poll_interval_sec,
        )


def load_settings(
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RunnerSettings:
    """
    Build RunnerSettings from K6_RUNNER_* variables.

    Values from the process environment take precedence over the .env file.
    """
    values: Dict[str, Optional[str]] = {}
    if env_file is not None and Path(env_file).exists():
        values.update(dotenv_values(env_file))
    values.update(os.environ if environ is None else environ)

    def get(key: str) -> Optional[str]:
        raw = values.get(ENV_PREFIX + key)
        return raw.strip() if raw is not None else None

    base_dir = get("BASE_DIR")
    user = get("CONTAINER_USER")
    return RunnerSettings(
        docker_host=get("DOCKER_HOST") or "",
        base_dir=Path(base_dir) if base_dir else Path.cwd() / DEFAULT_BASE_DIR_NAME,
        container_mount_dir=get("CONTAINER_MOUNT_DIR") or DEFAULT_CONTAINER_MOUNT_DIR,
        image=get("IMAGE") or DEFAULT_K6_IMAGE,
        gateway_alias=get("GATEWAY_ALIAS") or DEFAULT_GATEWAY_ALIAS,
        # an explicitly empty value runs k6 as the image's own user
        container_user=("root" if user is None else user) or None,
        log_timeout_sec=_parse_float("LOG_TIMEOUT_SEC", get("LOG_TIMEOUT_SEC"), DEFAULT_LOG_TIMEOUT_SEC),
        wait_poll_interval_sec=_parse_float("WAIT_POLL_INTERVAL_SEC", get("WAIT_POLL_INTERVAL_SEC"), 5.0),
        cleanup_enabled=_parse_bool("CLEANUP_ENABLED", get("CLEANUP_ENABLED"), False),
        client_timeout_sec=_parse_int("CLIENT_TIMEOUT_SEC", get("CLIENT_TIMEOUT_SEC"), DEFAULT_CLIENT_TIMEOUT_SEC),
        max_pool_size=_parse_int("MAX_POOL_SIZE", get("MAX_POOL_SIZE"), DEFAULT_MAX_POOL_SIZE),
        log_level=(get("LOG_LEVEL") or "INFO").upper(),
    )


def _parse_bool(key: str, raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValidationError(f"{ENV_PREFIX}{key} must be a boolean: {raw}")


def _parse_int(key: str, raw: Optional[str], default: int) -> int:
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(f"{ENV_PREFIX}{key} must be an integer: {raw}") from exc
    if value <= 0:
        raise ValidationError(f"{ENV_PREFIX}{key} must be positive: {raw}")
    return value


def _parse_float(key: str, raw: Optional[str], default: float) -> float:
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValidationError(f"{ENV_PREFIX}{key} must be a number: {raw}") from exc
    if value <= 0:
        raise ValidationError(f"{ENV_PREFIX}{key} must be positive: {raw}")
    return value
