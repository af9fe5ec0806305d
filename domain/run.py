# domain/run.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from domain.ids import RunId

SCRIPT_FILE_NAME = "script.js"
RESULT_FILE_NAME = "results.json"


class RunState(str, Enum):
    INIT = "init"
    IMAGE_READY = "image_ready"
    WORKSPACE_READY = "workspace_ready"
    CREATED = "created"
    STARTED = "started"
    EXITED = "exited"
    RESULT_READ = "result_read"
    CLEANED = "cleaned"
    FAILED = "failed"


@dataclass(frozen=True)
class WorkspacePaths:
    root: Path
    script: Path
    results: Path

    @classmethod
    def under(cls, root: Path) -> "WorkspacePaths":
        return cls(
            root=root,
            script=root / SCRIPT_FILE_NAME,
            results=root / RESULT_FILE_NAME,
        )


@dataclass(frozen=True)
class RunContext:
    run_id: RunId
    workspace: WorkspacePaths
    container_mount_dir: str

    @property
    def container_script_path(self) -> str:
        return f"{self.container_mount_dir.rstrip('/')}/{SCRIPT_FILE_NAME}"

    @property
    def container_result_path(self) -> str:
        return f"{self.container_mount_dir.rstrip('/')}/{RESULT_FILE_NAME}"


@dataclass(frozen=True)
class RunResult:
    run_id: str
    content: str
    exit_code: int = 0
    degraded: bool = False
    logs: Optional[str] = None
