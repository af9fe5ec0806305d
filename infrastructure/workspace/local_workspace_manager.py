# infrastructure/workspace/local_workspace_manager.py
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from application.exceptions import WorkspaceIOError
from application.ports.logger import LoggerPort
from application.ports.workspace import WorkspacePort
from domain.ids import RunId
from domain.run import WorkspacePaths


class LocalWorkspaceManager(WorkspacePort):
    """
    Per-run directories under base_dir, bind-mounted into the k6 container.

    Cleanup is off unless cleanup_enabled is set, so finished runs stay on disk
    for inspection.
    """

    def __init__(self, base_dir: Path, logger: LoggerPort, cleanup_enabled: bool = False) -> None:
        self._base_dir = Path(base_dir).expanduser().resolve()
        self._logger = logger
        self._cleanup_enabled = cleanup_enabled

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def prepare(self, run_id: RunId) -> WorkspacePaths:
        paths = WorkspacePaths.under(self._base_dir / str(run_id))
        try:
            paths.root.mkdir(parents=True, exist_ok=False)
        except OSError as exc:
            raise WorkspaceIOError(
                f"Failed to create workspace {paths.root}: {exc}",
                run_id=str(run_id),
            ) from exc
        return paths

    def write_script(self, paths: WorkspacePaths, script: str) -> None:
        try:
            paths.script.write_text(script, encoding="utf-8")
        except OSError as exc:
            raise WorkspaceIOError(f"Failed to write script {paths.script}: {exc}") from exc

    def read_result(self, paths: WorkspacePaths) -> Optional[str]:
        if not paths.results.exists():
            return None
        try:
            return paths.results.read_text(encoding="utf-8")
        except OSError as exc:
            raise WorkspaceIOError(f"Failed to read result file {paths.results}: {exc}") from exc

    def teardown(self, paths: WorkspacePaths) -> None:
        if not self._cleanup_enabled or not paths.root.exists():
            return
        try:
            shutil.rmtree(paths.root)
        except OSError as exc:
            self._logger.error("workspace.cleanup_failed", path=str(paths.root), error=str(exc))
            return
        self._logger.info("workspace.deleted", path=str(paths.root))
