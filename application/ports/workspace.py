# application/ports/workspace.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from domain.ids import RunId
from domain.run import WorkspacePaths


class WorkspacePort(ABC):
    @abstractmethod
    def prepare(self, run_id: RunId) -> WorkspacePaths:
        ...

    @abstractmethod
    def write_script(self, paths: WorkspacePaths, script: str) -> None:
        ...

    @abstractmethod
    def read_result(self, paths: WorkspacePaths) -> Optional[str]:
        ...

    @abstractmethod
    def teardown(self, paths: WorkspacePaths) -> None:
        """
        Best-effort cleanup. Must not raise.
        """
        ...
