# application/exceptions.py
from __future__ import annotations

from typing import Optional


class LoadTestError(Exception):
    code = "load_test_error"

    def __init__(self, message: str, run_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.run_id = run_id


class DependencyUnavailableError(LoadTestError):
    code = "dependency_unavailable"


class WorkspaceIOError(LoadTestError):
    code = "workspace_io"


class ContainerLifecycleError(LoadTestError):
    code = "container_lifecycle"


class RunCancelledError(LoadTestError):
    code = "cancelled"


class TestExecutionFailedError(LoadTestError):
    code = "test_execution_failed"
    __test__ = False

    def __init__(self, exit_code: int, logs: str, run_id: Optional[str] = None) -> None:
        super().__init__(
            f"k6 test failed with status code {exit_code}. Logs:\n{logs}",
            run_id=run_id,
        )
        self.exit_code = exit_code
        self.logs = logs
