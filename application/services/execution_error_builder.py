# application/services/execution_error_builder.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from application.exceptions import LoadTestError, TestExecutionFailedError
from domain.exceptions import ValidationError


@dataclass(frozen=True)
class ExecutionErrorDetail:
    code: str
    message: str
    run_id: Optional[str]
    exit_code: Optional[int]


class ExecutionErrorBuilder:
    def build_from_exception(self, exc: BaseException) -> ExecutionErrorDetail:
        if isinstance(exc, TestExecutionFailedError):
            return ExecutionErrorDetail(
                code=exc.code,
                message=exc.message,
                run_id=exc.run_id,
                exit_code=exc.exit_code,
            )
        if isinstance(exc, LoadTestError):
            return ExecutionErrorDetail(
                code=exc.code,
                message=exc.message,
                run_id=exc.run_id,
                exit_code=None,
            )
        if isinstance(exc, ValidationError):
            return ExecutionErrorDetail(
                code="validation",
                message=str(exc),
                run_id=None,
                exit_code=None,
            )
        return ExecutionErrorDetail(
            code="exception",
            message=str(exc),
            run_id=None,
            exit_code=None,
        )
