"""FastAPI application - k6 load test endpoint"""
from pathlib import Path
from threading import Lock
from typing import Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from application.exceptions import LoadTestError
from application.services.execution_error_builder import ExecutionErrorBuilder
from application.services.load_test_runner import LoadTestRunner
from domain.exceptions import ValidationError
from domain.run_spec import MAX_DURATION_SEC, MAX_VIRTUAL_USERS, HttpMethod, RunSpec
from infrastructure.config.settings import load_settings
from infrastructure.logging.console_logger import ConsoleLogger
from infrastructure.logging.log_setup import setup_console_logging
from infrastructure.runner_factory import build_runner


class RunLoadTestRequest(BaseModel):
    """Load test options"""
    model_config = ConfigDict(populate_by_name=True)

    target_url: str = Field(
        alias="targetUrl",
        min_length=1,
        description="Target URL",
        examples=["http://localhost:8080/api/test/hello"],
    )
    virtual_users: int = Field(
        alias="virtualUsers",
        ge=1,
        le=MAX_VIRTUAL_USERS,
        description="Number of virtual users",
        examples=[10],
    )
    duration: int = Field(ge=1, le=MAX_DURATION_SEC, description="Test duration in seconds", examples=[30])
    method: str = Field(default="GET", description="HTTP method (GET, POST, PUT, DELETE)")
    body: Optional[str] = Field(default=None, description="Request body for POST/PUT", examples=['{"test": "data"}'])

    def to_run_spec(self) -> RunSpec:
        return RunSpec(
            target_url=self.target_url,
            virtual_users=self.virtual_users,
            duration=self.duration,
            method=HttpMethod.parse(self.method),
            body=self.body,
        )


class ErrorDetailResponse(BaseModel):
    """Structured error detail"""
    code: str = Field(description="Error code")
    message: str = Field(description="Error message")
    run_id: Optional[str] = Field(default=None, description="Run identifier")
    exit_code: Optional[int] = Field(default=None, description="k6 container exit code")


class RunErrorResponse(BaseModel):
    """Failed run response"""
    success: bool = Field(default=False, description="Always false")
    error: str = Field(description="Human readable error message")
    error_detail: ErrorDetailResponse = Field(description="Structured error detail")


app = FastAPI(
    title="k6 Load Test Runner",
    description="Runs parameterized k6 load tests in throwaway docker containers",
    version="1.0.0",
)

ENV_FILE = Path(__file__).parent.parent / ".env"
_RUNNER: Optional[LoadTestRunner] = None
_RUNNER_LOCK = Lock()


def get_runner() -> LoadTestRunner:
    global _RUNNER
    with _RUNNER_LOCK:
        if _RUNNER is None:
            settings = load_settings(ENV_FILE)
            setup_console_logging(settings.log_level)
            _RUNNER = build_runner(settings)
        return _RUNNER


@app.get("/")
def read_root():
    """Health check"""
    return {"status": "ok", "service": "k6-runner"}


def _error_response(exc: BaseException) -> JSONResponse:
    detail = ExecutionErrorBuilder().build_from_exception(exc)
    body = RunErrorResponse(
        error=f"Error running k6 test: {detail.message}",
        error_detail=ErrorDetailResponse(**detail.__dict__),
    )
    return JSONResponse(status_code=500, content=body.model_dump())


@app.exception_handler(LoadTestError)
def handle_load_test_error(_request: Request, exc: LoadTestError) -> JSONResponse:
    # raised outside the endpoint body, e.g. docker unreachable while wiring the runner
    ConsoleLogger().error("k6_runner_unavailable", code=exc.code, error=exc.message)
    return _error_response(exc)


@app.exception_handler(ValidationError)
def handle_settings_error(_request: Request, exc: ValidationError) -> JSONResponse:
    # invalid K6_RUNNER_* values surface while the runner is wired on first use
    ConsoleLogger().error("k6_runner_misconfigured", code="validation", error=str(exc))
    return _error_response(exc)


@app.post(
    "/k6/run",
    response_class=PlainTextResponse,
    responses={500: {"model": RunErrorResponse, "description": "Load test could not be run or failed"}},
)
def run_load_test(
    request: RunLoadTestRequest = Body(...),
    runner: LoadTestRunner = Depends(get_runner),
):
    """
    Run a k6 load test and return the k6 summary as-is.

    A run that finishes without a summary file still answers 200 with a
    payload carrying "no_result_file": true and the container logs.
    """
    logger = ConsoleLogger()
    try:
        spec = request.to_run_spec()
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = runner.run(spec)
    except LoadTestError as e:
        logger.error("k6_run_failed", code=e.code, run_id=e.run_id, error=e.message)
        return _error_response(e)
    except Exception as e:
        logger.error("k6_run_failed", code="exception", error=str(e))
        return _error_response(e)

    return PlainTextResponse(
        content=result.content,
        headers={
            "X-Run-Id": result.run_id,
            "X-Result-Degraded": "true" if result.degraded else "false",
        },
    )
