# application/services/load_test_runner.py
from __future__ import annotations

import json
from dataclasses import dataclass
from threading import Event
from typing import Optional

from application.exceptions import LoadTestError, RunCancelledError, TestExecutionFailedError
from application.ports.container_engine import BindMount, ContainerEnginePort, ContainerHandle
from application.ports.logger import LoggerPort
from application.ports.workspace import WorkspacePort
from application.services.container_log_collector import (
    DEFAULT_LOG_TIMEOUT_SEC,
    CollectedLogs,
    ContainerLogCollector,
)
from application.services.script_generator import DEFAULT_GATEWAY_ALIAS, K6ScriptGenerator
from domain.ids import RunId
from domain.run import RunContext, RunResult, RunState, WorkspacePaths
from domain.run_spec import RunSpec

DEFAULT_K6_IMAGE = "grafana/k6:latest"
DEFAULT_CONTAINER_MOUNT_DIR = "/k6"
HOST_GATEWAY = "host-gateway"
NO_RESULT_FILE_MESSAGE = "Test completed successfully, but no result file was generated."


@dataclass(frozen=True)
class RunnerOptions:
    image: str = DEFAULT_K6_IMAGE
    container_mount_dir: str = DEFAULT_CONTAINER_MOUNT_DIR
    container_user: Optional[str] = "root"
    gateway_alias: str = DEFAULT_GATEWAY_ALIAS
    log_timeout_sec: float = DEFAULT_LOG_TIMEOUT_SEC
    wait_poll_interval_sec: float = 5.0


@dataclass
class _RunScope:
    logger: LoggerPort
    state: RunState = RunState.INIT
    run_id: Optional[RunId] = None
    paths: Optional[WorkspacePaths] = None
    handle: Optional[ContainerHandle] = None
    result: Optional[RunResult] = None

    def advance(self, state: RunState) -> None:
        self.logger.info("run.state", previous=self.state.value, state=state.value)
        self.state = state


class LoadTestRunner:
    """
    Run one k6 load test in a throwaway container.

    run() walks init -> image_ready -> workspace_ready -> created -> started
    -> exited -> result_read -> cleaned. Any failure moves the run to failed.
    A created container is force-removed before run() returns on every path,
    including cancellation and interrupts.
    """

    def __init__(
        self,
        engine: ContainerEnginePort,
        workspace: WorkspacePort,
        logger: LoggerPort,
        options: Optional[RunnerOptions] = None,
        script_generator: Optional[K6ScriptGenerator] = None,
    ) -> None:
        self._engine = engine
        self._workspace = workspace
        self._logger = logger
        self._options = options or RunnerOptions()
        self._script_generator = script_generator or K6ScriptGenerator(self._options.gateway_alias)

    @property
    def options(self) -> RunnerOptions:
        return self._options

    def run(self, spec: RunSpec, cancel_event: Optional[Event] = None) -> RunResult:
        scope = _RunScope(logger=self._logger)
        scope.logger.info(
            "run.start",
            target_url=spec.target_url,
            method=spec.method.value,
            vus=spec.virtual_users,
            duration=spec.duration,
        )
        try:
            self._ensure_image(scope)
            scope.advance(RunState.IMAGE_READY)

            ctx = self._prepare_workspace(scope, spec)
            scope.advance(RunState.WORKSPACE_READY)

            self._raise_if_cancelled(scope, cancel_event, "before container creation")
            scope.handle = self._create_container(ctx)
            scope.advance(RunState.CREATED)

            self._engine.start(scope.handle)
            scope.logger.info("container.started", container_id=scope.handle.id)
            scope.advance(RunState.STARTED)

            exit_code = self._wait_for_exit(scope, cancel_event)
            scope.logger.info("container.exited", container_id=scope.handle.id, exit_code=exit_code)
            scope.advance(RunState.EXITED)

            scope.result = self._read_result(scope, ctx, exit_code)
            scope.advance(RunState.RESULT_READ)
        except BaseException as exc:
            self._mark_failed(scope, exc)
            raise
        finally:
            self._cleanup(scope)

        scope.advance(RunState.CLEANED)
        scope.logger.info("run.end", degraded=scope.result.degraded)
        return scope.result

    def _ensure_image(self, scope: _RunScope) -> None:
        image = self._options.image
        if self._engine.image_exists(image):
            scope.logger.info("image.present", image=image)
            return
        scope.logger.info("image.pull", image=image)
        self._engine.pull_image(image)
        scope.logger.info("image.pulled", image=image)

    def _prepare_workspace(self, scope: _RunScope, spec: RunSpec) -> RunContext:
        scope.run_id = RunId.new()
        scope.logger = scope.logger.bind(run_id=str(scope.run_id))

        scope.paths = self._workspace.prepare(scope.run_id)
        scope.logger.info("workspace.created", path=str(scope.paths.root))

        script = self._script_generator.generate(spec)
        self._workspace.write_script(scope.paths, script)
        scope.logger.info(
            "script.written",
            path=str(scope.paths.script),
            target_url=self._script_generator.container_url(spec.target_url),
        )
        return RunContext(
            run_id=scope.run_id,
            workspace=scope.paths,
            container_mount_dir=self._options.container_mount_dir,
        )

    def _create_container(self, ctx: RunContext) -> ContainerHandle:
        return self._engine.create_container(
            image=self._options.image,
            command=[
                "run",
                ctx.container_script_path,
                f"--summary-export={ctx.container_result_path}",
            ],
            binds=[BindMount(host_path=str(ctx.workspace.root), container_path=ctx.container_mount_dir)],
            user=self._options.container_user,
            extra_hosts={self._options.gateway_alias: HOST_GATEWAY},
        )

    def _wait_for_exit(self, scope: _RunScope, cancel_event: Optional[Event]) -> int:
        if cancel_event is None:
            return self._engine.wait_for_exit(scope.handle)

        while True:
            self._raise_if_cancelled(scope, cancel_event, "while waiting for container exit")
            exit_code = self._engine.wait_for_exit(
                scope.handle,
                timeout=self._options.wait_poll_interval_sec,
            )
            if exit_code is not None:
                return exit_code

    def _read_result(self, scope: _RunScope, ctx: RunContext, exit_code: int) -> RunResult:
        run_id = str(ctx.run_id)
        if exit_code != 0:
            logs = self._collect_logs(scope)
            raise TestExecutionFailedError(exit_code, logs.text, run_id=run_id)

        content = self._workspace.read_result(ctx.workspace)
        if content is not None:
            return RunResult(run_id=run_id, content=content, exit_code=exit_code)

        logs = self._collect_logs(scope)
        scope.logger.warning("result.missing", path=str(ctx.workspace.results))
        payload = json.dumps(
            {
                "message": NO_RESULT_FILE_MESSAGE,
                "no_result_file": True,
                "logs": logs.text,
            },
            ensure_ascii=False,
        )
        return RunResult(
            run_id=run_id,
            content=payload,
            exit_code=exit_code,
            degraded=True,
            logs=logs.text,
        )

    def _collect_logs(self, scope: _RunScope) -> CollectedLogs:
        collector = ContainerLogCollector(self._engine, scope.logger, self._options.log_timeout_sec)
        return collector.collect(scope.handle)

    def _raise_if_cancelled(self, scope: _RunScope, cancel_event: Optional[Event], where: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            run_id = str(scope.run_id) if scope.run_id else None
            raise RunCancelledError(f"Run cancelled {where}", run_id=run_id)

    def _mark_failed(self, scope: _RunScope, exc: BaseException) -> None:
        if isinstance(exc, LoadTestError) and exc.run_id is None and scope.run_id is not None:
            exc.run_id = str(scope.run_id)
        scope.logger.error(
            "run.failed",
            state=scope.state.value,
            code=getattr(exc, "code", type(exc).__name__),
            error=str(exc),
        )
        scope.advance(RunState.FAILED)

    def _cleanup(self, scope: _RunScope) -> None:
        if scope.handle is not None:
            try:
                if self._engine.remove(scope.handle, force=True):
                    scope.logger.info("container.removed", container_id=scope.handle.id)
                else:
                    scope.logger.warning("container.already_removed", container_id=scope.handle.id)
            except Exception as exc:
                scope.logger.error("container.remove_failed", container_id=scope.handle.id, error=str(exc))

        if scope.paths is not None:
            try:
                self._workspace.teardown(scope.paths)
            except Exception as exc:
                scope.logger.error("workspace.cleanup_failed", path=str(scope.paths.root), error=str(exc))
