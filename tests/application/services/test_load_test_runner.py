# tests/application/services/test_load_test_runner.py
from __future__ import annotations

import json
from pathlib import Path
from threading import Event

import pytest

from application.exceptions import (
    ContainerLifecycleError,
    DependencyUnavailableError,
    RunCancelledError,
    TestExecutionFailedError,
    WorkspaceIOError,
)
from application.services.load_test_runner import LoadTestRunner, RunnerOptions
from domain.run_spec import HttpMethod, RunSpec
from fakes import FakeContainerEngine, FakeLogger
from infrastructure.workspace.local_workspace_manager import LocalWorkspaceManager


def _spec(**overrides) -> RunSpec:
    values = dict(target_url="http://localhost:8080/hello", virtual_users=10, duration=30, method=HttpMethod.GET)
    values.update(overrides)
    return RunSpec(**values)


def _runner(engine, base_dir: Path, logger=None, cleanup_enabled=False, **options) -> LoadTestRunner:
    logger = logger or FakeLogger()
    return LoadTestRunner(
        engine=engine,
        workspace=LocalWorkspaceManager(base_dir, logger, cleanup_enabled=cleanup_enabled),
        logger=logger,
        options=RunnerOptions(log_timeout_sec=5, wait_poll_interval_sec=0.01, **options),
    )


def _run_dirs(base_dir: Path) -> list:
    return list(base_dir.iterdir()) if base_dir.exists() else []


class TestSuccessfulRun:
    def test_returns_result_file_content_verbatim(self, tmp_path):
        engine = FakeContainerEngine(exit_code=0, result_content='{"metrics":{}}')

        result = _runner(engine, tmp_path).run(_spec())

        assert result.content == '{"metrics":{}}'
        assert result.degraded is False
        assert result.exit_code == 0
        assert engine.removed == ["container-1"]

    def test_writes_script_into_run_workspace(self, tmp_path):
        engine = FakeContainerEngine(result_content="{}")

        result = _runner(engine, tmp_path).run(_spec())

        script = (tmp_path / result.run_id / "script.js").read_text(encoding="utf-8")
        assert "vus: 10," in script
        assert "host.docker.internal:8080/hello" in script

    def test_creates_container_with_bind_mount_and_summary_export(self, tmp_path):
        engine = FakeContainerEngine(result_content="{}")

        result = _runner(engine, tmp_path).run(_spec())

        created = engine.created[0]
        assert created["image"] == "grafana/k6:latest"
        assert created["command"] == ["run", "/k6/script.js", "--summary-export=/k6/results.json"]
        assert created["user"] == "root"
        assert created["extra_hosts"] == {"host.docker.internal": "host-gateway"}
        bind = created["binds"][0]
        assert Path(bind.host_path) == (tmp_path / result.run_id).resolve()
        assert bind.container_path == "/k6"
        assert bind.read_only is False

    def test_custom_mount_dir_and_image(self, tmp_path):
        engine = FakeContainerEngine(result_content="{}")

        _runner(engine, tmp_path, image="grafana/k6:0.50.0", container_mount_dir="/scripts").run(_spec())

        created = engine.created[0]
        assert created["image"] == "grafana/k6:0.50.0"
        assert created["command"][1] == "/scripts/script.js"
        assert created["binds"][0].container_path == "/scripts"

    def test_missing_result_file_is_degraded_success(self, tmp_path):
        engine = FakeContainerEngine(exit_code=0, result_content=None, logs=[b"running...\n", b"done\n"])

        result = _runner(engine, tmp_path).run(_spec())

        assert result.degraded is True
        payload = json.loads(result.content)
        assert payload["no_result_file"] is True
        assert payload["message"] == "Test completed successfully, but no result file was generated."
        assert payload["logs"] == "running...\ndone\n"
        assert result.logs == "running...\ndone\n"
        assert engine.removed == ["container-1"]

    def test_pulls_image_only_when_absent(self, tmp_path):
        engine = FakeContainerEngine(image_present=False, result_content="{}")

        _runner(engine, tmp_path).run(_spec())

        assert engine.pulled == ["grafana/k6:latest"]
        assert engine.calls[:3] == ["image_exists", "pull_image", "create_container"]

    def test_present_image_is_not_pulled(self, tmp_path):
        engine = FakeContainerEngine(image_present=True, result_content="{}")

        _runner(engine, tmp_path).run(_spec())

        assert engine.pulled == []

    def test_wait_is_unbounded_without_cancel_event(self, tmp_path):
        engine = FakeContainerEngine(result_content="{}")

        _runner(engine, tmp_path).run(_spec())

        assert engine.wait_timeouts == [None]

    def test_each_run_gets_its_own_workspace_and_container(self, tmp_path):
        engine = FakeContainerEngine(result_content="{}")
        runner = _runner(engine, tmp_path)

        first = runner.run(_spec())
        second = runner.run(_spec())

        assert first.run_id != second.run_id
        assert len(_run_dirs(tmp_path)) == 2
        assert engine.removed == ["container-1", "container-2"]

    def test_logs_every_state_in_order(self, tmp_path):
        logger = FakeLogger()
        engine = FakeContainerEngine(result_content="{}")

        result = _runner(engine, tmp_path, logger=logger).run(_spec())

        states = [e["state"] for e in logger.of_type("run.state")]
        assert states == [
            "image_ready",
            "workspace_ready",
            "created",
            "started",
            "exited",
            "result_read",
            "cleaned",
        ]
        assert logger.of_type("run.end")[0]["run_id"] == result.run_id


class TestFailedRun:
    def test_non_zero_exit_raises_test_execution_failed(self, tmp_path):
        engine = FakeContainerEngine(exit_code=1, logs=[b"thresholds crossed\n"])

        with pytest.raises(TestExecutionFailedError) as exc_info:
            _runner(engine, tmp_path).run(_spec())

        error = exc_info.value
        assert error.exit_code == 1
        assert error.logs == "thresholds crossed\n"
        assert "status code 1" in str(error)
        assert error.run_id is not None
        assert engine.removed == ["container-1"]

    def test_non_zero_exit_ignores_result_file(self, tmp_path):
        engine = FakeContainerEngine(exit_code=99, result_content='{"metrics":{}}')

        with pytest.raises(TestExecutionFailedError):
            _runner(engine, tmp_path).run(_spec())

    def test_pull_failure_never_creates_container(self, tmp_path):
        engine = FakeContainerEngine(
            image_present=False,
            pull_error=DependencyUnavailableError("registry unreachable"),
        )
        base_dir = tmp_path / "runs"

        with pytest.raises(DependencyUnavailableError):
            _runner(engine, base_dir).run(_spec())

        assert "create_container" not in engine.calls
        assert engine.removed == []
        assert _run_dirs(base_dir) == []

    def test_workspace_failure_never_creates_container(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file", encoding="utf-8")
        engine = FakeContainerEngine()

        with pytest.raises(WorkspaceIOError):
            _runner(engine, blocker).run(_spec())

        assert "create_container" not in engine.calls
        assert engine.removed == []

    def test_create_failure_has_nothing_to_remove(self, tmp_path):
        engine = FakeContainerEngine(create_error=ContainerLifecycleError("bad config"))

        with pytest.raises(ContainerLifecycleError) as exc_info:
            _runner(engine, tmp_path).run(_spec())

        assert engine.removed == []
        assert exc_info.value.run_id is not None

    def test_start_failure_removes_created_container(self, tmp_path):
        engine = FakeContainerEngine(start_error=ContainerLifecycleError("port in use"))

        with pytest.raises(ContainerLifecycleError):
            _runner(engine, tmp_path).run(_spec())

        assert engine.removed == ["container-1"]

    def test_failure_is_logged_and_state_ends_failed(self, tmp_path):
        logger = FakeLogger()
        engine = FakeContainerEngine(exit_code=2)

        with pytest.raises(TestExecutionFailedError):
            _runner(engine, tmp_path, logger=logger).run(_spec())

        failed = logger.of_type("run.failed")[0]
        assert failed["code"] == "test_execution_failed"
        assert failed["state"] == "exited"
        assert logger.of_type("run.state")[-1]["state"] == "failed"


class TestCleanup:
    def test_remove_failure_does_not_mask_result(self, tmp_path):
        logger = FakeLogger()
        engine = FakeContainerEngine(result_content="{}", remove_error=RuntimeError("daemon hiccup"))

        result = _runner(engine, tmp_path, logger=logger).run(_spec())

        assert result.content == "{}"
        assert logger.of_type("container.remove_failed")[0]["error"] == "daemon hiccup"

    def test_remove_failure_does_not_mask_test_failure(self, tmp_path):
        engine = FakeContainerEngine(exit_code=1, remove_error=RuntimeError("daemon hiccup"))

        with pytest.raises(TestExecutionFailedError):
            _runner(engine, tmp_path).run(_spec())

        assert engine.removed == ["container-1"]

    def test_already_removed_container_is_not_an_error(self, tmp_path):
        logger = FakeLogger()
        engine = FakeContainerEngine(result_content="{}", already_removed=True)

        _runner(engine, tmp_path, logger=logger).run(_spec())

        assert engine.removed == ["container-1"]
        assert len(logger.of_type("container.already_removed")) == 1

    def test_workspace_is_kept_by_default(self, tmp_path):
        engine = FakeContainerEngine(result_content="{}")

        result = _runner(engine, tmp_path).run(_spec())

        assert (tmp_path / result.run_id / "results.json").exists()

    def test_workspace_is_deleted_when_cleanup_enabled(self, tmp_path):
        engine = FakeContainerEngine(result_content="{}")

        result = _runner(engine, tmp_path, cleanup_enabled=True).run(_spec())

        assert result.content == "{}"
        assert not (tmp_path / result.run_id).exists()

    def test_workspace_is_deleted_after_failure_when_cleanup_enabled(self, tmp_path):
        engine = FakeContainerEngine(exit_code=1)

        with pytest.raises(TestExecutionFailedError):
            _runner(engine, tmp_path, cleanup_enabled=True).run(_spec())

        assert _run_dirs(tmp_path) == []

    def test_interrupt_while_waiting_still_removes_container(self, tmp_path):
        engine = FakeContainerEngine(wait_error=KeyboardInterrupt())

        with pytest.raises(KeyboardInterrupt):
            _runner(engine, tmp_path).run(_spec())

        assert engine.removed == ["container-1"]


class TestCancellation:
    def test_cancel_before_start_skips_container(self, tmp_path):
        engine = FakeContainerEngine()
        cancel = Event()
        cancel.set()

        with pytest.raises(RunCancelledError):
            _runner(engine, tmp_path).run(_spec(), cancel_event=cancel)

        assert "create_container" not in engine.calls
        assert engine.removed == []

    def test_cancel_while_waiting_removes_container(self, tmp_path):
        engine = FakeContainerEngine(wait_results=[None, None, None, None])
        cancel = Event()
        polls = []

        def cancel_on_second_poll():
            polls.append(1)
            if len(polls) == 2:
                cancel.set()

        engine.on_wait = cancel_on_second_poll

        with pytest.raises(RunCancelledError) as exc_info:
            _runner(engine, tmp_path).run(_spec(), cancel_event=cancel)

        assert engine.removed == ["container-1"]
        assert exc_info.value.run_id is not None
        assert engine.wait_timeouts == [0.01, 0.01]

    def test_polling_wait_returns_exit_code(self, tmp_path):
        engine = FakeContainerEngine(wait_results=[None, None, 0], result_content='{"ok":true}')

        result = _runner(engine, tmp_path).run(_spec(), cancel_event=Event())

        assert result.content == '{"ok":true}'
        assert engine.wait_timeouts == [0.01, 0.01, 0.01]
