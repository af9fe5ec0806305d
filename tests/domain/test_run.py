# tests/domain/test_run.py
from pathlib import Path

from domain.ids import RunId
from domain.run import RunContext, RunResult, RunState, WorkspacePaths


class TestWorkspacePaths:
    def test_under_derives_artifact_paths(self):
        paths = WorkspacePaths.under(Path("/tmp/k6-runs/abc"))
        assert paths.root == Path("/tmp/k6-runs/abc")
        assert paths.script == Path("/tmp/k6-runs/abc/script.js")
        assert paths.results == Path("/tmp/k6-runs/abc/results.json")


class TestRunContext:
    def test_container_paths_use_mount_dir(self):
        ctx = RunContext(
            run_id=RunId("run-1"),
            workspace=WorkspacePaths.under(Path("/tmp/run-1")),
            container_mount_dir="/k6",
        )
        assert ctx.container_script_path == "/k6/script.js"
        assert ctx.container_result_path == "/k6/results.json"

    def test_trailing_slash_in_mount_dir_is_ignored(self):
        ctx = RunContext(
            run_id=RunId("run-1"),
            workspace=WorkspacePaths.under(Path("/tmp/run-1")),
            container_mount_dir="/data/",
        )
        assert ctx.container_script_path == "/data/script.js"


class TestRunResult:
    def test_defaults_to_non_degraded(self):
        result = RunResult(run_id="run-1", content="{}")
        assert result.degraded is False
        assert result.exit_code == 0
        assert result.logs is None


def test_run_state_values():
    assert RunState.INIT.value == "init"
    assert RunState.CLEANED.value == "cleaned"
    assert RunState.FAILED.value == "failed"
