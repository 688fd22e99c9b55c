"""Tests for install/hooks.py module.

Hooks run through a real shell; the runner is mocked where only the
calling contract matters.
"""

from unittest.mock import MagicMock

import pytest

from slugbuilder.errors import CommandError, HookError
from slugbuilder.install.hooks import run_hook_if_present
from slugbuilder.manifest.schema import ManifestSchema
from slugbuilder.pipeline.log import DiagnosticLog


@pytest.fixture
def log(tmp_path) -> DiagnosticLog:
    """Create a fresh diagnostic log."""
    log = DiagnosticLog(tmp_path / "build.log")
    log.reset()
    return log


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "app"
    path.mkdir()
    return path


class TestRunHookIfPresent:
    """Tests for run_hook_if_present function."""

    def test_absent_hook_is_noop(self, project_dir, log):
        """An undeclared hook should succeed without running anything."""
        runner = MagicMock()
        manifest = ManifestSchema.model_validate({})

        ran = run_hook_if_present(
            manifest, "prebuild", project_dir, {}, log, runner=runner
        )

        assert ran is False
        runner.run.assert_not_called()
        assert "No prebuild script declared" in log.read_text()

    def test_present_hook_runs_in_project(self, project_dir, log):
        """A declared hook should run with the given cwd and environment."""
        runner = MagicMock()
        manifest = ManifestSchema.model_validate({"scripts": {"prebuild": "make"}})
        env = {"PATH": "/toolchain/bin:/usr/bin"}

        ran = run_hook_if_present(
            manifest, "prebuild", project_dir, env, log, runner=runner
        )

        assert ran is True
        runner.run.assert_called_once_with(
            ["sh", "-c", "make"], cwd=project_dir, env=env, log=log
        )

    def test_hook_output_goes_to_log(self, project_dir, log):
        """Hook output should be captured in the diagnostic log."""
        manifest = ManifestSchema.model_validate(
            {"scripts": {"postbuild": "echo hook-ran-$MARKER && pwd"}}
        )
        env = {"PATH": "/usr/bin:/bin", "MARKER": "42"}

        run_hook_if_present(manifest, "postbuild", project_dir, env, log)

        text = log.read_text()
        assert "hook-ran-42" in text
        assert str(project_dir.resolve()) in text

    def test_failing_hook_raises(self, project_dir, log):
        """A non-zero exit should raise HookError."""
        manifest = ManifestSchema.model_validate({"scripts": {"prebuild": "exit 3"}})

        with pytest.raises(HookError) as exc_info:
            run_hook_if_present(
                manifest, "prebuild", project_dir, {"PATH": "/usr/bin:/bin"}, log
            )

        assert exc_info.value.exit_code == 3
        assert exc_info.value.hook_name == "prebuild"
        assert exc_info.value.code == "hook_failed"

    def test_runner_error_wrapped(self, project_dir, log):
        """Runner failures should surface as HookError."""
        runner = MagicMock()
        runner.run.side_effect = CommandError("boom", exit_code=None)
        manifest = ManifestSchema.model_validate({"scripts": {"prebuild": "x"}})

        with pytest.raises(HookError):
            run_hook_if_present(
                manifest, "prebuild", project_dir, {}, log, runner=runner
            )
