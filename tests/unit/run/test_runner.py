"""Tests for the program runner and the test runner."""

import os
import stat
import sys
from unittest.mock import Mock

import pytest

from surtur.build.errors import ToolchainFailureError
from surtur.build.flag_builder import BuildMode, BuildTarget, ToolchainInvocation
from surtur.build.orchestrator import BuildOrchestrator, BuildResult
from surtur.config.settings import Settings
from surtur.run.runner import (
    ArtifactMissingError,
    ExitOutcome,
    NonZeroExitError,
    Runner,
    TestRunner,
    ToolchainLaunchFailedError,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses shell scripts as executables")


def make_script(path, body):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def result_for(artifact, target=BuildTarget.EXECUTABLE):
    invocation = ToolchainInvocation(argv=("gcc",), cwd=artifact.parent, outputs=(artifact,))
    return BuildResult(
        artifact_path=artifact,
        artifacts=[artifact],
        target=target,
        mode=BuildMode.DEBUG,
        invocation=invocation,
        build_time=0.1,
    )


class TestExitOutcome:
    """Tests for ExitOutcome."""

    def test_success(self):
        outcome = ExitOutcome(0, "out", "")
        assert outcome.success
        assert outcome.check() is outcome

    def test_check_raises_on_failure(self):
        outcome = ExitOutcome(3, "", "bad")

        with pytest.raises(NonZeroExitError) as exc_info:
            outcome.check()

        assert exc_info.value.returncode == 3
        assert exc_info.value.outcome is outcome


@posix_only
class TestProgramRunner:
    """Tests for Runner.run()."""

    def test_runs_executable_and_captures_output(self, tmp_path):
        exe = make_script(tmp_path / "build" / "hello", 'echo "Hello, World!"\n')

        outcome = Runner().run(result_for(exe))

        assert outcome.returncode == 0
        assert outcome.stdout == "Hello, World!\n"
        assert outcome.success

    def test_runs_in_build_directory(self, tmp_path):
        exe = make_script(tmp_path / "build" / "pwd", "pwd\n")

        outcome = Runner().run(result_for(exe))

        assert os.path.realpath(outcome.stdout.strip()) == os.path.realpath(tmp_path / "build")

    def test_passes_arguments(self, tmp_path):
        exe = make_script(tmp_path / "build" / "args", 'echo "$1|$2"\n')

        outcome = Runner().run(result_for(exe), args=["a b", "c"])

        assert outcome.stdout == "a b|c\n"

    def test_nonzero_exit_is_reported_not_raised(self, tmp_path):
        exe = make_script(tmp_path / "build" / "fail", "echo oops >&2\nexit 7\n")

        outcome = Runner().run(result_for(exe))

        assert outcome.returncode == 7
        assert outcome.stderr == "oops\n"
        with pytest.raises(NonZeroExitError):
            outcome.check()

    def test_missing_artifact(self, tmp_path):
        with pytest.raises(ArtifactMissingError):
            Runner().run(result_for(tmp_path / "build" / "gone"))

    def test_non_executable_target(self, tmp_path):
        obj = tmp_path / "build" / "main.o"

        with pytest.raises(ArtifactMissingError, match="not an executable"):
            Runner().run(result_for(obj, target=BuildTarget.OBJECT))

    def test_launch_failure(self, tmp_path):
        not_executable = tmp_path / "build" / "data"
        not_executable.parent.mkdir()
        not_executable.write_text("just text\n")

        with pytest.raises(ToolchainLaunchFailedError) as exc_info:
            Runner().run(result_for(not_executable))

        assert exc_info.value.path == not_executable


class TestTestRunner:
    """Tests for TestRunner with a mocked orchestrator."""

    @pytest.fixture
    def project(self, tmp_path):
        tests_dir = tmp_path / "tests"
        tests_dir.mkdir()
        for name in ("test_a.c", "test_b.c", "other.c", "notes.txt"):
            (tests_dir / name).write_text("\n")
        return tmp_path

    @pytest.fixture
    def orchestrator(self, project):
        orchestrator = Mock(spec=BuildOrchestrator)
        orchestrator.settings = Settings(project_dir=project, cache_dir=project / "cache")
        orchestrator.build_test.side_effect = lambda source, mode=BuildMode.DEBUG: result_for(
            project / "build" / ".tests" / source.stem
        )
        return orchestrator

    def test_discover(self, project, orchestrator):
        runner = TestRunner(orchestrator, runner=Mock(spec=Runner))

        assert [p.name for p in runner.discover()] == ["other.c", "test_a.c", "test_b.c"]
        assert [p.name for p in runner.discover("test_*")] == ["test_a.c", "test_b.c"]
        assert [p.name for p in runner.discover("other")] == ["other.c"]

    def test_discover_without_tests_dir(self, tmp_path):
        orchestrator = Mock(spec=BuildOrchestrator)
        orchestrator.settings = Settings(project_dir=tmp_path, cache_dir=tmp_path / "cache")

        assert TestRunner(orchestrator).discover() == []

    def test_run_tests_reports_each_test(self, orchestrator):
        program = Mock(spec=Runner)
        program.run.side_effect = lambda result: ExitOutcome(
            0 if result.artifact_path.name == "test_a" else 1
        )

        report = TestRunner(orchestrator, runner=program).run_tests("test_*")

        assert [(r.name, r.passed) for r in report.results] == [("test_a", True), ("test_b", False)]
        assert report.passed == 1
        assert report.failed == 1
        assert not report.success

    def test_build_failure_is_recorded_and_others_still_run(self, orchestrator, project):
        def build_test(source, mode=BuildMode.DEBUG):
            if source.stem == "test_a":
                raise ToolchainFailureError("test_a.c:1: error\n", 1)
            return result_for(project / "build" / ".tests" / source.stem)

        orchestrator.build_test.side_effect = build_test
        program = Mock(spec=Runner)
        program.run.return_value = ExitOutcome(0)

        report = TestRunner(orchestrator, runner=program).run_tests("test_*")

        assert report.results[0].error is not None
        assert not report.results[0].passed
        assert report.results[1].passed
        program.run.assert_called_once()

    def test_passes_mode_to_build(self, orchestrator):
        program = Mock(spec=Runner)
        program.run.return_value = ExitOutcome(0)

        TestRunner(orchestrator, runner=program).run_tests("test_a", mode=BuildMode.RELEASE)

        orchestrator.build_test.assert_called_once()
        assert orchestrator.build_test.call_args.kwargs["mode"] is BuildMode.RELEASE
