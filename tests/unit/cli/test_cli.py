"""Tests for the surtur command-line interface."""

import sys
from unittest.mock import MagicMock, patch

import pytest

from surtur import __version__
from surtur.build.errors import NoSourceFilesError, ToolchainFailureError
from surtur.build.flag_builder import BuildMode, BuildTarget, ToolchainInvocation
from surtur.build.orchestrator import BuildResult
from surtur.cli import main
from surtur.config.project_config import Dependency, load
from surtur.packages.cache import CacheEntry
from surtur.packages.errors import DependencyTimeoutError
from surtur.run.runner import ExitOutcome, TestOutcome, TestReport


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["surtur", *args])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code


@pytest.fixture
def project_dir(tmp_path):
    """Project directory with a minimal descriptor."""
    (tmp_path / "project.ini").write_text("[project]\nname = hello\n")
    return tmp_path


@pytest.fixture
def success_result(project_dir):
    exe = project_dir / "build" / "hello"
    return BuildResult(
        artifact_path=exe,
        artifacts=[exe],
        target=BuildTarget.EXECUTABLE,
        mode=BuildMode.DEBUG,
        invocation=ToolchainInvocation(argv=("gcc",), cwd=exe.parent, outputs=(exe,)),
        build_time=1.25,
    )


@pytest.fixture
def mock_orchestrator():
    with patch("surtur.cli.BuildOrchestrator") as mock_class:
        instance = MagicMock()
        mock_class.return_value = instance
        yield instance


class TestMain:
    """Tests for top-level argument handling."""

    def test_no_command_prints_help(self, monkeypatch, capsys):
        assert run_cli(monkeypatch) == 0
        assert "usage: surtur" in capsys.readouterr().out

    def test_version(self, monkeypatch, capsys):
        assert run_cli(monkeypatch, "--version") == 0
        assert f"surtur {__version__}" in capsys.readouterr().out

    @pytest.mark.parametrize(
        "command,suggestion",
        [("install", "add"), ("uninstall", "remove"), ("compile", "build"), ("execute", "run"), ("create", "new")],
    )
    def test_suggests_equivalent_command(self, monkeypatch, capsys, command, suggestion):
        assert run_cli(monkeypatch, command) == 2
        assert f"Did you mean 'surtur {suggestion}'" in capsys.readouterr().out

    def test_unknown_command_without_suggestion(self, monkeypatch, capsys):
        assert run_cli(monkeypatch, "frobnicate") == 2
        assert "invalid choice" in capsys.readouterr().err

    def test_project_dir_must_exist(self, monkeypatch, tmp_path, capsys):
        assert run_cli(monkeypatch, "-C", str(tmp_path / "missing"), "build") == 2
        assert "Path does not exist" in capsys.readouterr().out


class TestBuildCommand:
    """Tests for 'surtur build'."""

    def test_build_success(self, monkeypatch, capsys, project_dir, mock_orchestrator, success_result):
        mock_orchestrator.build.return_value = success_result

        assert run_cli(monkeypatch, "-C", str(project_dir), "build") == 0

        out = capsys.readouterr().out
        assert "Build successful!" in out
        assert str(success_result.artifact_path) in out
        assert "Build time: 1.25s" in out
        kwargs = mock_orchestrator.build.call_args.kwargs
        assert kwargs == {"target": BuildTarget.EXECUTABLE, "mode": BuildMode.DEBUG}

    @pytest.mark.parametrize(
        "flags,target,mode",
        [
            (["--release"], BuildTarget.EXECUTABLE, BuildMode.RELEASE),
            (["-r", "--obj"], BuildTarget.OBJECT, BuildMode.RELEASE),
            (["--debug", "--asm"], BuildTarget.ASSEMBLY, BuildMode.DEBUG),
        ],
    )
    def test_build_flags(self, monkeypatch, project_dir, mock_orchestrator, success_result, flags, target, mode):
        mock_orchestrator.build.return_value = success_result

        assert run_cli(monkeypatch, "-C", str(project_dir), "build", *flags) == 0

        kwargs = mock_orchestrator.build.call_args.kwargs
        assert kwargs["target"] is target
        assert kwargs["mode"] is mode

    def test_release_and_debug_are_exclusive(self, monkeypatch, project_dir, mock_orchestrator, capsys):
        assert run_cli(monkeypatch, "-C", str(project_dir), "build", "--release", "--debug") == 2
        assert "not allowed with" in capsys.readouterr().err
        mock_orchestrator.build.assert_not_called()

    def test_verbose_after_command(self, monkeypatch, project_dir, success_result):
        with patch("surtur.cli.BuildOrchestrator") as mock_class:
            mock_class.return_value.build.return_value = success_result

            assert run_cli(monkeypatch, "-C", str(project_dir), "build", "-v") == 0

        assert mock_class.call_args.kwargs["verbose"] is True

    def test_toolchain_failure_is_printed_verbatim(self, monkeypatch, capsys, project_dir, mock_orchestrator):
        diagnostic = "src/main.c:1:27: error: expected ';' before '}' token\n"
        mock_orchestrator.build.side_effect = ToolchainFailureError(diagnostic, 1)

        assert run_cli(monkeypatch, "-C", str(project_dir), "build") == 1

        captured = capsys.readouterr()
        assert "Build failed!" in captured.out
        assert diagnostic in captured.err

    def test_no_sources(self, monkeypatch, capsys, project_dir, mock_orchestrator):
        mock_orchestrator.build.side_effect = NoSourceFilesError(project_dir / "src")

        assert run_cli(monkeypatch, "-C", str(project_dir), "build") == 1
        assert "No source files found" in capsys.readouterr().out

    def test_dependency_failure(self, monkeypatch, capsys, project_dir, mock_orchestrator):
        mock_orchestrator.build.side_effect = DependencyTimeoutError("foo", 60)

        assert run_cli(monkeypatch, "-C", str(project_dir), "build") == 1
        assert "Dependency resolution failed" in capsys.readouterr().out

    def test_missing_descriptor(self, monkeypatch, capsys, tmp_path):
        assert run_cli(monkeypatch, "-C", str(tmp_path), "build") == 1

        out = capsys.readouterr().out
        assert "Configuration file not found" in out
        assert "surtur init" in out

    def test_keyboard_interrupt(self, monkeypatch, project_dir, mock_orchestrator):
        mock_orchestrator.build.side_effect = KeyboardInterrupt()

        assert run_cli(monkeypatch, "-C", str(project_dir), "build") == 130


class TestRunCommand:
    """Tests for 'surtur run'."""

    def test_exit_code_is_the_programs(self, monkeypatch, project_dir, mock_orchestrator, success_result):
        mock_orchestrator.build.return_value = success_result
        with patch("surtur.cli.Runner") as runner_class:
            runner_class.return_value.run.return_value = ExitOutcome(5)

            assert run_cli(monkeypatch, "-C", str(project_dir), "run", "--release", "--", "a", "-x") == 5

        runner_class.return_value.run.assert_called_once_with(success_result, ["a", "-x"], capture=False)
        assert mock_orchestrator.build.call_args.kwargs["mode"] is BuildMode.RELEASE

    def test_run_without_separator(self, monkeypatch, project_dir, mock_orchestrator, success_result):
        mock_orchestrator.build.return_value = success_result
        with patch("surtur.cli.Runner") as runner_class:
            runner_class.return_value.run.return_value = ExitOutcome(0)

            assert run_cli(monkeypatch, "-C", str(project_dir), "run") == 0

        runner_class.return_value.run.assert_called_once_with(success_result, [], capture=False)

    def test_build_failure_does_not_run(self, monkeypatch, project_dir, mock_orchestrator):
        mock_orchestrator.build.side_effect = ToolchainFailureError("error\n", 1)
        with patch("surtur.cli.Runner") as runner_class:
            assert run_cli(monkeypatch, "-C", str(project_dir), "run") == 1

        runner_class.return_value.run.assert_not_called()


class TestTestCommand:
    """Tests for 'surtur test'."""

    def run_with_report(self, monkeypatch, project_dir, report, *args):
        with patch("surtur.cli.BuildOrchestrator"), patch("surtur.cli.TestRunner") as runner_class:
            runner_class.return_value.run_tests.return_value = report
            code = run_cli(monkeypatch, "-C", str(project_dir), "test", *args)
        return code, runner_class.return_value.run_tests

    def test_all_pass(self, monkeypatch, capsys, project_dir):
        report = TestReport([TestOutcome("t1", project_dir / "tests" / "t1.c", outcome=ExitOutcome(0))])

        code, run_tests = self.run_with_report(monkeypatch, project_dir, report)

        assert code == 0
        run_tests.assert_called_once_with("*", mode=BuildMode.DEBUG)
        out = capsys.readouterr().out
        assert "PASS  t1" in out
        assert "1 tests passed" in out

    def test_failure(self, monkeypatch, capsys, project_dir):
        report = TestReport(
            [TestOutcome("t2", project_dir / "tests" / "t2.c", outcome=ExitOutcome(1, "assert failed\n", ""))]
        )

        code, run_tests = self.run_with_report(monkeypatch, project_dir, report, "t2")

        assert code == 1
        run_tests.assert_called_once_with("t2", mode=BuildMode.DEBUG)
        out = capsys.readouterr().out
        assert "FAIL  t2 (exit code 1)" in out
        assert "assert failed" in out

    def test_named_test_not_found(self, monkeypatch, capsys, project_dir):
        code, _ = self.run_with_report(monkeypatch, project_dir, TestReport(), "missing")

        assert code == 1
        assert "No tests matching 'missing'" in capsys.readouterr().out

    def test_no_tests_at_all(self, monkeypatch, project_dir):
        code, _ = self.run_with_report(monkeypatch, project_dir, TestReport())
        assert code == 0


class TestDependencyCommands:
    """Tests for 'surtur add', 'remove' and 'deps'."""

    def test_add(self, monkeypatch, capsys, project_dir):
        code = run_cli(
            monkeypatch, "-C", str(project_dir), "add", "cjson", "https://github.com/DaveGamble/cJSON",
            "--version", "v1.7.18",
        )

        assert code == 0
        assert "Added dependency 'cjson'" in capsys.readouterr().out
        assert load(project_dir).get_dependency("cjson") == Dependency(
            "cjson", "https://github.com/DaveGamble/cJSON", "v1.7.18"
        )

    def test_add_replaces(self, monkeypatch, capsys, project_dir):
        run_cli(monkeypatch, "-C", str(project_dir), "add", "foo", "https://example.com/a.tar")
        capsys.readouterr()

        assert run_cli(monkeypatch, "-C", str(project_dir), "add", "foo", "https://example.com/b.tar") == 0
        assert "Updated dependency 'foo'" in capsys.readouterr().out
        assert load(project_dir).get_dependency("foo").url == "https://example.com/b.tar"

    def test_add_invalid_identifier(self, monkeypatch, capsys, project_dir):
        assert run_cli(monkeypatch, "-C", str(project_dir), "add", "a/b", "https://example.com/a.tar") == 1
        assert "Invalid dependency" in capsys.readouterr().out

    def test_remove(self, monkeypatch, capsys, project_dir, tmp_path):
        monkeypatch.setenv("SURTUR_CACHE_DIR", str(tmp_path / "cache"))
        (tmp_path / "cache" / "foo").mkdir(parents=True)
        run_cli(monkeypatch, "-C", str(project_dir), "add", "foo", "https://example.com/a.tar")

        assert run_cli(monkeypatch, "-C", str(project_dir), "remove", "foo") == 0

        assert load(project_dir).get_dependency("foo") is None
        assert not (tmp_path / "cache" / "foo").exists()
        assert "Removed dependency 'foo'" in capsys.readouterr().out

    def test_remove_unknown(self, monkeypatch, capsys, project_dir):
        assert run_cli(monkeypatch, "-C", str(project_dir), "remove", "nope") == 1
        assert "Unknown dependency" in capsys.readouterr().out

    def test_deps(self, monkeypatch, capsys, project_dir, tmp_path):
        run_cli(monkeypatch, "-C", str(project_dir), "add", "foo", "https://example.com/a.tar")
        entry = CacheEntry("foo", tmp_path / "cache" / "foo", "https://example.com/a.tar")

        with patch("surtur.cli.DependencyResolver") as resolver_class:
            resolver_class.from_settings.return_value.resolve.return_value = {"foo": entry}
            assert run_cli(monkeypatch, "-C", str(project_dir), "deps") == 0

        out = capsys.readouterr().out
        assert "1 dependencies ready" in out
        assert str(entry.path) in out

    def test_deps_none_declared(self, monkeypatch, capsys, project_dir):
        assert run_cli(monkeypatch, "-C", str(project_dir), "deps") == 0
        assert "No dependencies declared." in capsys.readouterr().out


class TestProjectCommands:
    """Tests for 'surtur new' and 'init'."""

    @pytest.fixture(autouse=True)
    def no_git(self):
        with patch("surtur.creator.shutil.which", return_value=None):
            yield

    def test_new(self, monkeypatch, capsys, tmp_path):
        assert run_cli(monkeypatch, "-C", str(tmp_path), "new", "hello") == 0

        assert (tmp_path / "hello" / "src" / "main.c").is_file()
        assert "Created project 'hello'" in capsys.readouterr().out

    def test_new_existing(self, monkeypatch, capsys, tmp_path):
        (tmp_path / "hello").mkdir()

        assert run_cli(monkeypatch, "-C", str(tmp_path), "new", "hello") == 1
        assert "Could not create project" in capsys.readouterr().out

    def test_init(self, monkeypatch, tmp_path):
        project = tmp_path / "demo"
        project.mkdir()

        assert run_cli(monkeypatch, "-C", str(project), "init") == 0
        assert load(project).name == "demo"
