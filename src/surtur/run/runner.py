"""
Program execution for surtur projects.

This module launches executables produced by the build orchestrator and
reports how they exited. Readiness comes from the BuildResult returned by
a successful build; the runner never waits on the filesystem.
"""

import fnmatch
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..build.errors import BuildError
from ..build.flag_builder import BuildMode, BuildTarget
from ..build.orchestrator import BuildOrchestrator, BuildResult

logger = logging.getLogger(__name__)


@dataclass
class ExitOutcome:
    """Exit status and output of a program run."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def check(self) -> "ExitOutcome":
        """Return self, or raise NonZeroExitError if the program failed."""
        if not self.success:
            raise NonZeroExitError(self)
        return self


class RunError(Exception):
    """Base class for program execution errors."""

    pass


class ArtifactMissingError(RunError):
    """Raised when there is no executable to run."""

    def __init__(self, path: Path, reason: str = "executable not found"):
        super().__init__(f"Cannot run {path}: {reason}")
        self.path = path
        self.reason = reason


class ToolchainLaunchFailedError(RunError):
    """Raised when the operating system refuses to start the executable."""

    def __init__(self, path: Path, cause: BaseException):
        super().__init__(f"Failed to launch {path}: {cause}")
        self.path = path
        self.cause = cause


class NonZeroExitError(RunError):
    """Raised by ExitOutcome.check() when the program exited nonzero."""

    def __init__(self, outcome: ExitOutcome):
        super().__init__(f"Program exited with code {outcome.returncode}")
        self.returncode = outcome.returncode
        self.outcome = outcome


class Runner:
    """Runs a built executable."""

    def __init__(self, timeout: Optional[float] = None):
        """Initialize runner.

        Args:
            timeout: Optional limit in seconds for the program run
        """
        self.timeout = timeout

    def run(
        self,
        build_result: BuildResult,
        args: Sequence[str] = (),
        capture: bool = True,
    ) -> ExitOutcome:
        """
        Launch the executable from a successful build.

        The program runs with the build output directory as its working
        directory. A nonzero exit is reported in the outcome, not raised.

        Args:
            build_result: Result returned by BuildOrchestrator.build()
            args: Arguments passed to the program
            capture: Capture stdout/stderr (False lets them pass through)

        Returns:
            ExitOutcome with the program's exit code and output

        Raises:
            ArtifactMissingError: If the result is not an executable or it is gone
            ToolchainLaunchFailedError: If the executable cannot be started
        """
        artifact = Path(build_result.artifact_path)
        if build_result.target is not BuildTarget.EXECUTABLE:
            raise ArtifactMissingError(
                artifact, f"build produced {build_result.target.value} output, not an executable"
            )

        cmd = [str(artifact.resolve()), *args]
        logger.debug("Running %s in %s", " ".join(cmd), artifact.parent)

        try:
            result = subprocess.run(
                cmd,
                cwd=artifact.parent,
                capture_output=capture,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ArtifactMissingError(artifact) from e
        except (OSError, subprocess.SubprocessError) as e:
            raise ToolchainLaunchFailedError(artifact, e) from e

        return ExitOutcome(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )


@dataclass
class TestOutcome:
    """Result of building and running one test program."""

    __test__ = False

    name: str
    source: Path
    outcome: Optional[ExitOutcome] = None
    error: Optional[BuildError] = None

    @property
    def passed(self) -> bool:
        return self.error is None and self.outcome is not None and self.outcome.success


@dataclass
class TestReport:
    """Results of a test run."""

    __test__ = False

    results: List[TestOutcome] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return len(self.results) - self.passed

    @property
    def success(self) -> bool:
        return self.failed == 0


class TestRunner:
    """Builds and runs the test programs under tests/.

    Each tests/<name>.c is its own program with its own main(); it passes
    when it exits 0.
    """

    __test__ = False

    def __init__(self, orchestrator: BuildOrchestrator, runner: Optional[Runner] = None):
        self.orchestrator = orchestrator
        self.runner = runner or Runner()

    @property
    def tests_dir(self) -> Path:
        return self.orchestrator.settings.tests_dir

    def discover(self, pattern: str = "*") -> List[Path]:
        """Find test sources whose stem matches a glob pattern."""
        if not self.tests_dir.is_dir():
            return []
        return sorted(
            path
            for path in self.tests_dir.glob("*.c")
            if fnmatch.fnmatchcase(path.stem, pattern)
        )

    def run_tests(self, pattern: str = "*", mode: BuildMode = BuildMode.DEBUG) -> TestReport:
        """
        Build and run every matching test.

        A test that fails to compile is recorded as failed and the rest
        still run. Dependency errors abort the whole run.

        Args:
            pattern: Test name glob (default: all tests)
            mode: Build mode for the test programs

        Returns:
            TestReport with one entry per test
        """
        report = TestReport()
        for source in self.discover(pattern):
            name = source.stem
            try:
                build_result = self.orchestrator.build_test(source, mode=mode)
            except BuildError as e:
                logger.info("Test %s failed to build: %s", name, e)
                report.results.append(TestOutcome(name, source, error=e))
                continue

            outcome = self.runner.run(build_result)
            report.results.append(TestOutcome(name, source, outcome=outcome))

        return report
