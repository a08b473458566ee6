"""Program execution for surtur projects."""

from .runner import (
    ArtifactMissingError,
    ExitOutcome,
    NonZeroExitError,
    Runner,
    RunError,
    TestOutcome,
    TestReport,
    TestRunner,
    ToolchainLaunchFailedError,
)

__all__ = [
    "ArtifactMissingError",
    "ExitOutcome",
    "NonZeroExitError",
    "Runner",
    "RunError",
    "TestOutcome",
    "TestReport",
    "TestRunner",
    "ToolchainLaunchFailedError",
]
