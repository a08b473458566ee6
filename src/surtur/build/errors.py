"""Exceptions raised by the build orchestrator."""

from pathlib import Path
from typing import Optional

from .flag_builder import ToolchainInvocation


class BuildError(Exception):
    """Base class for build failures."""

    pass


class NoSourceFilesError(BuildError):
    """Raised when the source root holds no C sources."""

    def __init__(self, source_dir: Path):
        super().__init__(f"No source files found in {source_dir}")
        self.source_dir = source_dir


class ToolchainFailureError(BuildError):
    """Raised when the toolchain exits nonzero.

    The diagnostic is the toolchain's standard error, unmodified.
    """

    def __init__(
        self,
        diagnostic: str,
        returncode: int,
        invocation: Optional[ToolchainInvocation] = None,
    ):
        super().__init__(f"Toolchain exited with code {returncode}")
        self.diagnostic = diagnostic
        self.returncode = returncode
        self.invocation = invocation


class ToolchainNotFoundError(BuildError):
    """Raised when the C toolchain driver cannot be launched."""

    def __init__(self, compiler: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"C toolchain '{compiler}' could not be started"
            + (f": {cause}" if cause else "")
            + ". Make sure it is installed and on PATH, or set CC."
        )
        self.compiler = compiler
        self.cause = cause


class OutputPathUnwritableError(BuildError):
    """Raised when build outputs cannot be written where they must go."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot write build output {path}: {reason}")
        self.path = path
        self.reason = reason
