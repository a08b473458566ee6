"""Toolchain Executor.

This module runs an assembled toolchain command as a synchronous child
process and captures what it printed.

Design:
    - Wraps subprocess.run; the call blocks until the toolchain exits
    - Never interprets diagnostics; stderr is returned verbatim
    - A missing driver is reported separately from a failing compile
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional

from .errors import ToolchainFailureError, ToolchainNotFoundError
from .flag_builder import ToolchainInvocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolchainResult:
    """Exit status and captured output of one toolchain run."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


class CompilationExecutor:
    """Executes toolchain commands.

    Tests substitute a Mock with the same run() signature to observe
    which commands would have been executed.
    """

    def __init__(self, timeout: Optional[float] = None):
        """Initialize compilation executor.

        Args:
            timeout: Optional limit in seconds for a single toolchain run
        """
        self.timeout = timeout

    def run(self, invocation: ToolchainInvocation) -> ToolchainResult:
        """
        Run a toolchain command to completion.

        Args:
            invocation: Command, working directory, and expected outputs

        Returns:
            ToolchainResult with exit code and captured output

        Raises:
            ToolchainNotFoundError: If the driver cannot be launched
        """
        logger.debug("Running toolchain in %s: %s", invocation.cwd, invocation)

        try:
            result = subprocess.run(
                list(invocation.argv),
                cwd=invocation.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ToolchainNotFoundError(invocation.argv[0], e) from e
        except subprocess.TimeoutExpired as e:
            raise ToolchainFailureError(
                f"Toolchain timed out after {self.timeout:g}s", -1, invocation
            ) from e

        return ToolchainResult(result.returncode, result.stdout, result.stderr)
