"""CLI utility functions for surtur.

This module provides common utilities used across CLI commands including:
- Error handling and formatting
- Suggestions for commands borrowed from other tools
- Project path validation
- Logging setup
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from surtur.build.errors import BuildError, ToolchainFailureError
from surtur.config import ConfigError, ConfigNotFoundError, SettingsError
from surtur.creator import ProjectCreateError
from surtur.packages.errors import DependencyError
from surtur.run import RunError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for a CLI invocation.

    Args:
        verbose: DEBUG level when True, WARNING otherwise
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )


class CommandSuggester:
    """Maps command names from other tools to their surtur equivalent."""

    TIPS: Dict[str, str] = {
        "uninstall": "remove",
        "install": "add",
        "compile": "build",
        "execute": "run",
        "create": "new",
    }

    @staticmethod
    def suggest(command: str) -> Optional[str]:
        """Return the surtur command to use instead of `command`, if any."""
        return CommandSuggester.TIPS.get(command.lower())

    @staticmethod
    def find_command(argv: List[str]) -> Optional[str]:
        """Return the first positional token (the command) in argv.

        Skips global options and the value of -C/--project-dir.
        """
        skip_next = False
        for token in argv:
            if skip_next:
                skip_next = False
                continue
            if token in ("-C", "--project-dir"):
                skip_next = True
                continue
            if token.startswith("-"):
                continue
            return token
        return None


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_config_error(error: Exception) -> None:
        """Handle project descriptor and settings errors."""
        ErrorFormatter.print_error("Error: Invalid configuration", str(error))
        if isinstance(error, ConfigNotFoundError):
            print("Run 'surtur init' to create a project here, or pass -C <project dir>.")
        sys.exit(1)

    @staticmethod
    def handle_dependency_error(error: DependencyError) -> None:
        ErrorFormatter.print_error("Error: Dependency resolution failed", str(error))
        sys.exit(1)

    @staticmethod
    def handle_build_error(error: BuildError) -> None:
        """Handle build errors.

        Toolchain diagnostics are written to stderr exactly as the
        toolchain produced them.
        """
        ErrorFormatter.print_error("Build failed!", str(error))
        if isinstance(error, ToolchainFailureError) and error.diagnostic:
            sys.stdout.flush()
            sys.stderr.write(error.diagnostic)
            sys.stderr.flush()
        sys.exit(1)

    @staticmethod
    def handle_run_error(error: RunError) -> None:
        ErrorFormatter.print_error("Error: Could not run program", str(error))
        sys.exit(1)

    @staticmethod
    def handle_create_error(error: ProjectCreateError) -> None:
        ErrorFormatter.print_error("Error: Could not create project", str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)

    @staticmethod
    def handle_error(error: Exception, verbose: bool = False) -> None:
        """Report any error raised by a command and exit with code 1."""
        if isinstance(error, (ConfigError, SettingsError)):
            ErrorFormatter.handle_config_error(error)
        elif isinstance(error, DependencyError):
            ErrorFormatter.handle_dependency_error(error)
        elif isinstance(error, BuildError):
            ErrorFormatter.handle_build_error(error)
        elif isinstance(error, RunError):
            ErrorFormatter.handle_run_error(error)
        elif isinstance(error, ProjectCreateError):
            ErrorFormatter.handle_create_error(error)
        elif isinstance(error, PermissionError):
            ErrorFormatter.print_error("Error: Permission denied", str(error))
            sys.exit(1)
        else:
            ErrorFormatter.handle_unexpected_error(error, verbose)


class PathValidator:
    """Validates project paths and directories."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Validate that project directory exists and is a directory.

        Args:
            project_dir: Path to validate

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not project_dir.exists():
            print(f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_dir}{ErrorFormatter.RESET}")
            sys.exit(2)
        if not project_dir.is_dir():
            print(f"{ErrorFormatter.RED}✗ Error: Path is not a directory: {project_dir}{ErrorFormatter.RESET}")
            sys.exit(2)
