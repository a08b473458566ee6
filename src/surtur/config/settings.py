"""Tool settings gathered from the environment.

Project content lives in project.ini; the settings here describe how the
tool itself behaves on this machine (where the dependency cache lives,
which C driver to call, how many fetches run at once).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_COMPILER = "gcc"
DEFAULT_JOBS = 4
DEFAULT_FETCH_TIMEOUT = 60.0


class SettingsError(Exception):
    """Raised when an environment override has an invalid value."""

    pass


@dataclass(frozen=True)
class Settings:
    """Explicit per-invocation settings passed into every core operation."""

    project_dir: Path
    cache_dir: Path
    compiler: str = DEFAULT_COMPILER
    jobs: int = DEFAULT_JOBS
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT

    @property
    def source_dir(self) -> Path:
        return self.project_dir / "src"

    @property
    def build_dir(self) -> Path:
        return self.project_dir / "build"

    @property
    def tests_dir(self) -> Path:
        return self.project_dir / "tests"

    @property
    def test_build_dir(self) -> Path:
        """Output directory for test programs, hidden inside build/."""
        return self.build_dir / ".tests"

    @classmethod
    def from_env(
        cls, project_dir: Path, environ: Optional[Mapping[str, str]] = None
    ) -> "Settings":
        """Build settings for a project, honoring environment overrides.

        Args:
            project_dir: Project root directory
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Settings instance

        Raises:
            SettingsError: If a numeric override cannot be parsed
        """
        env = os.environ if environ is None else environ
        project_dir = Path(project_dir).resolve()

        cache_env = env.get("SURTUR_CACHE_DIR")
        if cache_env:
            cache_dir = Path(cache_env).resolve()
        else:
            cache_dir = project_dir / ".surtur" / "cache"

        try:
            jobs = int(env.get("SURTUR_JOBS", DEFAULT_JOBS))
            timeout = float(env.get("SURTUR_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT))
        except ValueError as e:
            raise SettingsError(f"Invalid numeric setting: {e}") from e

        if jobs < 1:
            raise SettingsError(f"SURTUR_JOBS must be at least 1, got {jobs}")
        if timeout <= 0:
            raise SettingsError(f"SURTUR_FETCH_TIMEOUT must be positive, got {timeout}")

        return cls(
            project_dir=project_dir,
            cache_dir=cache_dir,
            compiler=env.get("CC") or DEFAULT_COMPILER,
            jobs=jobs,
            fetch_timeout=timeout,
        )
