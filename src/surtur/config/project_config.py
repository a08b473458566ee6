"""
project.ini configuration loader.

This module parses the project descriptor that sits at the root of every
surtur project and turns it into an immutable ProjectConfig value.

Example project.ini:
    [project]
    name = hello
    version = 0.1

    [versions]
    c = c17

    [dependencies]
    foo = https://example.com/foo.tar

    [dependency:bar]
    url = https://github.com/acme/bar.git
    version = v1.2.0
"""

import configparser
import io
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Optional
from urllib.parse import quote

DESCRIPTOR_NAME = "project.ini"

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


class ConfigError(Exception):
    """Base class for project descriptor errors."""

    def __init__(self, path: Path, message: str):
        super().__init__(message)
        self.path = path


class ConfigNotFoundError(ConfigError):
    """Raised when the project descriptor does not exist."""

    def __init__(self, path: Path):
        super().__init__(path, f"Configuration file not found: {path}")


class ConfigMalformedError(ConfigError):
    """Raised when the descriptor exists but cannot be understood."""

    def __init__(self, path: Path, reason: str):
        super().__init__(path, f"Malformed configuration in {path}: {reason}")
        self.reason = reason


class CStandard(Enum):
    """Supported C language standards, oldest first."""

    C89 = "c89"
    C99 = "c99"
    C11 = "c11"
    C17 = "c17"

    @classmethod
    def latest(cls) -> "CStandard":
        return list(cls)[-1]

    @classmethod
    def parse(cls, value: str) -> "CStandard":
        """Parse a standard name such as 'c17' or 'C99'.

        Raises:
            ValueError: If the standard is not supported
        """
        normalized = value.strip().lower()
        for standard in cls:
            if standard.value == normalized:
                return standard
        supported = ", ".join(s.value for s in cls)
        raise ValueError(f"unsupported C standard '{value}' (supported: {supported})")

    @property
    def flag(self) -> str:
        """Toolchain flag selecting this standard."""
        return f"-std={self.value}"


@dataclass(frozen=True)
class Dependency:
    """An external dependency declared in project.ini.

    Two dependencies are the same dependency when their identifiers match.
    """

    identifier: str
    url: str
    version: Optional[str] = None

    def __post_init__(self):
        if not _SAFE_NAME.match(self.identifier) or self.identifier in (".", ".."):
            raise ValueError(f"invalid dependency identifier '{self.identifier}'")
        if not self.url:
            raise ValueError(f"dependency '{self.identifier}' has no source url")

    @property
    def cache_key(self) -> str:
        """Name of the cache subdirectory holding this dependency.

        The version is percent-encoded so refs such as "release/1.0" stay a
        single path component inside the cache root.
        """
        if self.version:
            return f"{self.identifier}@{quote(self.version, safe='')}"
        return self.identifier


@dataclass(frozen=True)
class ProjectConfig:
    """Typed, immutable view of a project descriptor."""

    name: str
    standard: CStandard = field(default_factory=CStandard.latest)
    version: str = "0.1"
    dependencies: FrozenSet[Dependency] = frozenset()

    def __post_init__(self):
        if not self.name:
            raise ValueError("project name must not be empty")
        if not _SAFE_NAME.match(self.name) or self.name.startswith("."):
            raise ValueError(f"project name '{self.name}' is not filesystem-safe")
        seen: Dict[str, Dependency] = {}
        for dep in self.dependencies:
            if dep.identifier in seen:
                raise ValueError(f"dependency '{dep.identifier}' is declared more than once")
            seen[dep.identifier] = dep

    def get_dependency(self, identifier: str) -> Optional[Dependency]:
        for dep in self.dependencies:
            if dep.identifier == identifier:
                return dep
        return None

    def with_dependency(self, dependency: Dependency) -> "ProjectConfig":
        """Return a copy with the dependency added or replaced."""
        others = {d for d in self.dependencies if d.identifier != dependency.identifier}
        return replace(self, dependencies=frozenset(others | {dependency}))

    def without_dependency(self, identifier: str) -> "ProjectConfig":
        """Return a copy without the named dependency."""
        return replace(
            self,
            dependencies=frozenset(d for d in self.dependencies if d.identifier != identifier),
        )

    def dump(self) -> str:
        """Serialize to project.ini text."""
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # type: ignore[assignment]
        parser["project"] = {"name": self.name, "version": self.version}
        parser["versions"] = {"c": self.standard.value}
        parser["dependencies"] = {}
        for dep in sorted(self.dependencies, key=lambda d: d.identifier):
            if dep.version:
                parser[f"dependency:{dep.identifier}"] = {"url": dep.url, "version": dep.version}
            else:
                parser["dependencies"][dep.identifier] = dep.url

        buffer = io.StringIO()
        parser.write(buffer)
        return buffer.getvalue()

    def save(self, path: Path) -> Path:
        """Write the descriptor to path (a file or a project directory)."""
        path = Path(path)
        if path.is_dir():
            path = path / DESCRIPTOR_NAME
        path.write_text(self.dump(), encoding="utf-8")
        return path


def load(path: Path) -> ProjectConfig:
    """
    Load a project descriptor.

    Args:
        path: Path to project.ini, or to the project directory containing it

    Returns:
        ProjectConfig parsed from the descriptor

    Raises:
        ConfigNotFoundError: If the descriptor does not exist
        ConfigMalformedError: If it cannot be parsed or lacks required fields
    """
    path = Path(path)
    if path.is_dir():
        path = path / DESCRIPTOR_NAME

    if not path.is_file():
        raise ConfigNotFoundError(path)

    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # type: ignore[assignment]
    try:
        parser.read(path, encoding="utf-8")
    except (configparser.Error, UnicodeDecodeError) as e:
        raise ConfigMalformedError(path, str(e)) from e

    if "project" not in parser:
        raise ConfigMalformedError(path, "missing [project] section")

    project = parser["project"]
    name = project.get("name", "").strip().strip('"')
    if not name:
        raise ConfigMalformedError(path, "missing required field 'name' in [project]")

    version = project.get("version", "").strip()
    standard = CStandard.latest()
    if "versions" in parser:
        versions = parser["versions"]
        if not version:
            version = versions.get("proj", "").strip()
        if versions.get("c"):
            try:
                standard = CStandard.parse(versions["c"])
            except ValueError as e:
                raise ConfigMalformedError(path, str(e)) from e

    dependencies = _parse_dependencies(parser, path)

    try:
        return ProjectConfig(
            name=name,
            standard=standard,
            version=version or "0.1",
            dependencies=frozenset(dependencies.values()),
        )
    except ValueError as e:
        raise ConfigMalformedError(path, str(e)) from e


def _parse_dependencies(
    parser: configparser.ConfigParser, path: Path
) -> Dict[str, Dependency]:
    """Collect dependencies from both the short and long forms."""
    found: Dict[str, Dependency] = {}

    def add(dep: Dependency) -> None:
        existing = found.get(dep.identifier)
        if existing is not None and existing != dep:
            raise ConfigMalformedError(
                path,
                f"dependency '{dep.identifier}' is declared twice with different sources: "
                + f"{existing.url} and {dep.url}",
            )
        found[dep.identifier] = dep

    try:
        if "dependencies" in parser:
            for identifier, spec in parser["dependencies"].items():
                url, _, version = spec.partition(" @ ")
                add(Dependency(identifier, url.strip(), version.strip() or None))

        for section in parser.sections():
            if not section.startswith("dependency:"):
                continue
            identifier = section.split(":", 1)[1].strip()
            values = parser[section]
            if not values.get("url"):
                raise ConfigMalformedError(
                    path, f"[{section}] is missing required field 'url'"
                )
            add(Dependency(identifier, values["url"].strip(), values.get("version", "").strip() or None))
    except ValueError as e:
        raise ConfigMalformedError(path, str(e)) from e

    return found
