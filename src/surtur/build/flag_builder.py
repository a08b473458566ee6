"""Toolchain Command Builder.

This module assembles the C toolchain command line for one build request.

Design:
    - BuildTarget decides where the toolchain stops (compile, assemble, link)
    - BuildMode decides optimization and debug symbols, independent of target
    - Exactly one mode's flags are ever emitted
    - Commands are plain argv lists; nothing is passed through a shell
"""

import platform
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from ..config.project_config import CStandard

# Flags that stop the driver before the link step
NO_LINK_FLAGS = ("-c", "-S", "-E")


class BuildTarget(Enum):
    """Requested artifact kind."""

    EXECUTABLE = "executable"
    ASSEMBLY = "assembly"
    OBJECT = "object"

    @property
    def links(self) -> bool:
        return self is BuildTarget.EXECUTABLE

    @property
    def output_suffix(self) -> str:
        if self is BuildTarget.OBJECT:
            return ".o"
        if self is BuildTarget.ASSEMBLY:
            return ".s"
        return executable_suffix()


class BuildMode(Enum):
    """Optimization profile, orthogonal to BuildTarget."""

    DEBUG = "debug"
    RELEASE = "release"


def executable_suffix() -> str:
    """Platform executable suffix ('.exe' on Windows, empty elsewhere)."""
    return ".exe" if platform.system() == "Windows" else ""


@dataclass(frozen=True)
class ToolchainInvocation:
    """A fully assembled toolchain command."""

    argv: Tuple[str, ...]
    cwd: Path
    outputs: Tuple[Path, ...]

    @property
    def links(self) -> bool:
        """True when the command runs the link step."""
        return not any(flag in self.argv for flag in NO_LINK_FLAGS)

    def __str__(self) -> str:
        return " ".join(self.argv)


class FlagBuilder:
    """Builds toolchain commands for a standard/mode/target combination.

    Example:
        >>> builder = FlagBuilder("gcc", CStandard.C17, BuildMode.RELEASE, BuildTarget.OBJECT)
        >>> builder.compile_flags()
        ['-std=c17', '-O3', '-DNDEBUG', '-c']
    """

    DEBUG_FLAGS = ["-O0", "-g"]
    RELEASE_FLAGS = ["-O3", "-DNDEBUG"]
    STRIP_FLAG = "-s"

    def __init__(
        self,
        compiler: str,
        standard: CStandard,
        mode: BuildMode,
        target: BuildTarget,
    ):
        """Initialize flag builder.

        Args:
            compiler: Toolchain driver (e.g. "gcc", "clang", "/usr/bin/cc")
            standard: C language standard
            mode: Debug or Release
            target: Executable, Assembly, or Object
        """
        self.compiler = compiler
        self.standard = standard
        self.mode = mode
        self.target = target

    def mode_flags(self) -> List[str]:
        if self.mode is BuildMode.RELEASE:
            return list(self.RELEASE_FLAGS)
        return list(self.DEBUG_FLAGS)

    def target_flags(self) -> List[str]:
        if self.target is BuildTarget.OBJECT:
            return ["-c"]
        if self.target is BuildTarget.ASSEMBLY:
            return ["-S"]
        return []

    def compile_flags(self) -> List[str]:
        """Standard, mode, and target flags in command-line order."""
        return [self.standard.flag] + self.mode_flags() + self.target_flags()

    def link_flags(self, lib_paths: Iterable[Path]) -> List[str]:
        """Flags only meaningful when the link step runs."""
        if not self.target.links:
            return []
        flags = [f"-L{path}" for path in lib_paths]
        if self.mode is BuildMode.RELEASE:
            flags.append(self.STRIP_FLAG)
        return flags

    @staticmethod
    def include_flags(include_paths: Iterable[Path]) -> List[str]:
        return [f"-I{path}" for path in include_paths]

    def output_paths(self, sources: Sequence[Path], build_dir: Path, artifact_name: str) -> List[Path]:
        """Files the toolchain will write for this request.

        Executables produce one file named after the project; objects and
        assembly produce one file per translation unit, named after its stem.
        """
        if self.target.links:
            return [build_dir / f"{artifact_name}{self.target.output_suffix}"]
        return [build_dir / f"{source.stem}{self.target.output_suffix}" for source in sources]

    def build_invocation(
        self,
        sources: Sequence[Path],
        build_dir: Path,
        artifact_name: str,
        include_paths: Iterable[Path] = (),
        lib_paths: Iterable[Path] = (),
    ) -> ToolchainInvocation:
        """
        Assemble the complete toolchain command.

        Args:
            sources: Ordered translation units
            build_dir: Build output directory (also the working directory)
            artifact_name: Base name for the linked executable
            include_paths: Dependency include directories
            lib_paths: Dependency library directories

        Returns:
            ToolchainInvocation ready to execute
        """
        build_dir = Path(build_dir).resolve()
        outputs = self.output_paths(sources, build_dir, artifact_name)

        argv = [self.compiler]
        argv.extend(self.compile_flags())
        argv.extend(self.include_flags(include_paths))
        argv.extend(str(Path(source).resolve()) for source in sources)
        argv.extend(self.link_flags(lib_paths))
        if self.target.links:
            argv.extend(["-o", str(outputs[0])])

        return ToolchainInvocation(argv=tuple(argv), cwd=build_dir, outputs=tuple(outputs))
