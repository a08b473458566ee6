"""
Build orchestration for surtur projects.

This module coordinates one build request from source discovery to a
finished artifact. It integrates all build system components:
- Source scanning (project src/ tree)
- Dependency resolution (cached include and library paths)
- Command assembly (standard, mode, and target flags)
- Toolchain execution (one synchronous subprocess)

Every call recompiles the full source set; nothing is kept between calls
except what the dependency cache holds.
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..config.project_config import CStandard, ProjectConfig
from ..config.settings import Settings
from ..packages.resolver import DependencyResolver, include_paths, lib_paths
from .compilation_executor import CompilationExecutor
from .errors import NoSourceFilesError, OutputPathUnwritableError, ToolchainFailureError
from .flag_builder import BuildMode, BuildTarget, FlagBuilder, ToolchainInvocation
from .source_scanner import SourceCollection, SourceScanner

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a successful build."""

    artifact_path: Path
    artifacts: List[Path]
    target: BuildTarget
    mode: BuildMode
    invocation: ToolchainInvocation
    build_time: float
    warnings: str = ""


class BuildOrchestrator:
    """
    Orchestrates a build for one project.

    This class coordinates all phases of the build:
    1. Scan source files under the source root
    2. Resolve dependencies into the cache
    3. Assemble the toolchain command
    4. Run the toolchain and report the artifact or the failure

    Example usage:
        orchestrator = BuildOrchestrator(config, Settings.from_env(project_dir))
        result = orchestrator.build(BuildTarget.EXECUTABLE, mode=BuildMode.RELEASE)
        print(f"Executable: {result.artifact_path}")
    """

    def __init__(
        self,
        config: ProjectConfig,
        settings: Settings,
        resolver: Optional[DependencyResolver] = None,
        executor: Optional[CompilationExecutor] = None,
        verbose: bool = False,
    ):
        """
        Initialize build orchestrator.

        Args:
            config: Loaded project configuration
            settings: Tool settings (paths, compiler, fetch limits)
            resolver: Dependency resolver (created from settings if None)
            executor: Toolchain executor (a subprocess executor if None)
            verbose: Print build phases
        """
        self.config = config
        self.settings = settings
        self.resolver = resolver or DependencyResolver.from_settings(settings, show_progress=verbose)
        self.executor = executor or CompilationExecutor()
        self.verbose = verbose
        self.scanner = SourceScanner(settings.source_dir)

    def build(
        self,
        target: BuildTarget = BuildTarget.EXECUTABLE,
        standard: Optional[CStandard] = None,
        mode: BuildMode = BuildMode.DEBUG,
    ) -> BuildResult:
        """
        Build the project.

        Args:
            target: Executable, Assembly, or Object
            standard: C standard (defaults to the project's configured one)
            mode: Debug or Release

        Returns:
            BuildResult describing the produced artifact

        Raises:
            NoSourceFilesError: If src/ holds no .c files
            DependencyError: If dependencies cannot be resolved
            OutputPathUnwritableError: If the build directory cannot be used
            ToolchainNotFoundError: If the toolchain cannot be launched
            ToolchainFailureError: If the toolchain reports an error
        """
        if self.verbose:
            print("[1/4] Scanning source files...")

        sources = self.scanner.scan()
        if not sources:
            raise NoSourceFilesError(self.settings.source_dir)

        if self.verbose:
            print(f"      Found {len(sources.sources)} source files")

        return self._build_sources(
            sources.sources,
            target=target,
            standard=standard or self.config.standard,
            mode=mode,
            build_dir=self.settings.build_dir,
            artifact_name=self.config.name,
        )

    def build_test(
        self,
        test_source: Path,
        standard: Optional[CStandard] = None,
        mode: BuildMode = BuildMode.DEBUG,
    ) -> BuildResult:
        """
        Build one test program.

        The test file is compiled together with every project source except
        src/main.c, so tests can call into the project's code and provide
        their own main().

        Args:
            test_source: Path to a .c file under tests/
            standard: C standard (defaults to the project's configured one)
            mode: Debug or Release

        Returns:
            BuildResult for the test executable under build/.tests/
        """
        test_source = Path(test_source)
        if not test_source.is_file():
            raise NoSourceFilesError(test_source)

        project_sources = self.scanner.scan().without(self.settings.source_dir / "main.c")
        sources = SourceCollection(sources=project_sources.sources + [test_source])

        return self._build_sources(
            sources.sources,
            target=BuildTarget.EXECUTABLE,
            standard=standard or self.config.standard,
            mode=mode,
            build_dir=self.settings.test_build_dir,
            artifact_name=test_source.stem,
        )

    def _build_sources(
        self,
        sources: Sequence[Path],
        target: BuildTarget,
        standard: CStandard,
        mode: BuildMode,
        build_dir: Path,
        artifact_name: str,
    ) -> BuildResult:
        start_time = time.time()

        # Phase 2: Dependencies
        if self.verbose:
            print("[2/4] Resolving dependencies...")

        include_dirs, dep_libs = self._resolve_dependencies()
        project_include = self.settings.project_dir / "include"
        if project_include.is_dir():
            include_dirs.insert(0, project_include)

        # Phase 3: Command assembly
        if self.verbose:
            print(f"[3/4] Preparing {mode.value} {target.value} build...")

        flag_builder = FlagBuilder(self.settings.compiler, standard, mode, target)
        self._prepare_build_dir(build_dir)
        invocation = flag_builder.build_invocation(
            sources,
            build_dir,
            artifact_name,
            include_paths=include_dirs,
            lib_paths=dep_libs,
        )
        self._check_output_collisions(sources, invocation)

        # Phase 4: Toolchain
        if self.verbose:
            print("[4/4] Running toolchain...")
            print(f"      {invocation}")

        result = self.executor.run(invocation)
        if not result.success:
            raise ToolchainFailureError(result.stderr, result.returncode, invocation)

        build_time = time.time() - start_time
        outputs = list(invocation.outputs)
        artifact_path = outputs[0] if len(outputs) == 1 else invocation.cwd

        logger.debug("Built %s in %.2fs", artifact_path, build_time)

        return BuildResult(
            artifact_path=artifact_path,
            artifacts=outputs,
            target=target,
            mode=mode,
            invocation=invocation,
            build_time=build_time,
            warnings=result.stderr,
        )

    def _resolve_dependencies(self) -> Tuple[List[Path], List[Path]]:
        """
        Resolve configured dependencies.

        Returns:
            Tuple of (include paths, library paths)
        """
        if not self.config.dependencies:
            return [], []

        entries = self.resolver.resolve(self.config.dependencies)
        if self.verbose:
            print(f"      {len(entries)} dependencies ready")
        return include_paths(entries), lib_paths(entries)

    def _prepare_build_dir(self, build_dir: Path) -> None:
        try:
            build_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputPathUnwritableError(build_dir, str(e)) from e

    @staticmethod
    def _check_output_collisions(sources: Sequence[Path], invocation: ToolchainInvocation) -> None:
        """Fail when two translation units would write the same output file."""
        if invocation.links:
            return

        by_output: Dict[str, List[Path]] = defaultdict(list)
        for source in sources:
            by_output[source.stem].append(source)

        for output in invocation.outputs:
            producers = by_output.get(output.stem, [])
            if len(producers) > 1:
                names = ", ".join(str(p) for p in producers)
                raise OutputPathUnwritableError(output, f"written by more than one source ({names})")
