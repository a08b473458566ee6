"""
Build system components for surtur.

This module provides the build system implementation including:
- Source file discovery
- Toolchain command assembly (standard, mode, target)
- Toolchain execution
- Build orchestration
"""

from .compilation_executor import CompilationExecutor, ToolchainResult
from .errors import (
    BuildError,
    NoSourceFilesError,
    OutputPathUnwritableError,
    ToolchainFailureError,
    ToolchainNotFoundError,
)
from .flag_builder import BuildMode, BuildTarget, FlagBuilder, ToolchainInvocation
from .orchestrator import BuildOrchestrator, BuildResult
from .source_scanner import SourceCollection, SourceScanner

__all__ = [
    'SourceScanner',
    'SourceCollection',
    'BuildMode',
    'BuildTarget',
    'FlagBuilder',
    'ToolchainInvocation',
    'CompilationExecutor',
    'ToolchainResult',
    'BuildOrchestrator',
    'BuildResult',
    'BuildError',
    'NoSourceFilesError',
    'OutputPathUnwritableError',
    'ToolchainFailureError',
    'ToolchainNotFoundError',
]
