"""
Source file discovery.

This module handles:
- Recursively scanning the project source root for C translation units
- Returning sources in a deterministic order for reproducible builds
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

SOURCE_SUFFIX = ".c"


@dataclass
class SourceCollection:
    """Collection of source files discovered under a source root."""

    sources: List[Path]

    def __bool__(self) -> bool:
        return bool(self.sources)

    def without(self, *excluded: Path) -> "SourceCollection":
        """Return a copy with the given source files removed."""
        skip = {Path(p).resolve() for p in excluded}
        return SourceCollection(sources=[s for s in self.sources if s.resolve() not in skip])


class SourceScanner:
    """
    Scans a source root for C sources.

    Every ``.c`` file below the root is a translation unit, whatever the
    name of the subdirectory holding it. Results are sorted
    lexicographically by path so that the toolchain always receives the
    same argument order.
    """

    def __init__(self, source_dir: Path):
        """
        Initialize source scanner.

        Args:
            source_dir: Root directory to scan (usually <project>/src)
        """
        self.source_dir = Path(source_dir)

    def scan(self, source_dir: Optional[Path] = None) -> SourceCollection:
        """
        Scan for all source files.

        Args:
            source_dir: Directory to scan instead of the configured one

        Returns:
            SourceCollection with all discovered sources; empty if the
            directory doesn't exist
        """
        root = Path(source_dir) if source_dir is not None else self.source_dir
        if not root.is_dir():
            return SourceCollection(sources=[])

        found = {path for path in root.rglob(f"*{SOURCE_SUFFIX}") if path.is_file()}
        return SourceCollection(sources=sorted(found, key=lambda p: p.as_posix()))
