"""Dependency cache management for surtur.

This module owns the on-disk layout of fetched dependencies and the
publish step that makes a fetched dependency visible to resolvers.

Cache Structure:
    .surtur/
    └── cache/
        ├── foo/                      # unversioned dependency "foo"
        │   ├── .surtur-dep.json      # identifier, url, version
        │   ├── include/
        │   └── ...
        ├── bar@v1.2.0/               # dependency "bar" pinned to v1.2.0
        └── .tmp-foo-3f9a1c/          # in-flight fetch, never read by resolvers

An entry only exists under its final name once its content is complete:
fetches write into a private ``.tmp-*`` directory and are renamed into
place in one step.
"""

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..config.project_config import Dependency
from .errors import CacheIOError

logger = logging.getLogger(__name__)

METADATA_FILE = ".surtur-dep.json"
TEMP_PREFIX = ".tmp-"


@dataclass(frozen=True)
class CacheEntry:
    """A published dependency in the cache."""

    identifier: str
    path: Path
    url: str
    version: Optional[str] = None


class DependencyCache:
    """Manages the dependency cache directory."""

    def __init__(self, cache_root: Path):
        """Initialize cache manager.

        Args:
            cache_root: Root directory of the dependency cache
        """
        self.cache_root = Path(cache_root)

    def init(self) -> None:
        """Create the cache root if it doesn't exist.

        Raises:
            CacheIOError: If the directory cannot be created
        """
        try:
            self.cache_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheIOError(self.cache_root, e) from e

    def entry_path(self, dependency: Dependency) -> Path:
        """Get the final path of a dependency's cache entry."""
        return self.cache_root / dependency.cache_key

    def get_entry(self, dependency: Dependency) -> Optional[CacheEntry]:
        """Return the published entry for a dependency, if any.

        Args:
            dependency: Dependency to look up

        Returns:
            CacheEntry if the dependency is fully cached, else None
        """
        path = self.entry_path(dependency)
        metadata = path / METADATA_FILE
        if not metadata.is_file():
            return None

        try:
            data = json.loads(metadata.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cache metadata %s: %s", metadata, e)
            return None

        return CacheEntry(
            identifier=data.get("identifier", dependency.identifier),
            path=path,
            url=data.get("url", dependency.url),
            version=data.get("version"),
        )

    def is_cached(self, dependency: Dependency) -> bool:
        return self.get_entry(dependency) is not None

    def make_staging_dir(self, dependency: Dependency) -> Path:
        """Create a private directory to fetch a dependency into.

        Raises:
            CacheIOError: If the directory cannot be created
        """
        self.init()
        try:
            return Path(
                tempfile.mkdtemp(
                    prefix=f"{TEMP_PREFIX}{dependency.identifier}-", dir=self.cache_root
                )
            )
        except OSError as e:
            raise CacheIOError(self.cache_root, e) from e

    def publish(self, dependency: Dependency, staging_dir: Path) -> CacheEntry:
        """Atomically move a completed fetch into its final cache location.

        If another process published the same entry first, the staged copy
        is discarded and the existing entry is returned.

        Args:
            dependency: Dependency the staged content belongs to
            staging_dir: Directory returned by make_staging_dir()

        Returns:
            The published CacheEntry

        Raises:
            CacheIOError: If the rename fails for a reason other than losing the race
        """
        metadata = {
            "identifier": dependency.identifier,
            "url": dependency.url,
            "version": dependency.version,
        }
        final_path = self.entry_path(dependency)

        try:
            (staging_dir / METADATA_FILE).write_text(
                json.dumps(metadata, indent=2), encoding="utf-8"
            )
            os.rename(staging_dir, final_path)
        except OSError as e:
            existing = self.get_entry(dependency)
            if existing is not None:
                logger.debug("%s was published concurrently; discarding staged copy", dependency.identifier)
                shutil.rmtree(staging_dir, ignore_errors=True)
                return existing
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise CacheIOError(final_path, e) from e

        logger.debug("Published %s -> %s", dependency.identifier, final_path)
        return CacheEntry(dependency.identifier, final_path, dependency.url, dependency.version)

    def discard(self, staging_dir: Path) -> None:
        """Remove an abandoned staging directory."""
        shutil.rmtree(staging_dir, ignore_errors=True)

    def remove(self, identifier: str) -> List[Path]:
        """Remove every cached entry for an identifier (all versions).

        Args:
            identifier: Dependency identifier

        Returns:
            Paths that were removed

        Raises:
            CacheIOError: If an entry cannot be removed
        """
        removed: List[Path] = []
        if not self.cache_root.exists():
            return removed

        for path in sorted(self.cache_root.iterdir()):
            if not path.is_dir():
                continue
            if path.name == identifier or path.name.startswith(f"{identifier}@"):
                try:
                    shutil.rmtree(path)
                except OSError as e:
                    raise CacheIOError(path, e) from e
                removed.append(path)
        return removed
