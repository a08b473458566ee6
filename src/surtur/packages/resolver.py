"""Dependency resolution for surtur projects.

This module makes sure every dependency declared in project.ini is present
in the local cache, fetching the missing ones in parallel, and derives the
include and library search paths the build needs from the result.

Design:
    - Cached dependencies are never touched again (no network access)
    - Missing dependencies are fetched concurrently on a bounded thread pool
    - Every fetch lands in a private staging directory and is published
      with a single rename, so no resolver sees a half-written entry
    - The first failure stops the remaining fetches; finished ones stay cached
"""

import logging
import shutil
import subprocess
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from ..config.project_config import Dependency
from ..config.settings import Settings
from .cache import CacheEntry, DependencyCache
from .downloader import DownloadError, DownloadTimeoutError, ExtractionError, PackageDownloader
from .errors import DependencyFetchError, DependencyTimeoutError
from .sources import SourceKind, SourceSpec, classify

logger = logging.getLogger(__name__)


class GitCloneError(Exception):
    """Raised when git cannot clone a dependency repository."""

    pass


class DependencyResolver:
    """Fetches declared dependencies into the dependency cache.

    Example usage:
        resolver = DependencyResolver.from_settings(settings)
        resolver.init_cache()
        entries = resolver.resolve(config.dependencies)
        includes = include_paths(entries)
    """

    def __init__(
        self,
        cache: DependencyCache,
        downloader: Optional[PackageDownloader] = None,
        jobs: int = 4,
        timeout: float = 60.0,
        git: str = "git",
        show_progress: bool = False,
    ):
        """Initialize resolver.

        Args:
            cache: Dependency cache to resolve into
            downloader: Downloader used for HTTP sources
            jobs: Maximum number of concurrent fetches
            timeout: Per-fetch timeout in seconds
            git: git executable used for repository sources
            show_progress: Whether to show download progress bars
        """
        self.cache = cache
        self.downloader = downloader or PackageDownloader(timeout=timeout)
        self.jobs = max(1, jobs)
        self.timeout = timeout
        self.git = git
        self.show_progress = show_progress

    @classmethod
    def from_settings(cls, settings: Settings, show_progress: bool = False) -> "DependencyResolver":
        return cls(
            DependencyCache(settings.cache_dir),
            jobs=settings.jobs,
            timeout=settings.fetch_timeout,
            show_progress=show_progress,
        )

    def init_cache(self) -> None:
        """Create the cache root directory; a no-op when it exists.

        Raises:
            CacheIOError: On permission or space errors
        """
        self.cache.init()

    def resolve(self, dependencies: Iterable[Dependency]) -> Dict[str, CacheEntry]:
        """
        Ensure every dependency is present in the cache.

        Args:
            dependencies: Dependencies to resolve

        Returns:
            Mapping of dependency identifier to its cache entry

        Raises:
            DependencyFetchError: If any dependency cannot be fetched
            DependencyTimeoutError: If a fetch exceeds the timeout
            CacheIOError: If the cache cannot be written
        """
        entries: Dict[str, CacheEntry] = {}
        missing: List[Dependency] = []

        for dep in sorted(set(dependencies), key=lambda d: d.identifier):
            entry = self.cache.get_entry(dep)
            if entry is not None:
                logger.debug("Dependency '%s' already cached at %s", dep.identifier, entry.path)
                entries[dep.identifier] = entry
            else:
                missing.append(dep)

        if not missing:
            return entries

        self.init_cache()
        logger.info("Fetching %d dependencies (%d at a time)", len(missing), self.jobs)

        executor = ThreadPoolExecutor(max_workers=self.jobs, thread_name_prefix="fetch")
        try:
            futures: Dict[Future, Dependency] = {
                executor.submit(self.fetch, dep): dep for dep in missing
            }
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)

            for future in done:
                error = future.exception()
                if error is not None:
                    executor.shutdown(wait=True, cancel_futures=True)
                    raise error

            for future, dep in futures.items():
                entries[dep.identifier] = future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        return entries

    def fetch(self, dependency: Dependency) -> CacheEntry:
        """
        Fetch a single dependency and publish it into the cache.

        Args:
            dependency: Dependency to fetch

        Returns:
            The published cache entry

        Raises:
            DependencyFetchError: If the source cannot be fetched
            DependencyTimeoutError: If the fetch exceeds the timeout
            CacheIOError: If the cache cannot be written
        """
        spec = classify(dependency.url, dependency.version)
        logger.info("Fetching %s from %s", dependency.identifier, spec.url)

        staging_dir = self.cache.make_staging_dir(dependency)
        try:
            if spec.kind is SourceKind.GIT:
                self._clone(spec, staging_dir)
            elif spec.kind is SourceKind.ARCHIVE:
                self._download_archive(spec, staging_dir)
            else:
                self.downloader.download(
                    spec.url, staging_dir / spec.filename, show_progress=self.show_progress
                )
        except DownloadTimeoutError as e:
            self.cache.discard(staging_dir)
            raise DependencyTimeoutError(dependency.identifier, e.timeout) from e
        except subprocess.TimeoutExpired as e:
            self.cache.discard(staging_dir)
            raise DependencyTimeoutError(dependency.identifier, self.timeout) from e
        except (DownloadError, ExtractionError, GitCloneError, OSError) as e:
            self.cache.discard(staging_dir)
            raise DependencyFetchError(dependency.identifier, e) from e
        except BaseException:
            self.cache.discard(staging_dir)
            raise

        return self.cache.publish(dependency, staging_dir)

    def remove(self, identifier: str) -> List[Path]:
        """Delete every cached entry of a dependency."""
        removed = self.cache.remove(identifier)
        for path in removed:
            logger.info("Removed cached dependency %s", path)
        return removed

    def _download_archive(self, spec: SourceSpec, staging_dir: Path) -> None:
        archive_dir = staging_dir / ".archive"
        archive = self.downloader.download(
            spec.url, archive_dir / spec.filename, show_progress=self.show_progress
        )
        self.downloader.extract_archive(archive, staging_dir)
        shutil.rmtree(archive_dir, ignore_errors=True)

    def _clone(self, spec: SourceSpec, staging_dir: Path) -> None:
        cmd = [self.git, "clone", "--depth", "1", "--quiet"]
        if spec.ref:
            cmd.extend(["--branch", spec.ref])
        cmd.extend([spec.url, str(staging_dir)])

        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise GitCloneError(f"git executable not found: {self.git}") from e

        if result.returncode != 0:
            raise GitCloneError(
                f"git clone {spec.url} failed (exit {result.returncode}): {result.stderr.strip()}"
            )

        shutil.rmtree(staging_dir / ".git", ignore_errors=True)


def include_paths(entries: Mapping[str, CacheEntry]) -> List[Path]:
    """Derive include search paths from resolved entries.

    Uses <entry>/include when present, otherwise the entry root.
    """
    paths = []
    for identifier in sorted(entries):
        root = entries[identifier].path
        include_dir = root / "include"
        paths.append(include_dir if include_dir.is_dir() else root)
    return paths


def lib_paths(entries: Mapping[str, CacheEntry]) -> List[Path]:
    """Derive library search paths from resolved entries.

    Uses <entry>/lib when present, otherwise the entry root.
    """
    paths = []
    for identifier in sorted(entries):
        root = entries[identifier].path
        lib_dir = root / "lib"
        paths.append(lib_dir if lib_dir.is_dir() else root)
    return paths

