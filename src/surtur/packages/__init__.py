"""Dependency management for surtur.

This module handles fetching, caching, and locating the external
dependencies declared in a project's project.ini.
"""

from .cache import CacheEntry, DependencyCache
from .downloader import DownloadError, DownloadTimeoutError, ExtractionError, PackageDownloader
from .errors import CacheIOError, DependencyError, DependencyFetchError, DependencyTimeoutError
from .resolver import DependencyResolver, GitCloneError, include_paths, lib_paths
from .sources import GitHubURLOptimizer, SourceKind, SourceSpec, classify

__all__ = [
    "CacheEntry",
    "DependencyCache",
    "PackageDownloader",
    "DownloadError",
    "DownloadTimeoutError",
    "ExtractionError",
    "DependencyError",
    "DependencyFetchError",
    "DependencyTimeoutError",
    "CacheIOError",
    "DependencyResolver",
    "GitCloneError",
    "include_paths",
    "lib_paths",
    "GitHubURLOptimizer",
    "SourceKind",
    "SourceSpec",
    "classify",
]
