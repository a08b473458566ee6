"""Source locator classification.

A dependency's url may point at an archive, a git repository, a GitHub
project page, or a single file. This module decides which fetch strategy
applies and normalizes the url for it.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import urlparse

from .downloader import is_archive


class SourceKind(Enum):
    ARCHIVE = "archive"
    GIT = "git"
    FILE = "file"


@dataclass(frozen=True)
class SourceSpec:
    """How to fetch a dependency."""

    kind: SourceKind
    url: str
    ref: Optional[str] = None

    @property
    def filename(self) -> str:
        """Last path component of the url, used to name downloaded files."""
        name = PurePosixPath(urlparse(self.url).path).name
        return name or "download"


class GitHubURLOptimizer:
    """Converts GitHub repository URLs to archive downloads instead of git clone."""

    @staticmethod
    def is_github_url(url: str) -> bool:
        """Check if a URL is a GitHub repository URL.

        Args:
            url: The URL to check

        Returns:
            True if the URL is a GitHub repository
        """
        parsed = urlparse(url)
        return parsed.netloc.lower() in ("github.com", "www.github.com")

    @classmethod
    def optimize_url(cls, url: str, ref: Optional[str] = None) -> str:
        """Convert a GitHub project URL to a zip archive URL.

        Transforms:
            https://github.com/acme/widgets
        Into:
            https://github.com/acme/widgets/archive/HEAD.zip
        or, with ref="v1.2.0":
            https://github.com/acme/widgets/archive/v1.2.0.zip

        Args:
            url: Original GitHub URL
            ref: Tag, branch, or commit to download (default branch if None)

        Returns:
            Archive download URL
        """
        if not cls.is_github_url(url):
            return url

        url = url.rstrip("/")
        if "/archive/" in url or "/releases/download/" in url:
            return url

        return f"{url}/archive/{ref or 'HEAD'}.zip"


def classify(url: str, version: Optional[str] = None) -> SourceSpec:
    """
    Decide how a dependency url should be fetched.

    Args:
        url: Source locator from project.ini
        version: Optional version constraint (git ref or archive tag)

    Returns:
        SourceSpec describing the fetch strategy
    """
    if url.startswith("git+"):
        return SourceSpec(SourceKind.GIT, url[len("git+"):], version)

    path = urlparse(url).path
    if path.endswith(".git") or url.startswith("git@"):
        return SourceSpec(SourceKind.GIT, url, version)

    if GitHubURLOptimizer.is_github_url(url) and not is_archive(path):
        parts = [p for p in path.split("/") if p]
        if len(parts) == 2:
            return SourceSpec(SourceKind.ARCHIVE, GitHubURLOptimizer.optimize_url(url, version), version)

    if is_archive(path):
        return SourceSpec(SourceKind.ARCHIVE, url, version)

    return SourceSpec(SourceKind.FILE, url, version)
