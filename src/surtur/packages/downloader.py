"""Dependency downloader with progress tracking and retry.

This module handles downloading dependency content from URLs and
extracting archives into a cache staging directory.
"""

import logging
import shutil
import tarfile
import time
import zipfile
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

import requests
from tqdm import tqdm
from urllib3.exceptions import ReadTimeoutError

logger = logging.getLogger(__name__)

# Download retry configuration
MAX_DOWNLOAD_ATTEMPTS = 3
RETRY_BACKOFF_BASE = 1.0  # seconds; delays are 1s, 2s

ARCHIVE_SUFFIXES = (".tar.gz", ".tar.bz2", ".tar.xz", ".tgz", ".tar", ".zip")


class DownloadError(Exception):
    """Raised when download fails."""

    def __init__(self, url: str, message: str, transient: bool = False):
        super().__init__(message)
        self.url = url
        self.transient = transient


class DownloadTimeoutError(DownloadError):
    """Raised when the server does not answer within the timeout."""

    def __init__(self, url: str, timeout: float):
        super().__init__(url, f"Timed out after {timeout:g}s downloading {url}")
        self.timeout = timeout


class ExtractionError(Exception):
    """Raised when archive extraction fails."""

    pass


def is_archive(name: str) -> bool:
    """Check whether a file name or URL path names a supported archive."""
    return name.lower().endswith(ARCHIVE_SUFFIXES)


def _is_read_timeout(error: requests.ConnectionError) -> bool:
    """A read timeout while streaming the body surfaces as a ConnectionError."""
    return bool(error.args) and isinstance(error.args[0], ReadTimeoutError)


class PackageDownloader:
    """Downloads and extracts dependency archives with progress tracking."""

    def __init__(
        self,
        chunk_size: int = 8192,
        timeout: float = 60.0,
        max_attempts: int = MAX_DOWNLOAD_ATTEMPTS,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize downloader.

        Args:
            chunk_size: Size of chunks for downloading
            timeout: Timeout in seconds, both per socket read and for the
                whole transfer
            max_attempts: Attempts for transient network failures
            session: Optional requests session (a new one is created if None)
            sleep: Sleep function used between retries
            clock: Monotonic clock used for the transfer deadline
        """
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock

    def download(self, url: str, dest_path: Path, show_progress: bool = True) -> Path:
        """Download a file from a URL, retrying transient failures.

        Connection errors and HTTP 5xx responses are retried with
        exponential backoff. HTTP 4xx responses and timeouts are not.

        Args:
            url: URL to download from
            dest_path: Destination file path
            show_progress: Whether to show progress bar

        Returns:
            Path to the downloaded file

        Raises:
            DownloadTimeoutError: If the server stalls past the timeout
            DownloadError: If download fails
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._download_once(url, Path(dest_path), show_progress)
            except DownloadTimeoutError:
                raise
            except DownloadError as e:
                if not e.transient or attempt == self.max_attempts:
                    raise
                delay = RETRY_BACKOFF_BASE * (2 ** (attempt - 1))
                logger.warning(
                    "Download attempt %d/%d failed for %s: %s (retrying in %.0fs)",
                    attempt,
                    self.max_attempts,
                    url,
                    e,
                    delay,
                )
                self._sleep(delay)

        raise DownloadError(url, f"Failed to download {url}: no download attempts allowed")

    def _download_once(self, url: str, dest_path: Path, show_progress: bool) -> Path:
        """Execute a single download attempt."""
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        # Use temporary file during download
        temp_file = dest_path.with_name(dest_path.name + ".download")
        deadline = self._clock() + self.timeout

        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
            try:
                response.raise_for_status()
            except requests.HTTPError as e:
                status = response.status_code
                raise DownloadError(
                    url, f"Failed to download {url}: HTTP {status}", transient=status >= 500
                ) from e

            total_size = int(response.headers.get("content-length", 0))

            progress_bar = None
            if show_progress and total_size > 0:
                filename = Path(urlparse(url).path).name
                progress_bar = tqdm(
                    total=total_size,
                    unit="B",
                    unit_scale=True,
                    unit_divisor=1024,
                    desc=f"Downloading {filename}",
                )

            try:
                with open(temp_file, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if self._clock() > deadline:
                            raise DownloadTimeoutError(url, self.timeout)
                        if chunk:
                            f.write(chunk)
                            if progress_bar:
                                progress_bar.update(len(chunk))
            finally:
                if progress_bar:
                    progress_bar.close()

            temp_file.replace(dest_path)
            return dest_path

        except requests.Timeout as e:
            raise DownloadTimeoutError(url, self.timeout) from e
        except requests.ConnectionError as e:
            if _is_read_timeout(e):
                raise DownloadTimeoutError(url, self.timeout) from e
            raise DownloadError(url, f"Failed to download {url}: {e}", transient=True) from e
        except requests.RequestException as e:
            raise DownloadError(url, f"Failed to download {url}: {e}") from e
        finally:
            if temp_file.exists():
                temp_file.unlink()

    def extract_archive(self, archive_path: Path, dest_dir: Path) -> Path:
        """Extract an archive file.

        Supports .tar, .tar.gz/.tgz, .tar.bz2, .tar.xz, and .zip formats.
        When the archive holds a single top-level directory (the usual
        "project-1.0/" layout), its contents are moved up into dest_dir.

        Args:
            archive_path: Path to the archive file
            dest_dir: Destination directory for extraction

        Returns:
            Path to the extracted directory

        Raises:
            ExtractionError: If extraction fails
        """
        archive_path = Path(archive_path)
        dest_dir = Path(dest_dir)

        if not archive_path.exists():
            raise ExtractionError(f"Archive not found: {archive_path}")

        unpack_dir = dest_dir / ".unpack"
        unpack_dir.mkdir(parents=True, exist_ok=True)

        try:
            logger.info("Extracting %s", archive_path.name)
            name = archive_path.name.lower()
            if name.endswith(".zip"):
                with zipfile.ZipFile(archive_path, "r") as zip_file:
                    zip_file.extractall(unpack_dir)
            elif is_archive(name):
                with tarfile.open(archive_path, "r:*") as tar:
                    tar.extractall(unpack_dir, filter="data")
            else:
                raise ExtractionError(f"Unsupported archive format: {archive_path.name}")
        except (OSError, tarfile.TarError, zipfile.BadZipFile) as e:
            shutil.rmtree(unpack_dir, ignore_errors=True)
            raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e

        contents = list(unpack_dir.iterdir())
        source_root = contents[0] if len(contents) == 1 and contents[0].is_dir() else unpack_dir

        for item in source_root.iterdir():
            shutil.move(str(item), str(dest_dir / item.name))
        shutil.rmtree(unpack_dir, ignore_errors=True)

        return dest_dir
