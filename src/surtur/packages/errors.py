"""Exceptions raised while resolving dependencies."""

from pathlib import Path


class DependencyError(Exception):
    """Base class for dependency resolution errors."""

    pass


class DependencyFetchError(DependencyError):
    """Raised when a dependency cannot be fetched from its source."""

    def __init__(self, identifier: str, cause: BaseException):
        super().__init__(f"Failed to fetch dependency '{identifier}': {cause}")
        self.identifier = identifier
        self.cause = cause


class DependencyTimeoutError(DependencyError):
    """Raised when fetching a dependency exceeds its timeout."""

    def __init__(self, identifier: str, timeout: float):
        super().__init__(
            f"Fetching dependency '{identifier}' timed out after {timeout:g}s"
        )
        self.identifier = identifier
        self.timeout = timeout


class CacheIOError(DependencyError):
    """Raised when the dependency cache cannot be created or written."""

    def __init__(self, path: Path, cause: BaseException):
        super().__init__(f"Dependency cache I/O failure at {path}: {cause}")
        self.path = path
        self.cause = cause
