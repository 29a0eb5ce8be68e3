"""Error taxonomy shared by scanner, analyzer, and persistence modules."""

from __future__ import annotations

from pathlib import Path


class SkmError(Exception):
    """Base error for all skm failures."""


class NotFoundError(SkmError):
    """Raised when an expected project path does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Project not found: {path}")


class ConfigurationError(SkmError):
    """Raised for invalid settings, metadata keys, or metadata values."""


class FilesystemError(SkmError):
    """Wraps an underlying I/O failure with the path that triggered it."""

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        reason = cause.strerror or str(cause)
        super().__init__(f"File system error: {path}: {reason}")


class VersionControlError(SkmError):
    """Raised when git cannot be invoked or returns unusable output."""


class SerializationError(SkmError):
    """Raised when persisted state is malformed."""
