"""
s3-sync exception hierarchy.

All domain-specific exceptions inherit from S3SyncError, so the CLI can
catch any tool error with a single base class while still mapping user
input errors to their own exit code.

Hierarchy::

    S3SyncError
    ├── ConfigurationError        - bad flags, paths, or config file (exit 2)
    ├── HashingError              - local file could not be read for hashing
    ├── StorageCommandError       - external CLI failed to start or exited non-zero
    │   └── ListingError          - bucket listing failed or was unparseable
    └── SinkWriteError            - derived URL could not be persisted (logged only)

A missing local file during hashing is not an error of this hierarchy: it
surfaces as the builtin ``FileNotFoundError`` and the driver skips it.
"""

from __future__ import annotations


class S3SyncError(Exception):
    """Base exception for all s3-sync errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(S3SyncError):
    """Raised when flags, paths, or the config file are invalid."""


# --- Local files -------------------------------------------------------------


class HashingError(S3SyncError):
    """Raised when a local file exists but cannot be read for hashing."""

    def __init__(self, path: str, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(f"Cannot hash '{path}': {message}", details={"path": path})
        self.path = path
        if cause is not None:
            self.__cause__ = cause


# --- External storage CLI ----------------------------------------------------


class StorageCommandError(S3SyncError):
    """Raised when the external storage command cannot start or fails."""

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        returncode: int | None = None,
        output: str | None = None,
    ) -> None:
        super().__init__(message, details={"command": command, "returncode": returncode})
        self.command = command or []
        self.returncode = returncode
        self.output = output


class ListingError(StorageCommandError):
    """Raised when the bucket listing fails or cannot be parsed."""


# --- URL sink ----------------------------------------------------------------


class SinkWriteError(S3SyncError):
    """Raised when a derived URL cannot be written to the output file."""

    def __init__(self, path: str, url: str, *, cause: Exception | None = None) -> None:
        super().__init__(f"Cannot write URL to '{path}': {cause}", details={"path": path, "url": url})
        self.path = path
        self.url = url
        if cause is not None:
            self.__cause__ = cause
