"""
s3-sync - mirror a local directory to an S3 bucket through the AWS CLI.

Detects changed files by comparing local MD5 digests with remote ETags and
optionally records public URLs for the uploaded objects.
"""

__version__ = "0.2.0"

from s3sync.config.loader import SyncConfig, build_config, load_config_file

# Exceptions
from s3sync.exceptions import (
    ConfigurationError,
    HashingError,
    ListingError,
    S3SyncError,
    SinkWriteError,
    StorageCommandError,
)
from s3sync.sync import (
    AwsCliBackend,
    RemoteInventory,
    RemoteObject,
    StorageBackend,
    StreamRelay,
    SyncContext,
    SyncDriver,
    SyncSummary,
    UrlSink,
    run_sync,
)
from s3sync.utils.hashing import compute_digest, compute_digest_async, trim_quotes

# Logging utilities
from s3sync.utils.logging import get_logger, setup_logging

__all__ = [
    "__version__",
    # Configuration
    "SyncConfig",
    "build_config",
    "load_config_file",
    # Sync
    "AwsCliBackend",
    "RemoteInventory",
    "RemoteObject",
    "StorageBackend",
    "StreamRelay",
    "SyncContext",
    "SyncDriver",
    "SyncSummary",
    "UrlSink",
    "run_sync",
    # Hashing
    "compute_digest",
    "compute_digest_async",
    "trim_quotes",
    # Exceptions
    "S3SyncError",
    "ConfigurationError",
    "HashingError",
    "ListingError",
    "SinkWriteError",
    "StorageCommandError",
    # Logging
    "get_logger",
    "setup_logging",
]
