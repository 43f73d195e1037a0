"""
Sync subsystem.

Mirrors a local directory to an S3 bucket through the AWS CLI, relays the
CLI output, and re-copies files whose content no longer matches the ETag.
"""

from s3sync.sync.backend import AwsCliBackend, StorageBackend
from s3sync.sync.context import SyncContext
from s3sync.sync.driver import SyncDriver, run_sync
from s3sync.sync.relay import StreamRelay
from s3sync.sync.sink import UrlSink
from s3sync.sync.types import RemoteInventory, RemoteObject, SyncSummary

__all__ = [
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
]
