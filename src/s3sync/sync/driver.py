"""
Change-detection driver.

One pass per invocation:

1. remove the previous URL list and mirror the local directory to the
   bucket (size-only comparison, remote deletions, excludes);
2. list the bucket once;
3. for each listed object, hash the local file and compare it with the
   object's ETag; copy mismatched files that the sync did not already
   upload in this run.

Everything is sequential: one storage command at a time, one object at a
time. Any error other than a missing local file aborts the run; keys that
would map outside the local directory are skipped like missing files.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from s3sync.config.loader import SyncConfig
from s3sync.sync.backend import AwsCliBackend, StorageBackend
from s3sync.sync.context import SyncContext
from s3sync.sync.relay import StreamRelay
from s3sync.sync.sink import UrlSink
from s3sync.sync.types import RemoteObject, SyncSummary
from s3sync.utils.hashing import compute_digest_async, has_file_changed
from s3sync.utils.logging import get_logger
from s3sync.utils.uris import object_uri

logger = get_logger("s3sync.sync.driver")

BackendFactory = Callable[[StreamRelay], StorageBackend]


class SyncDriver:
    """
    Orchestrates a single sync run.

    Each driver owns a fresh :class:`SyncContext`, so seen URIs never leak
    between runs. ``backend_factory`` receives the driver's relay and
    returns the storage backend; it defaults to the AWS CLI backend.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        backend_factory: BackendFactory | None = None,
        echo: Callable[[str], None] | None = None,
    ):
        self.config = config
        self.context = SyncContext(config)
        self.sink = UrlSink(config.output_path)
        self.relay = StreamRelay(self.context, sink=self.sink, echo=echo)
        if backend_factory is not None:
            self.backend = backend_factory(self.relay)
        else:
            self.backend = AwsCliBackend(self.relay, executable=config.aws_cli, exclude=config.exclude, echo=echo)

    async def run(self) -> SyncSummary:
        """
        Run the full sync.

        Returns:
            Counters for the run

        Raises:
            S3SyncError: On any fatal error (hashing, storage command, listing)
        """
        config = self.config
        summary = SyncSummary(dry_run=config.dry_run)

        self.sink.reset()

        mode = " (dry run)" if config.dry_run else ""
        logger.info(f"Syncing {config.local_dir} to {config.bucket_uri}{mode}")
        await self.backend.sync_tree(config.local_dir, config.bucket_uri, dry_run=config.dry_run)

        inventory = await self.backend.list_objects(config.bucket_uri)
        logger.info(f"Comparing {len(inventory)} remote objects with local files")

        for obj in inventory:
            await self._check_object(obj, summary)

        summary.urls_written = self.sink.written
        logger.info(
            f"Sync finished: {summary.checked} checked, {summary.unchanged} unchanged, "
            f"{summary.copied} copied, {summary.already_uploaded} already uploaded, "
            f"{summary.skipped_missing} missing locally, {summary.urls_written} URLs written"
        )
        return summary

    async def _check_object(self, obj: RemoteObject, summary: SyncSummary) -> None:
        if obj.key.endswith("/"):
            logger.debug(f"Skipping folder placeholder {obj.key}")
            return

        summary.checked += 1
        local_path = self._local_path(obj.key)
        if local_path is None:
            logger.warning(f"Key {obj.key!r} points outside {self.config.local_dir}, skipping comparison")
            summary.skipped_missing += 1
            return

        try:
            digest = await compute_digest_async(local_path)
        except FileNotFoundError:
            # Expected on dry runs, where the sync did not delete the remote copy
            logger.debug(f"No local file for {obj.key}, skipping comparison")
            summary.skipped_missing += 1
            return

        if not has_file_changed(digest, obj.fingerprint):
            summary.unchanged += 1
            return

        destination = object_uri(self.config.bucket_uri, obj.key)
        if self.context.has_seen(destination):
            logger.debug(f"{destination} was already uploaded by this run")
            summary.already_uploaded += 1
            return

        logger.info(f"Content changed for {obj.key}, copying")
        await self.backend.copy_object(local_path, destination, dry_run=self.config.dry_run)
        self.context.mark_seen(destination)
        summary.copied += 1

    def _local_path(self, key: str) -> Path | None:
        """Map an object key to a path under ``local_dir``; None if it would escape it."""
        local_dir = self.config.local_dir
        local_path = local_dir / key.lstrip("/")
        if not local_path.resolve().is_relative_to(local_dir.resolve()):
            return None
        return local_path


def run_sync(
    config: SyncConfig,
    *,
    backend_factory: BackendFactory | None = None,
    echo: Callable[[str], None] | None = None,
) -> SyncSummary:
    """Validate ``config`` and run one sync to completion (blocking)."""
    config.validate()
    driver = SyncDriver(config, backend_factory=backend_factory, echo=echo)
    return asyncio.run(driver.run())
