"""
Storage backends.

The driver talks to storage through three operations (sync a tree, list a
bucket, copy one object). The default backend shells out to the AWS CLI;
tests substitute an in-memory backend with the same protocol.
"""

from __future__ import annotations

import asyncio
import json
import shlex
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from s3sync.exceptions import ListingError
from s3sync.sync.relay import NOT_STARTED, StreamRelay, echo_line
from s3sync.sync.types import RemoteInventory
from s3sync.utils.logging import get_logger
from s3sync.utils.uris import bucket_name_no_protocol

logger = get_logger("s3sync.sync.backend")

DRY_RUN_FLAG = "--dryrun"


class StorageBackend(Protocol):
    """Storage operations used by the sync driver."""

    async def sync_tree(self, local_dir: Path, bucket: str, *, dry_run: bool = False) -> None: ...

    async def list_objects(self, bucket: str) -> RemoteInventory: ...

    async def copy_object(self, local_path: Path, destination: str, *, dry_run: bool = False) -> None: ...


class AwsCliBackend:
    """
    Storage backend driving the ``aws`` command-line tool.

    Mutating commands run through the stream relay; dry runs append
    ``--dryrun`` to the command instead of skipping it, so the CLI still
    reports what it would do.
    """

    def __init__(
        self,
        relay: StreamRelay,
        executable: str = "aws",
        exclude: Sequence[str] = ("*.DS_Store",),
        echo: Callable[[str], None] | None = None,
    ):
        self.relay = relay
        self.executable = executable
        self.exclude = tuple(exclude)
        self._echo = echo or echo_line

    def sync_command(self, local_dir: Path, bucket: str, *, dry_run: bool = False) -> list[str]:
        args = [self.executable, "s3", "sync", str(local_dir), bucket, "--delete", "--size-only"]
        args.extend(f"--exclude={pattern}" for pattern in self.exclude)
        if dry_run:
            args.append(DRY_RUN_FLAG)
        return args

    def list_command(self, bucket: str) -> list[str]:
        return [self.executable, "s3api", "list-objects-v2", "--bucket", bucket_name_no_protocol(bucket)]

    def copy_command(self, local_path: Path, destination: str, *, dry_run: bool = False) -> list[str]:
        args = [self.executable, "s3", "cp", str(local_path), destination]
        if dry_run:
            args.append(DRY_RUN_FLAG)
        return args

    async def sync_tree(self, local_dir: Path, bucket: str, *, dry_run: bool = False) -> None:
        await self.relay.run(self.sync_command(local_dir, bucket, dry_run=dry_run))

    async def copy_object(self, local_path: Path, destination: str, *, dry_run: bool = False) -> None:
        await self.relay.run(self.copy_command(local_path, destination, dry_run=dry_run))

    async def list_objects(self, bucket: str) -> RemoteInventory:
        """
        List the bucket with output buffered rather than streamed.

        Raises:
            ListingError: If the command fails or its output is not a listing
        """
        args = self.list_command(bucket)
        logger.debug(f"Running: {shlex.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise ListingError(
                f"Could not start '{args[0]}': {e}", command=args, returncode=NOT_STARTED
            ) from e

        stdout, _ = await process.communicate()
        output = stdout.decode("utf-8", errors="replace")

        if process.returncode != 0:
            self._echo(output.rstrip("\n"))
            raise ListingError(
                f"Listing {bucket} failed with status {process.returncode}",
                command=args,
                returncode=process.returncode,
                output=output,
            )

        if not output.strip():
            # list-objects-v2 prints nothing for an empty bucket
            return RemoteInventory()

        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            self._echo(output.rstrip("\n"))
            raise ListingError(
                f"Listing {bucket} returned invalid JSON: {e}", command=args, returncode=0, output=output
            ) from e

        try:
            inventory = RemoteInventory.from_listing(data)
        except ListingError as e:
            self._echo(output.rstrip("\n"))
            raise ListingError(e.message, command=args, returncode=0, output=output) from e

        logger.debug(f"Listed {len(inventory)} objects in {bucket}")
        return inventory
