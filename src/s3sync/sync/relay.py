"""
Streaming relay for storage CLI output.

Runs one child process with stderr merged into stdout, drains the merged
stream line by line in a dedicated reader task, records S3 URIs as they
appear, forwards derived URLs to the sink and echoes every line to the
terminal in order.
"""

from __future__ import annotations

import asyncio
import contextlib
import shlex
from collections.abc import Callable

from rich.console import Console

from s3sync.exceptions import StorageCommandError
from s3sync.sync.context import SyncContext
from s3sync.sync.sink import UrlSink
from s3sync.utils.logging import get_logger
from s3sync.utils.uris import derive_url, extract_s3_uri

logger = get_logger("s3sync.sync.relay")

# Per-line limit for the child's output stream (bytes)
LINE_LIMIT = 1024 * 1024

# Exit status reported when the executable cannot be started
NOT_STARTED = 127

console = Console(highlight=False, markup=False, emoji=False, soft_wrap=True)


def echo_line(line: str) -> None:
    console.print(line)


class StreamRelay:
    """
    Relay a child process's combined output to the operator.

    Only one :meth:`run` may be active at a time; the driver guarantees this
    by awaiting each command before starting the next, which is what keeps
    ``context.seen_uris`` and the sink free of locking.
    """

    def __init__(
        self,
        context: SyncContext,
        sink: UrlSink | None = None,
        echo: Callable[[str], None] | None = None,
    ):
        self.context = context
        self.sink = sink
        self._echo = echo or echo_line

    async def run(self, args: list[str]) -> int:
        """
        Run ``args`` to completion while relaying its output.

        The reader task is awaited before the process exit status, so every
        line has been handled before a failure is reported.

        Returns:
            The exit status (always 0)

        Raises:
            StorageCommandError: If the process cannot start or exits non-zero
        """
        command = shlex.join(args)
        logger.debug(f"Running: {command}")
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                limit=LINE_LIMIT,
            )
        except OSError as e:
            raise StorageCommandError(
                f"Could not start '{args[0]}': {e}", command=list(args), returncode=NOT_STARTED
            ) from e

        if process.stdout is None:
            await _terminate(process)
            raise StorageCommandError(f"No output stream for '{args[0]}'", command=list(args))

        reader = asyncio.create_task(self._drain(process.stdout))
        try:
            await reader
        except ValueError as e:
            # StreamReader.readline reports an over-long line as ValueError
            await _terminate(process)
            raise StorageCommandError(
                f"Output line longer than {LINE_LIMIT} bytes from: {command}",
                command=list(args),
                returncode=process.returncode,
            ) from e
        except BaseException:
            await _terminate(process)
            raise

        returncode = await process.wait()
        if returncode != 0:
            raise StorageCommandError(
                f"Command exited with status {returncode}: {command}", command=list(args), returncode=returncode
            )
        return returncode

    async def _drain(self, stream: asyncio.StreamReader) -> None:
        while True:
            raw = await stream.readline()
            if not raw:
                break
            self.handle_line(raw.decode("utf-8", errors="replace").rstrip("\r\n"))

    def handle_line(self, line: str) -> str | None:
        """
        Process one output line and echo it.

        A URI seen for the first time in this run is recorded and, when a
        base URL is configured, turned into a public URL for the sink.

        Returns:
            The extracted URI, or None when the line has no ``s3://`` marker
        """
        uri = extract_s3_uri(line)
        if uri is not None and self.context.mark_seen(uri):
            base_url = self.context.config.base_url
            if base_url and self.sink is not None:
                url = derive_url(uri, self.context.config.bucket_uri, base_url)
                if self.sink.record(url):
                    logger.debug(f"Recorded URL {url}")
        self._echo(line)
        return uri


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill ``process`` if it is still running and reap it."""
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    await process.wait()
