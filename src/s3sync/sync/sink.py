"""
Output file of derived public URLs.
"""

from __future__ import annotations

from pathlib import Path

from s3sync.exceptions import SinkWriteError
from s3sync.utils.logging import get_logger

logger = get_logger("s3sync.sync.sink")


class UrlSink:
    """
    Append-only URL list, one URL per line.

    The file is removed by :meth:`reset` at the start of a run and created
    lazily by the first :meth:`record`, so a run that derives no URLs leaves
    no file behind. Write failures are logged and never abort the sync.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._written: set[str] = set()

    @property
    def written(self) -> int:
        return len(self._written)

    def reset(self) -> None:
        """Delete the output file from a previous run, if any."""
        self._written.clear()
        try:
            self.path.unlink()
            logger.debug(f"Removed previous URL list {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove previous URL list {self.path}: {e}")

    def record(self, url: str) -> bool:
        """
        Append ``url`` to the output file unless it was already written.

        Returns:
            True if the URL was written, False if it was a duplicate or the write failed
        """
        if url in self._written:
            return False
        try:
            self.write(url)
        except SinkWriteError as e:
            logger.error(e.message)
            return False
        self._written.add(url)
        return True

    def write(self, url: str) -> None:
        """Append one line; raises SinkWriteError on any I/O failure."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(url + "\n")
        except OSError as e:
            raise SinkWriteError(str(self.path), url, cause=e) from e
