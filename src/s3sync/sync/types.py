"""
Type definitions for the bucket inventory and run results.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from s3sync.exceptions import ListingError
from s3sync.utils.hashing import trim_quotes


@dataclass(frozen=True)
class RemoteObject:
    """One object from a bucket listing: its key and entity tag."""

    key: str
    etag: str

    @property
    def fingerprint(self) -> str:
        """ETag with surrounding quotes removed."""
        return trim_quotes(self.etag)


@dataclass(frozen=True)
class RemoteInventory:
    """
    Objects returned by a single listing call, in listing order.

    The order is whatever the backend returned; it is not sorted.
    """

    objects: tuple[RemoteObject, ...] = ()

    def __iter__(self) -> Iterator[RemoteObject]:
        return iter(self.objects)

    def __len__(self) -> int:
        return len(self.objects)

    @classmethod
    def from_listing(cls, data: Any) -> RemoteInventory:
        """
        Build an inventory from ``list-objects-v2`` JSON.

        Expected shape: ``{"Contents": [{"Key": str, "ETag": str}, ...]}``.
        A document without ``Contents`` is an empty bucket.
        """
        if not isinstance(data, dict):
            raise ListingError(f"Bucket listing must be a JSON object, got {type(data).__name__}")

        contents = data.get("Contents") or []
        if not isinstance(contents, list):
            raise ListingError(f"Bucket listing 'Contents' must be a list, got {type(contents).__name__}")

        objects = []
        for index, entry in enumerate(contents):
            try:
                objects.append(RemoteObject(key=str(entry["Key"]), etag=str(entry["ETag"])))
            except (KeyError, TypeError) as e:
                raise ListingError(f"Bucket listing entry {index} is missing {e}") from e
        return cls(tuple(objects))


@dataclass
class SyncSummary:
    """Counters for one run, logged when the run ends."""

    checked: int = 0
    skipped_missing: int = 0
    unchanged: int = 0
    copied: int = 0
    already_uploaded: int = 0
    urls_written: int = 0
    dry_run: bool = False
