"""
File hashing utilities for change detection.

Calculates MD5 digests of local files, the fingerprint S3 reports as the
ETag of objects uploaded in a single part. Supports both sync and async
file I/O.
"""

import hashlib
from pathlib import Path

import aiofiles

from s3sync.exceptions import HashingError
from s3sync.utils.logging import get_logger

logger = get_logger("s3sync.utils.hashing")

CHUNK_SIZE = 4096


def compute_digest(file_path: str | Path) -> str:
    """
    Calculate the MD5 digest of file content (synchronous).

    Args:
        file_path: Path to file

    Returns:
        Lowercase hex digest

    Raises:
        FileNotFoundError: If the file does not exist
        HashingError: If the file exists but cannot be read
    """
    md5_hash = hashlib.md5()
    try:
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(CHUNK_SIZE), b""):
                md5_hash.update(byte_block)
    except FileNotFoundError:
        raise
    except OSError as e:
        raise HashingError(str(file_path), e.strerror or str(e), cause=e) from e
    return md5_hash.hexdigest()


async def compute_digest_async(file_path: str | Path) -> str:
    """
    Calculate the MD5 digest of file content (async).

    Uses aiofiles so hashing a large file does not block the event loop
    that is also draining the storage CLI's output.

    Args:
        file_path: Path to file

    Returns:
        Lowercase hex digest

    Raises:
        FileNotFoundError: If the file does not exist
        HashingError: If the file exists but cannot be read
    """
    md5_hash = hashlib.md5()
    try:
        async with aiofiles.open(file_path, "rb") as f:
            while True:
                chunk = await f.read(CHUNK_SIZE)
                if not chunk:
                    break
                md5_hash.update(chunk)
    except FileNotFoundError:
        raise
    except OSError as e:
        raise HashingError(str(file_path), e.strerror or str(e), cause=e) from e
    return md5_hash.hexdigest()


def trim_quotes(tag: str) -> str:
    """
    Strip one pair of surrounding double quotes from an entity tag.

    ``'"abc"'`` becomes ``'abc'``; unquoted tags and tags shorter than two
    characters are returned unchanged.
    """
    if len(tag) >= 2 and tag[0] == '"' and tag[-1] == '"':
        return tag[1:-1]
    return tag


def has_file_changed(local_digest: str, etag: str) -> bool:
    """Return True when the local digest differs from the quote-stripped ETag."""
    changed = local_digest != trim_quotes(etag)
    if changed:
        logger.debug(f"Digest mismatch: local={local_digest} remote={trim_quotes(etag)}")
    return changed
