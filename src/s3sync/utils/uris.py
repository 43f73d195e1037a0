"""
Helpers for S3 URIs found in storage CLI output.
"""

from __future__ import annotations

S3_SCHEME = "s3://"
DEFAULT_DOCUMENT = "index.html"


def extract_s3_uri(line: str) -> str | None:
    """
    Return the text from the first ``s3://`` marker to the end of the line.

    Only the first marker counts. Lines without a marker return None.

    Example:
        >>> extract_s3_uri("upload: ./www/index.html to s3://mybucket/index.html")
        's3://mybucket/index.html'
    """
    start = line.find(S3_SCHEME)
    if start == -1:
        return None
    return line[start:].rstrip()


def is_s3_uri(value: str) -> bool:
    return value.startswith(S3_SCHEME)


def bucket_name_no_protocol(bucket: str) -> str:
    """``s3://bucketname/`` -> ``bucketname``; anything else is returned stripped of '/'."""
    if bucket.startswith(S3_SCHEME):
        bucket = bucket[len(S3_SCHEME) :]
    return bucket.strip("/")


def object_uri(bucket: str, key: str) -> str:
    """Join a bucket URI and an object key into ``s3://bucket/key``."""
    return f"{bucket.rstrip('/')}/{key.lstrip('/')}"


def derive_url(uri: str, bucket: str, base_url: str) -> str:
    """
    Rewrite a storage URI into a public URL.

    The bucket prefix is replaced by ``base_url`` (first occurrence) and a
    trailing ``index.html`` is dropped, so ``s3://b/docs/index.html`` with
    base ``https://example.com`` becomes ``https://example.com/docs/``.
    """
    url = uri.replace(bucket.rstrip("/"), base_url.rstrip("/"), 1)
    # Only a whole final path segment, not "myindex.html"
    if url == DEFAULT_DOCUMENT or url.endswith("/" + DEFAULT_DOCUMENT):
        url = url[: -len(DEFAULT_DOCUMENT)]
    return url
