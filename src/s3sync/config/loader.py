"""
Configuration loading.

Builds the run configuration from an optional YAML config file and the
command-line options. Command-line values win over the file; unset options
(None) fall through to the file and then to the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from s3sync.config.resolver import resolve_config
from s3sync.exceptions import ConfigurationError
from s3sync.utils.uris import S3_SCHEME, bucket_name_no_protocol, is_s3_uri

DEFAULT_OUTPUT_PATH = "urls.txt"
DEFAULT_EXCLUDES: tuple[str, ...] = ("*.DS_Store",)
DEFAULT_AWS_CLI = "aws"

_KNOWN_KEYS = {
    "local_dir",
    "bucket",
    "base_url",
    "output_path",
    "dry_run",
    "exclude",
    "aws_cli",
    "logging",
}


@dataclass(frozen=True)
class SyncConfig:
    """Settings for one sync run."""

    local_dir: Path
    bucket: str
    base_url: str | None = None
    output_path: Path = Path(DEFAULT_OUTPUT_PATH)
    dry_run: bool = False
    exclude: tuple[str, ...] = DEFAULT_EXCLUDES
    aws_cli: str = DEFAULT_AWS_CLI
    logging: dict[str, Any] = field(default_factory=dict)

    @property
    def bucket_uri(self) -> str:
        """Bucket URI without a trailing slash, e.g. ``s3://bucketname``."""
        return self.bucket.rstrip("/")

    def validate(self) -> None:
        """Validate user input; raises ConfigurationError on the first problem."""
        if not self.local_dir.exists():
            raise ConfigurationError(
                f"the path supplied to --local-dir does not exist: {self.local_dir}",
                details={"local_dir": str(self.local_dir)},
            )
        if not self.local_dir.is_dir():
            raise ConfigurationError(
                f"the path supplied to --local-dir is not a directory: {self.local_dir}",
                details={"local_dir": str(self.local_dir)},
            )
        if not is_s3_uri(self.bucket) or not bucket_name_no_protocol(self.bucket):
            raise ConfigurationError(
                f"the path supplied to --bucket is not a valid <S3Uri> (should start with {S3_SCHEME}): {self.bucket}",
                details={"bucket": self.bucket},
            )


def load_config_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML config file and resolve ``${VAR}`` placeholders.

    Args:
        path: Path to the YAML file

    Returns:
        Resolved configuration mapping

    Raises:
        ConfigurationError: If the file is missing, unreadable, or not a YAML mapping
    """
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}", details={"path": str(path)})

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
        raise ConfigurationError(
            f"Error parsing {path.name}{where}: {e}", details={"path": str(path)}
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}", details={"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}", details={"path": str(path)}
        )

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys in {path.name}: {', '.join(unknown)}", details={"path": str(path)}
        )

    return resolve_config(data)


def build_config(file_data: dict[str, Any] | None = None, **overrides: Any) -> SyncConfig:
    """
    Merge config file values with command-line overrides into a SyncConfig.

    ``None`` overrides are ignored. ``dry_run`` can only be switched on by
    an override, since a flag that was not passed arrives as False.
    """
    merged: dict[str, Any] = dict(file_data or {})
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "dry_run":
            merged[key] = bool(value) or bool(merged.get(key, False))
        elif key == "exclude" and not value:
            continue
        else:
            merged[key] = value

    local_dir = merged.get("local_dir")
    if not local_dir:
        raise ConfigurationError("the --local-dir option is required")
    bucket = merged.get("bucket")
    if not bucket:
        raise ConfigurationError(f"the --bucket option is required (an <S3Uri> such as {S3_SCHEME}bucketname)")

    exclude = merged.get("exclude", DEFAULT_EXCLUDES)
    if isinstance(exclude, str):
        exclude = [exclude]

    return SyncConfig(
        local_dir=Path(local_dir),
        bucket=str(bucket),
        base_url=merged.get("base_url") or None,
        output_path=Path(merged.get("output_path") or DEFAULT_OUTPUT_PATH),
        dry_run=bool(merged.get("dry_run", False)),
        exclude=tuple(exclude),
        aws_cli=str(merged.get("aws_cli") or DEFAULT_AWS_CLI),
        logging=dict(merged.get("logging") or {}),
    )
