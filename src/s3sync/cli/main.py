"""
Main CLI entry point.

    s3-sync --local-dir www --bucket s3://bucketname --base-url https://example.com
"""

import asyncio
import platform
from pathlib import Path

import typer

from s3sync import __version__
from s3sync.config.loader import DEFAULT_OUTPUT_PATH, SyncConfig, build_config, load_config_file
from s3sync.exceptions import ConfigurationError, S3SyncError
from s3sync.sync.driver import SyncDriver
from s3sync.utils.logging import get_logger, setup_logging_from_config

logger = get_logger("s3sync.cli")

# Exit status for invalid flags, paths, or config
EXIT_USAGE = 2

EPILOG = """\b
ENVIRONMENT:
  AWS_ACCESS_KEY_ID        the AWS Access Key ID with permission to write to the S3 bucket
  AWS_SECRET_ACCESS_KEY    the AWS Secret Access Key with permission to write to the S3 bucket

\b
EXAMPLE:
  export AWS_ACCESS_KEY_ID=<key_id>
  export AWS_SECRET_ACCESS_KEY=<key>
  s3-sync --local-dir www --bucket s3://bucketname --base-url https://example.com
"""


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"s3-sync {__version__} (python {platform.python_version()})")
        raise typer.Exit()


app = typer.Typer(
    name="s3-sync",
    help="Sync a local directory to an S3 bucket and list the URLs of changed files.",
    add_completion=False,
    rich_markup_mode=None,
)


@app.command(epilog=EPILOG)
def sync(
    ctx: typer.Context,
    local_dir: Path | None = typer.Option(
        None,
        "--local-dir",
        envvar="S3SYNC_LOCAL_DIR",
        help="The local directory path of files to sync with an S3 bucket.",
    ),
    bucket: str | None = typer.Option(
        None,
        "--bucket",
        envvar="S3SYNC_BUCKET",
        help="The S3 bucket <S3Uri>, e.g. s3://bucketname.",
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        envvar="S3SYNC_BASE_URL",
        help="Modified files are converted to a URL under this base and saved to the output path.",
    ),
    output_path: Path | None = typer.Option(
        None,
        "--output-path",
        envvar="S3SYNC_OUTPUT_PATH",
        help=f"Where to save modified URLs when using --base-url [default: {DEFAULT_OUTPUT_PATH}].",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dryrun",
        envvar="S3SYNC_DRYRUN",
        help="Run commands without making changes.",
    ),
    exclude: list[str] | None = typer.Option(
        None,
        "--exclude",
        help="Pattern excluded from the directory sync (repeatable) [default: *.DS_Store].",
    ),
    aws_cli: str | None = typer.Option(
        None,
        "--aws-cli",
        envvar="S3SYNC_AWS_CLI",
        help="AWS CLI executable [default: aws].",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        envvar="S3SYNC_CONFIG",
        help="YAML file with default option values.",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        envvar="S3SYNC_LOG_LEVEL",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    ),
    log_file: Path | None = typer.Option(
        None,
        "--log-file",
        envvar="S3SYNC_LOG_FILE",
        help="Also write logs to this file.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """
    Sync a local directory to an S3 bucket.

    Runs 'aws s3 sync', then compares each remote object's ETag with the MD5
    of the local file and copies files whose content changed.
    """
    if local_dir is None and bucket is None and config_file is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        config = _load(
            config_file,
            local_dir=local_dir,
            bucket=bucket,
            base_url=base_url,
            output_path=output_path,
            dry_run=dry_run,
            exclude=exclude,
            aws_cli=aws_cli,
        )
    except ConfigurationError as e:
        typer.echo(f"error: {e.message}", err=True)
        raise typer.Exit(EXIT_USAGE) from None

    logging_config = dict(config.logging)
    if log_level:
        logging_config["level"] = log_level
    if log_file:
        logging_config["file"] = str(log_file)
    setup_logging_from_config({"logging": logging_config})

    try:
        summary = asyncio.run(SyncDriver(config).run())
    except S3SyncError as e:
        logger.error(f"Sync failed: {e.message}")
        logger.debug(f"Failure details: {e.details}", exc_info=e)
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1) from None

    if config.base_url and summary.urls_written:
        logger.info(f"Wrote {summary.urls_written} URLs to {config.output_path}")


def _load(config_file: Path | None, **options) -> SyncConfig:
    file_data = load_config_file(config_file) if config_file is not None else {}
    config = build_config(file_data, **options)
    config.validate()
    return config


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
