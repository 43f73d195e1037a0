"""
Configuration management.

Config file parsing, environment resolution, and run settings.
"""

from s3sync.config.loader import SyncConfig, build_config, load_config_file
from s3sync.config.resolver import resolve_config

__all__ = [
    "SyncConfig",
    "build_config",
    "load_config_file",
    "resolve_config",
]
