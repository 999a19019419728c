"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from makemigration.config import load_config, DatabaseProfile, MigrationConfig
"""

from makemigration.config.loader import CONFIG_FILENAME, load_config
from makemigration.config.models import DatabaseProfile, MigrationConfig, MigrationSettings

__all__ = [
    "CONFIG_FILENAME",
    "load_config",
    "DatabaseProfile",
    "MigrationConfig",
    "MigrationSettings",
]
