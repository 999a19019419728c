"""TOML configuration loading.

Usage:
    from makemigration.config import load_config

    config = load_config()                      # ./makemigration.toml
    config = load_config(Path("ci/makemigration.toml"))
"""

import tomllib
from pathlib import Path

from makemigration.config.models import DatabaseProfile, MigrationConfig, MigrationSettings

CONFIG_FILENAME = "makemigration.toml"


def load_config(config_path: Path | None = None) -> MigrationConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the config file (default:
            ``makemigration.toml`` in the current working directory)

    Returns:
        MigrationConfig with all profiles and migration settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If a profile or setting has the wrong shape
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config not found: {config_path}\n"
            f"Create {CONFIG_FILENAME} with a [profiles.<name>] table, "
            "or pass --database-url."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    profiles = {
        name: DatabaseProfile(**profile_data)
        for name, profile_data in data.get("profiles", {}).items()
    }

    return MigrationConfig(
        profiles=profiles,
        migrations=MigrationSettings(**data.get("migrations", {})),
    )
