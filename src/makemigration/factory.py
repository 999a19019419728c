"""Database handle and model factory.

Resolves which database to introspect (a named profile from
``makemigration.toml`` or an explicit URL), builds the matching
``SQLDatabase`` handle, and loads the application's model declarations.

Usage:
    from makemigration.factory import create_database, get_active_profile, resolve_url

    name, profile = get_active_profile(env_prefix="APP_")
    db = create_database(resolve_url(profile))
"""

import importlib
import logging
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from urllib.parse import quote

from makemigration.adapters import AsyncSQLDatabase, MySQLDatabase, PostgresDatabase, SQLiteDatabase
from makemigration.config import DatabaseProfile, load_config
from makemigration.declarations import Model, ModelRegistry
from makemigration.schema.introspector import UnsupportedDatabaseKind

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured or the name is unknown."""

    pass


# ============================================================================
# Profiles
# ============================================================================


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get the active profile name from ``{env_prefix}DB_PROFILE``.

    Args:
        env_prefix: Prefix for the environment variable, e.g. ``"APP_"`` reads
            ``APP_DB_PROFILE``.

    Raises:
        ProfileNotFoundError: If the variable is unset or empty.
    """
    env_var = f"{env_prefix}DB_PROFILE"
    profile_name = os.environ.get(env_var)
    if profile_name:
        return profile_name

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_var}=<name>, pass --profile, or pass --database-url."
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get a profile name and its configuration.

    Args:
        profile_name: Explicit profile; falls back to the environment.
        env_prefix: Prefix for the ``DB_PROFILE`` environment variable.
        config_path: Config file (default: ``./makemigration.toml``).

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile is selected or it is not defined.
        FileNotFoundError: If the config file doesn't exist.
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)

    config = load_config(config_path)
    if profile_name not in config.profiles:
        available = ", ".join(config.profiles) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found.\nAvailable profiles: {available}"
        )
    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Example:
        >>> resolve_url(DatabaseProfile(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss"))
        'postgresql://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Database Handles
# ============================================================================

_ADAPTERS: dict[str, type[AsyncSQLDatabase]] = {
    "postgres": PostgresDatabase,
    "postgresql": PostgresDatabase,
    "mysql": MySQLDatabase,
    "sqlite": SQLiteDatabase,
}


def create_database(database_url: str, **engine_kwargs: Any) -> AsyncSQLDatabase:
    """Build the database handle matching the URL scheme.

    ``postgres``/``postgresql``, ``mysql`` and ``sqlite`` schemes are
    accepted, with or without an explicit driver (``mysql+aiomysql://``).

    Raises:
        UnsupportedDatabaseKind: For any other scheme.
    """
    scheme = database_url.split("://", 1)[0].split("+", 1)[0].lower()
    adapter_cls = _ADAPTERS.get(scheme)
    if adapter_cls is None:
        raise UnsupportedDatabaseKind(scheme or database_url)

    logger.debug("Creating %s for scheme %s", adapter_cls.__name__, scheme)
    return adapter_cls(database_url, **engine_kwargs)


# ============================================================================
# Models
# ============================================================================


def load_models(import_path: str) -> list[Any]:
    """Import model declarations from ``"package.module:attribute"``.

    The attribute may be a ``ModelRegistry``, a sequence of models, or a
    single model.

    Raises:
        ValueError: If *import_path* is not ``module:attribute``.
        ImportError: If the module cannot be imported.
        AttributeError: If the attribute does not exist.
        TypeError: If the attribute holds something other than models.
    """
    module_name, sep, attribute = import_path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Models path must look like 'package.module:attribute', got {import_path!r}")

    module = importlib.import_module(module_name)
    target = getattr(module, attribute)

    if isinstance(target, ModelRegistry):
        return target.models
    if isinstance(target, Model):
        return [target]
    if isinstance(target, Sequence) and not isinstance(target, str):
        models = list(target)
        for model in models:
            if not isinstance(model, Model):
                raise TypeError(f"{model!r} in {import_path} must declare 'schema' and 'fields'")
        return models

    raise TypeError(f"{import_path} is not a ModelRegistry, a model, or a sequence of models")
