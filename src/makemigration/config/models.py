"""Pydantic models for makemigration configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from makemigration.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class MigrationSettings(BaseModel):
    """``[migrations]`` table: where and how migrations are generated."""

    path: str = "migrations"
    name: str = "AutoMigration"
    models: str | None = None  # "package.module:attribute"
    excluded_tables: list[str] = Field(default_factory=lambda: ["_fluent_migrations"])


class MigrationConfig(BaseModel):
    """Complete configuration from makemigration.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    migrations: MigrationSettings = Field(default_factory=MigrationSettings)
