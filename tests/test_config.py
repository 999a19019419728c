"""Tests for makemigration.toml loading."""

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from makemigration.config import CONFIG_FILENAME, load_config
from makemigration.config.models import MigrationConfig


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / CONFIG_FILENAME
    path.write_text(textwrap.dedent(content))
    return path


class TestLoadConfig:
    """TOML parsing into pydantic models."""

    def test_full_config(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            """
            [profiles.dev]
            url = "postgresql://localhost:5432/app"
            description = "Local database"

            [profiles.prod]
            url = "postgresql://app:[YOUR-PASSWORD]@db/app"
            db_password = "secret"

            [migrations]
            path = "db/migrations"
            name = "Sync"
            models = "app.models:registry"
            excluded_tables = ["_fluent_migrations", "audit_log"]
            """,
        )
        config = load_config(path)

        assert list(config.profiles) == ["dev", "prod"]
        assert config.profiles["dev"].description == "Local database"
        assert config.profiles["prod"].db_password == "secret"
        assert config.migrations.path == "db/migrations"
        assert config.migrations.name == "Sync"
        assert config.migrations.models == "app.models:registry"
        assert config.migrations.excluded_tables == ["_fluent_migrations", "audit_log"]

    def test_defaults(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            """
            [profiles.dev]
            url = "sqlite:///app.db"
            """,
        )
        config = load_config(path)

        assert config.profiles["dev"].description == ""
        assert config.profiles["dev"].db_password is None
        assert config.migrations.path == "migrations"
        assert config.migrations.name == "AutoMigration"
        assert config.migrations.models is None
        assert config.migrations.excluded_tables == ["_fluent_migrations"]

    def test_empty_file(self, tmp_path: Path) -> None:
        config = load_config(write_config(tmp_path, ""))
        assert config == MigrationConfig()

    def test_default_path_is_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        write_config(
            tmp_path,
            """
            [profiles.local]
            url = "sqlite:///local.db"
            """,
        )
        monkeypatch.chdir(tmp_path)
        assert "local" in load_config().profiles

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Config not found"):
            load_config(tmp_path / "nope.toml")

    def test_profile_without_url(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            """
            [profiles.broken]
            description = "no url"
            """,
        )
        with pytest.raises(ValidationError):
            load_config(path)
