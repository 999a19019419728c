"""CLI module for schema diffing and migration generation.

Usage:
    makemigration profiles
    DB_PROFILE=dev makemigration inspect
    makemigration inspect --database-url sqlite:///app.db
    makemigration make --profile dev --models app.models:registry --name "add users"
    makemigration make --profile dev --preview

Commands:
    profiles  - List profiles from makemigration.toml
    inspect   - Show the live database schema
    make      - Compare models against the database and generate a migration
"""

import argparse
import asyncio
import logging
import sys
import tomllib
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from makemigration.config import MigrationSettings, load_config
from makemigration.factory import (
    ProfileNotFoundError,
    create_database,
    get_active_profile,
    load_models,
    resolve_url,
)
from makemigration.generator import MigrationFileWriter, MigrationGenerator
from makemigration.schema import (
    DatabaseIntrospector,
    DatabaseSchema,
    IntrospectionError,
    ModelIntrospector,
    compare,
)

console = Console()
logger = logging.getLogger(__name__)

# Errors reported as a one-line message with exit code 1
_USER_ERRORS = (
    ProfileNotFoundError,
    FileNotFoundError,
    FileExistsError,
    IntrospectionError,
    ValidationError,
    tomllib.TOMLDecodeError,
    SQLAlchemyError,
    OSError,
)

# Raised while importing declarations and building the desired schema
_MODEL_ERRORS = (
    ImportError,
    AttributeError,
    TypeError,
    ValueError,
)


# ============================================================================
# Helpers
# ============================================================================


def _load_settings(args: argparse.Namespace) -> MigrationSettings:
    """``[migrations]`` settings, or defaults when there is no config file."""
    try:
        return load_config().migrations
    except FileNotFoundError:
        if getattr(args, "database_url", None):
            return MigrationSettings()
        raise


def _resolve_database_url(args: argparse.Namespace) -> str:
    """Database URL from ``--database-url`` or the selected profile."""
    if getattr(args, "database_url", None):
        return args.database_url

    profile_name, profile = get_active_profile(
        profile_name=getattr(args, "profile", None),
        env_prefix=getattr(args, "env_prefix", ""),
    )
    console.print(f"Using profile: [bold cyan]{profile_name}[/bold cyan]", style="dim")
    return resolve_url(profile)


async def _introspect_database(url: str, excluded_tables: list[str]) -> DatabaseSchema:
    database = create_database(url)
    try:
        return await DatabaseIntrospector(
            database, excluded_tables=set(excluded_tables)
        ).introspect()
    finally:
        await database.close()


def _print_schema(schema: DatabaseSchema) -> None:
    if len(schema) == 0:
        console.print("[yellow]No tables found.[/yellow]")
        return

    for db_table in schema.tables:
        table = Table(title=escape(db_table.name), show_header=True, header_style="bold")
        table.add_column("Column")
        table.add_column("Type")
        table.add_column("Null", justify="center")
        table.add_column("Unique", justify="center")
        table.add_column("Default", style="dim")

        for column in db_table.columns:
            type_display = escape(column.data_type.tag)
            if column.data_type.is_custom:
                type_display = f"[yellow]{type_display}[/yellow]"
            table.add_row(
                escape(column.name),
                type_display,
                "yes" if column.is_optional else "",
                "yes" if column.is_unique else "",
                escape(column.default or ""),
            )
        console.print(table)

        for constraint in db_table.constraints:
            label = constraint.name or "(unnamed)"
            line = f"  {constraint.kind.value} {label} ({', '.join(constraint.columns)})"
            if constraint.references is not None:
                line += f" -> {constraint.references.table}.{constraint.references.column}"
            console.print(line, style="dim", markup=False)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_inspect(args: argparse.Namespace) -> int:
    """Async implementation for inspect command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        settings = _load_settings(args)
        url = _resolve_database_url(args)
        schema = await _introspect_database(url, settings.excluded_tables)
    except _USER_ERRORS as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    _print_schema(schema)
    return 0


async def _async_make(args: argparse.Namespace) -> int:
    """Async implementation for make command.

    Introspects the database, builds the desired schema from the models,
    compares them, and previews or writes the migration.

    Returns:
        0 on success (including "no changes"), 1 on failure.
    """
    try:
        settings = _load_settings(args)
        models_path = args.models or settings.models
        if not models_path:
            console.print("[red]Error: no models configured.[/red]")
            console.print(
                "[dim]Pass[/dim] [cyan]--models package.module:attribute[/cyan] "
                "[dim]or set[/dim] [cyan]models[/cyan] [dim]under \\[migrations].[/dim]"
            )
            return 1

        try:
            desired = ModelIntrospector().introspect(load_models(models_path))
        except _MODEL_ERRORS as e:
            console.print(f"[red]Error in models {escape(models_path)}: {escape(str(e))}[/red]")
            return 1

        url = _resolve_database_url(args)
        current = await _introspect_database(url, settings.excluded_tables)
    except _USER_ERRORS as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    diff = compare(current, desired)
    if diff.is_empty:
        console.print("[bold green]v[/bold green] No changes detected")
        return 0

    changes = Table(title="Detected Changes", show_header=True, header_style="bold")
    changes.add_column("#", justify="right", style="dim")
    changes.add_column("Change")
    for index, line in enumerate(diff.summary(), start=1):
        changes.add_row(str(index), escape(line))
    console.print(changes)

    migration = MigrationGenerator().render(diff, args.name or settings.name)

    if args.preview:
        console.print()
        console.print(migration.code, markup=False, highlight=False)
        console.print("[dim]Preview only: nothing written.[/dim]")
        return 0

    writer = MigrationFileWriter(Path(args.path or settings.path))
    try:
        path = writer.write(migration.code, migration.identifier)
    except FileExistsError as e:
        console.print(f"[red]Error: migration already exists: {escape(str(e.filename))}[/red]")
        return 1

    console.print(f"[bold green]v[/bold green] Wrote [cyan]{path}[/cyan]")
    return 0


# ============================================================================
# Commands
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from makemigration.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if the config file is missing.
    """
    try:
        config = load_config()
    except FileNotFoundError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("URL", style="dim")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(escape(name), escape(profile.url), escape(profile.description))

    console.print(table)
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Show the live database schema.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_inspect(args))


def cmd_make(args: argparse.Namespace) -> int:
    """Generate a migration from the model/database difference.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_make(args))


# ============================================================================
# Main entry point
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _add_database_arguments(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--profile",
        "-p",
        help="Profile name from makemigration.toml (default: $DB_PROFILE)",
    )
    source.add_argument(
        "--database-url",
        help="Connect to this URL instead of a profile",
    )


def main() -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="makemigration",
        description="Compare model declarations with a live database and generate migrations",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # inspect command
    p_inspect = subparsers.add_parser(
        "inspect",
        help="Show the live database schema",
    )
    _add_database_arguments(p_inspect)
    p_inspect.set_defaults(func=cmd_inspect)

    # make command
    p_make = subparsers.add_parser(
        "make",
        help="Generate a migration from model changes",
    )
    _add_database_arguments(p_make)
    p_make.add_argument(
        "--models",
        "-m",
        help="Model declarations as package.module:attribute",
    )
    p_make.add_argument(
        "--name",
        "-n",
        help="Migration name (default: [migrations] name)",
    )
    p_make.add_argument(
        "--path",
        help="Output directory (default: [migrations] path)",
    )
    p_make.add_argument(
        "--preview",
        action="store_true",
        help="Print the migration instead of writing it",
    )
    p_make.set_defaults(func=cmd_make)

    args = parser.parse_args()
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
