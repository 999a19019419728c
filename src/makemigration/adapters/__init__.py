"""Database adapters package.

Provides the ``SQLDatabase`` Protocol and the async SQLAlchemy handles the
introspector recognizes: ``PostgresDatabase``, ``MySQLDatabase`` and
``SQLiteDatabase``.

Usage:
    from makemigration.adapters import SQLDatabase, PostgresDatabase
"""

from makemigration.adapters.base import SQLDatabase
from makemigration.adapters.engine import AsyncSQLDatabase
from makemigration.adapters.mysql import MySQLDatabase
from makemigration.adapters.postgres import PostgresDatabase
from makemigration.adapters.sqlite import SQLiteDatabase

__all__ = [
    "SQLDatabase",
    "AsyncSQLDatabase",
    "PostgresDatabase",
    "MySQLDatabase",
    "SQLiteDatabase",
]
