"""Database layer for importflow application."""

from importflow.database.base import Database
from importflow.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
