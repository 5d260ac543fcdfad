"""Database connection module."""

from mirabellier.core.database.sqlite import Database, init_database, migrate_columns


__all__ = ["Database", "init_database", "migrate_columns"]
