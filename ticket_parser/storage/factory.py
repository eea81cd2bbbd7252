"""Selection of the storage backend from configuration"""
from enum import Enum
from typing import Union

from .client import Client
from .database import SQLiteClient


class DatabaseType(Enum):
    """Supported storage backends"""
    SQLITE = "SQLite"


class PersistenceFactory:
    """Builds the storage client named in configuration"""

    @staticmethod
    def get_client(db: Union[DatabaseType, str], fixtures_table: str, backup_table: str, **options) -> Client:
        """
        Args:
            db: Backend type (or its configured name, e.g. 'SQLite')
            fixtures_table: Table holding fixture fingerprints
            backup_table: Table holding unsent backups
            options: Backend specific settings (e.g. db_path)

        Raises:
            ValueError: If the backend is not supported
        """
        db_type = db if isinstance(db, DatabaseType) else DatabaseType(db)
        if db_type == DatabaseType.SQLITE:
            return SQLiteClient(fixtures_table, backup_table, **options)
        raise ValueError(f"Unsupported database: {db}")
