"""SQLite storage for fixture fingerprints and unsent backups"""
import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from ..fixtures.fingerprint import FixtureFingerprint
from ..fixtures.fixture import Fixture
from ..utils.logger import setup_logger
from ..utils.timezone import now_club
from .backup import Backup
from .client import Client, StoreReadError

logger = setup_logger(__name__)

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteClient(Client):
    """SQLite database manager for fixtures and backups"""

    def __init__(
        self,
        fixtures_table: str = "fixtures",
        backup_table: str = "backups",
        db_path: str = "data/tickets.db",
        clock: Callable[[], datetime] = now_club
    ):
        """Initialize database location (tables are created by init)"""
        for table in (fixtures_table, backup_table):
            if not TABLE_NAME_PATTERN.match(table):
                raise ValueError(f"Invalid table name: {table}")
        super().__init__(fixtures_table, backup_table, clock)
        self.db_path = Path(db_path)

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager"""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def init(self) -> bool:
        """Create tables if they don't exist"""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._get_connection() as conn:
                cursor = conn.cursor()

                cursor.execute(f"""
                    CREATE TABLE IF NOT EXISTS {self.fixtures_table} (
                        fixture TEXT PRIMARY KEY,
                        sales TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)

                cursor.execute(f"""
                    CREATE TABLE IF NOT EXISTS {self.backup_table} (
                        date TEXT PRIMARY KEY,
                        events TEXT NOT NULL,
                        attempts INTEGER NOT NULL DEFAULT 1
                    )
                """)

                conn.commit()
            return True
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Unable to initialise database {self.db_path}: {e}")
            return False

    def destroy(self) -> bool:
        """Drop both tables"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(f"DROP TABLE IF EXISTS {self.fixtures_table}")
                cursor.execute(f"DROP TABLE IF EXISTS {self.backup_table}")
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.error(f"Unable to drop tables: {e}")
            return False

    def get(self, fixture: Fixture) -> Optional[FixtureFingerprint]:
        """Get the stored fingerprint for a fixture"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"SELECT sales FROM {self.fixtures_table} WHERE fixture = ?",
                    (fixture.id,)
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreReadError(f"Unable to read fixture {fixture.id}: {e}") from e

        if row is None:
            return None
        try:
            return FixtureFingerprint.from_json(row['sales'])
        except ValueError as e:
            # An unreadable entry is overwritten as if the fixture were new
            logger.warning(f"Discarding malformed stored sales for {fixture.id}: {e}")
            return None

    def put(self, fixture: Fixture) -> bool:
        """Insert or replace a fixture's fingerprint"""
        fingerprint = fixture.fingerprint()
        if fingerprint is None:
            return False
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(f"""
                    INSERT OR REPLACE INTO {self.fixtures_table}
                    (fixture, sales, updated_at)
                    VALUES (?, ?, ?)
                """, (fixture.id, fingerprint.to_json(), self.clock().isoformat()))
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.error(f"Unable to store fixture {fixture.id}: {e}")
            return False

    def update(self, fixture: Fixture) -> bool:
        """Update an existing fixture's fingerprint"""
        fingerprint = fixture.fingerprint()
        if fingerprint is None:
            return False
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(f"""
                    UPDATE {self.fixtures_table}
                    SET sales = ?, updated_at = ?
                    WHERE fixture = ?
                """, (fingerprint.to_json(), self.clock().isoformat(), fixture.id))
                conn.commit()
                return cursor.rowcount == 1
        except sqlite3.Error as e:
            logger.error(f"Unable to update fixture {fixture.id}: {e}")
            return False

    def backup(self, backup: Backup) -> bool:
        """Store a backup with its attempt count, replacing any existing one for the same day"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(f"""
                    INSERT OR REPLACE INTO {self.backup_table}
                    (date, events, attempts)
                    VALUES (?, ?, ?)
                """, (backup.key, backup.to_json(), backup.attempts))
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.error(f"Unable to back up events for {backup.key}: {e}")
            return False

    def restore(self) -> List[Backup]:
        """Get all backups and bump their attempt counts"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(f"SELECT * FROM {self.backup_table} ORDER BY date ASC")
                rows = cursor.fetchall()
                cursor.execute(f"UPDATE {self.backup_table} SET attempts = attempts + 1")
                conn.commit()
            return [
                Backup.from_json(Backup.parse_date(row['date']), row['events'], row['attempts'] + 1)
                for row in rows
            ]
        except (sqlite3.Error, ValueError, KeyError, TypeError) as e:
            logger.error(f"Unable to restore backups: {e}")
            return []

    def reset(self, keys: List[str]) -> bool:
        """Remove backups by date key"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.executemany(
                    f"DELETE FROM {self.backup_table} WHERE date = ?",
                    [(key,) for key in keys]
                )
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.error(f"Unable to remove backups {keys}: {e}")
            return False
