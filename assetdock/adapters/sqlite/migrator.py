"""
SQLite schema migrations.

Migration files are applied in file-name order and recorded in the
_migrations table. Only the part of a file before "-- Down" is executed.
"""

import logging
import sqlite3
from pathlib import Path

from assetdock.core.errors import DatabaseError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
DOWN_MARKER = "-- Down"


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str | Path = MIGRATIONS_DIR):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def available(self) -> list[str]:
        return sorted(p.name for p in self.migrations_dir.glob("*.sql"))

    def applied(self, conn: sqlite3.Connection) -> set[str]:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS _migrations ("
            "id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "filename TEXT UNIQUE NOT NULL, "
            "applied_at DATETIME DEFAULT CURRENT_TIMESTAMP)"
        )
        return {row[0] for row in conn.execute("SELECT filename FROM _migrations")}

    def run_migrations(self) -> list[str]:
        """Apply pending migrations. Returns the file names applied by this call."""
        conn = sqlite3.connect(self.db_path)
        try:
            done = self.applied(conn)
            pending = [name for name in self.available() if name not in done]
            for name in pending:
                self._apply(conn, name)
            logger.info("Schema up to date (%d migration(s) applied)", len(pending))
            return pending
        except sqlite3.Error as e:
            raise DatabaseError(f"Migration bookkeeping failed: {e}") from e
        finally:
            conn.close()

    def _apply(self, conn: sqlite3.Connection, name: str) -> None:
        script = (self.migrations_dir / name).read_text().split(DOWN_MARKER, 1)[0]
        logger.info("Applying migration %s", name)
        try:
            conn.executescript(script)
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (name,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Migration {name} failed: {e}") from e
