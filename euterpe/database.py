"""SQLite storage for the media library: opening, schema and migrations."""

from __future__ import annotations

import logging
import os
import re
import sqlite3
import threading
from pathlib import Path
from typing import Any, Callable, TypeVar

from .models import OSFileSystem

log = logging.getLogger(__name__)

T = TypeVar("T")

# Path which makes the database live in memory only.
MEMORY_DATABASE = ":memory:"

SCHEMA_FILE = "library_schema.sql"
MIGRATIONS_DIRECTORY = "migrations"
MIGRATIONS_TABLE = "gorp_migrations"

_UP_MARKER = "-- +migrate up"
_DOWN_MARKER = "-- +migrate down"


def _migration_sort_key(name: str) -> tuple:
    match = re.match(r"^(\d+)", name)
    if match:
        return (0, int(match.group(1)), name)
    return (1, 0, name)


def _up_section(text: str) -> str:
    lines = []
    in_up = False
    for line in text.splitlines():
        marker = line.strip().lower()
        if marker.startswith(_UP_MARKER):
            in_up = True
            continue
        if marker.startswith(_DOWN_MARKER):
            in_up = False
            continue
        if marker.startswith("-- +migrate"):
            continue
        if in_up:
            lines.append(line)
    return "\n".join(lines)


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class Database:
    """A serialised connection to the library's SQLite database."""

    def __init__(
        self,
        path: str | os.PathLike,
        sql_dir: str | os.PathLike,
        filesystem: Any = None,
    ) -> None:
        self.path = os.fspath(path)
        self.sql_dir = Path(sql_dir)
        self.filesystem = filesystem if filesystem is not None else OSFileSystem()
        self._lock = threading.RLock()
        self._closed = False
        self._conn = sqlite3.connect(
            self.path, check_same_thread=False, isolation_level=None
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def execute(self, job: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``job`` with the connection, one job at a time, and return its result."""
        with self._lock:
            if self._closed:
                raise RuntimeError("database is closed")
            return job(self._conn)

    def table_size(self, table: str) -> int:
        """Return the number of rows in ``table``, or 0 on error."""
        name = '"' + table.replace('"', '""') + '"'

        def work(conn: sqlite3.Connection) -> int:
            return conn.execute(f"SELECT COUNT(*) AS cnt FROM {name}").fetchone()[0]

        try:
            return self.execute(work)
        except (sqlite3.Error, RuntimeError) as err:
            log.warning("Query for getting %s count not successful: %s", table, err)
            return 0

    def initialize(self) -> None:
        """Create the schema for a new database and apply pending migrations."""
        if self._closed:
            raise RuntimeError("library is not opened")

        if self._has_data():
            self._apply_migrations()
            return

        schema = self._read_schema()
        for query in schema.split(";"):
            query = query.strip()
            if query:
                self.execute(lambda conn, q=query: conn.execute(q))

        self._apply_migrations()

    def _has_data(self) -> bool:
        if self.path == MEMORY_DATABASE:
            return False
        try:
            return self.filesystem.stat(self.path).st_size > 0
        except OSError:
            return False

    def _read_schema(self) -> str:
        schema_path = self.sql_dir / SCHEMA_FILE
        try:
            schema = schema_path.read_text(encoding="utf-8")
        except OSError as err:
            raise OSError(f"error opening schema file: {err}") from err
        if not schema:
            raise ValueError("SQL schema was empty")
        return schema

    def _migrations(self) -> list[tuple[str, str]]:
        directory = self.sql_dir / MIGRATIONS_DIRECTORY
        if not directory.is_dir():
            return []
        files = sorted(
            (p for p in directory.iterdir() if p.is_file() and p.suffix == ".sql"),
            key=lambda p: _migration_sort_key(p.name),
        )
        return [(p.name, p.read_text(encoding="utf-8")) for p in files]

    def _apply_migrations(self) -> None:
        migrations = self._migrations()

        def work(conn: sqlite3.Connection) -> None:
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} "
                "(id TEXT NOT NULL PRIMARY KEY, applied_at DATETIME)"
            )
            applied = {
                row[0] for row in conn.execute(f"SELECT id FROM {MIGRATIONS_TABLE}")
            }
            known = {name for name, _ in migrations}
            unknown = sorted(applied - known)
            if unknown:
                log.error(
                    "Error applying database migrations: unknown migration in "
                    "database: %s",
                    unknown[0],
                )
                return

            for name, text in migrations:
                if name in applied:
                    continue
                script = (
                    "BEGIN;\n"
                    f"{_up_section(text)}\n;\n"
                    f"INSERT INTO {MIGRATIONS_TABLE} (id, applied_at) "
                    f"VALUES ({_quote(name)}, datetime('now'));\n"
                    "COMMIT;"
                )
                try:
                    conn.executescript(script)
                except sqlite3.Error as err:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise sqlite3.Error(
                        f"executing db migration {name} failed: {err}"
                    ) from err

        self.execute(work)

    def close(self) -> None:
        """Close the connection. Safe to call many times."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._conn.close()

    def truncate(self) -> None:
        """Close the database and remove its file, leaving no traces."""
        self.close()
        if self.path == MEMORY_DATABASE:
            return
        if not isinstance(self.filesystem, OSFileSystem):
            return
        os.remove(self.path)

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()