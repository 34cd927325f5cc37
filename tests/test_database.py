import sqlite3

import pytest

from euterpe.database import MEMORY_DATABASE, Database

SCHEMA = """
CREATE TABLE artists (
    id INTEGER PRIMARY KEY,
    name TEXT
);
CREATE TABLE albums (
    id INTEGER PRIMARY KEY,
    name TEXT,
    fs_path TEXT
);
CREATE TABLE tracks (
    id INTEGER PRIMARY KEY,
    album_id INTEGER,
    artist_id INTEGER,
    name TEXT,
    number INTEGER,
    fs_path TEXT UNIQUE,
    duration INTEGER
);
"""


@pytest.fixture
def sql_dir(tmp_path):
    directory = tmp_path / "sqls"
    directory.mkdir()
    (directory / "library_schema.sql").write_text(SCHEMA)
    return directory


def _write_migration(sql_dir, name, up, down="SELECT 1;"):
    migrations = sql_dir / "migrations"
    migrations.mkdir(exist_ok=True)
    (migrations / name).write_text(
        f"-- +migrate Up\n{up}\n-- +migrate Down\n{down}\n"
    )


def _columns(db, table):
    return db.execute(
        lambda conn: [row[1] for row in conn.execute(f"PRAGMA table_info({table})")]
    )


def test_initialize_creates_tables(tmp_path, sql_dir):
    db_file = tmp_path / "library.db"
    db_file.touch()
    with Database(db_file, sql_dir) as db:
        db.initialize()
        assert db_file.stat().st_size > 0
        for table in ("albums", "tracks", "artists"):
            count = db.execute(
                lambda conn, t=table: conn.execute(
                    f"SELECT count(id) AS cnt FROM {t}"
                ).fetchone()[0]
            )
            assert count == 0


def test_truncate_removes_file(tmp_path, sql_dir):
    db_file = tmp_path / "library.db"
    db_file.touch()
    db = Database(db_file, sql_dir)
    db.initialize()
    db.truncate()
    assert not db_file.exists()
    assert db.closed


def test_truncate_with_foreign_filesystem_keeps_file(tmp_path, sql_dir):
    class _FakeFS:
        def stat(self, name):
            raise FileNotFoundError(name)

    db_file = tmp_path / "library.db"
    db = Database(db_file, sql_dir, _FakeFS())
    db.initialize()
    db.truncate()
    assert db_file.exists()


def test_memory_database_and_table_size(sql_dir):
    db = Database(MEMORY_DATABASE, sql_dir)
    db.initialize()
    db.execute(lambda conn: conn.execute("INSERT INTO artists (name) VALUES ('A')"))
    db.execute(lambda conn: conn.execute("INSERT INTO artists (name) VALUES ('B')"))
    assert db.table_size("artists") == 2
    assert db.table_size("tracks") == 0
    assert db.table_size("no_such_table") == 0
    db.truncate()
    assert db.closed


def test_execute_returns_job_result(sql_dir):
    with Database(MEMORY_DATABASE, sql_dir) as db:
        assert db.execute(lambda conn: conn.execute("SELECT 40 + 2").fetchone()[0]) == 42


def test_execute_after_close_raises(sql_dir):
    db = Database(MEMORY_DATABASE, sql_dir)
    db.close()
    db.close()
    with pytest.raises(RuntimeError):
        db.execute(lambda conn: conn.execute("SELECT 1"))
    with pytest.raises(RuntimeError):
        db.initialize()


def test_empty_schema_raises(tmp_path):
    directory = tmp_path / "empty"
    directory.mkdir()
    (directory / "library_schema.sql").write_text("")
    with Database(MEMORY_DATABASE, directory) as db:
        with pytest.raises(ValueError, match="SQL schema was empty"):
            db.initialize()


def test_missing_schema_raises(tmp_path):
    with Database(MEMORY_DATABASE, tmp_path) as db:
        with pytest.raises(OSError, match="error opening schema file"):
            db.initialize()


def test_migrations_are_applied_once(tmp_path, sql_dir):
    _write_migration(sql_dir, "1_bio.sql", "ALTER TABLE artists ADD COLUMN bio TEXT;")
    db_file = tmp_path / "library.db"
    with Database(db_file, sql_dir) as db:
        db.initialize()
        assert "bio" in _columns(db, "artists")
    with Database(db_file, sql_dir) as db:
        db.initialize()
        applied = db.execute(
            lambda conn: [r[0] for r in conn.execute("SELECT id FROM gorp_migrations")]
        )
        assert applied == ["1_bio.sql"]


def test_migrations_order_is_numeric(sql_dir):
    _write_migration(sql_dir, "10_second.sql", "ALTER TABLE extra ADD COLUMN b TEXT;")
    _write_migration(sql_dir, "2_first.sql", "CREATE TABLE extra (a TEXT);")
    with Database(MEMORY_DATABASE, sql_dir) as db:
        db.initialize()
        assert _columns(db, "extra") == ["a", "b"]


def test_unknown_applied_migration_stops_plan(tmp_path, sql_dir):
    db_file = tmp_path / "library.db"
    with Database(db_file, sql_dir) as db:
        db.initialize()
        db.execute(
            lambda conn: conn.execute(
                "INSERT INTO gorp_migrations (id) VALUES ('zzz_unknown.sql')"
            )
        )
    _write_migration(sql_dir, "1_bio.sql", "ALTER TABLE artists ADD COLUMN bio TEXT;")
    with Database(db_file, sql_dir) as db:
        db.initialize()
        assert "bio" not in _columns(db, "artists")


def test_broken_migration_raises(sql_dir):
    _write_migration(sql_dir, "1_broken.sql", "ALTER TABLE missing ADD COLUMN x TEXT;")
    with Database(MEMORY_DATABASE, sql_dir) as db:
        with pytest.raises(sqlite3.Error, match="1_broken.sql"):
            db.initialize()
        applied = db.execute(
            lambda conn: conn.execute("SELECT count(*) FROM gorp_migrations").fetchone()[0]
        )
        assert applied == 0