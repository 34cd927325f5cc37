"""Removal of stale tracks, albums and artists from the library database."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
import time
from typing import Any

log = logging.getLogger(__name__)

# Seconds the clean-up rests after each batch of work.
CLEANUP_PAUSE = 5.0

# Number of records selected from the database per batch.
BATCH_LIMIT = 100


class LibraryCleaner:
    """Walks the library database and removes records which are no longer valid."""

    def __init__(
        self,
        library: Any,
        pause: float = CLEANUP_PAUSE,
        batch_limit: int = BATCH_LIMIT,
    ) -> None:
        self.library = library
        self.pause = pause
        self.batch_limit = batch_limit
        self._lock = threading.Lock()
        self._running = False

    @property
    def _database(self) -> Any:
        return self.library.database

    def run(self) -> bool:
        """Clean tracks, then albums, then artists.

        Returns False without doing anything when a clean-up is already running.
        """
        with self._lock:
            if self._running:
                log.info("Previous cleanup operation is already running.")
                return False
            self._running = True

        try:
            self.cleanup_tracks()
            self.cleanup_albums()
            self.cleanup_artists()
        finally:
            with self._lock:
                self._running = False
        return True

    def cleanup_tracks(self) -> int:
        """Remove tracks missing from the file system; return how many were removed."""
        total = self._database.table_size("tracks")
        if total == 0:
            return 0

        removed = 0
        cursor = 0
        while True:
            def get_tracks(conn: sqlite3.Connection, offset: int = cursor) -> list[tuple]:
                return conn.execute(
                    "SELECT id, fs_path FROM tracks ORDER BY id LIMIT ?, ?",
                    (offset, self.batch_limit),
                ).fetchall()

            try:
                tracks = self._database.execute(get_tracks)
            except (sqlite3.Error, RuntimeError) as err:
                log.error("Error getting tracks during cleanup: %s", err)
                return removed

            cursor += self.batch_limit
            removed += self._remove_stale_tracks(tracks)

            if cursor >= total:
                break
            time.sleep(self.pause)

        return removed

    def cleanup_albums(self) -> int:
        """Remove albums which have no tracks; return how many were removed."""
        return self._cleanup_dangling("albums", "album_id", ("albums_artworks",))

    def cleanup_artists(self) -> int:
        """Remove artists which have no tracks; return how many were removed."""
        return self._cleanup_dangling("artists", "artist_id", ())

    def _cleanup_dangling(
        self, table: str, column: str, related: tuple[str, ...]
    ) -> int:
        removed = 0
        while True:
            def get_ids(conn: sqlite3.Connection) -> list[int]:
                rows = conn.execute(
                    f"""
                    SELECT a.id
                    FROM {table} a
                    LEFT JOIN tracks t ON a.id = t.{column}
                    WHERE t.id IS NULL
                    LIMIT ?
                    """,
                    (self.batch_limit,),
                ).fetchall()
                return [row[0] for row in rows]

            try:
                ids = self._database.execute(get_ids)
            except (sqlite3.Error, RuntimeError) as err:
                log.error("Error getting %s during cleanup: %s", table, err)
                return removed

            for record_id in ids:
                if self._remove_if_unused(table, column, related, record_id):
                    removed += 1

            if len(ids) < self.batch_limit:
                break
            time.sleep(self.pause)

        return removed

    def _remove_if_unused(
        self, table: str, column: str, related: tuple[str, ...], record_id: int
    ) -> bool:
        def work(conn: sqlite3.Connection) -> bool:
            count = conn.execute(
                f"SELECT COUNT(*) AS cnt FROM tracks WHERE {column} = ?",
                (record_id,),
            ).fetchone()[0]
            # Tracks may have been added since this record was scheduled for removal.
            if count > 0:
                return False
            conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
            for other in related:
                conn.execute(f"DELETE FROM {other} WHERE {column} = ?", (record_id,))
            return True

        try:
            return self._database.execute(work)
        except (sqlite3.Error, RuntimeError) as err:
            log.error("Error deleting %s %d: %s", table, record_id, err)
            return False

    def _remove_stale_tracks(self, tracks: list[tuple]) -> int:
        """Remove tracks with unclean paths or which no longer exist on disk."""
        removed = 0
        for track_id, fs_path in tracks:
            if os.path.normpath(fs_path) != fs_path:
                # The normal scan inserts it again under its clean path.
                log.info("Removing duplicate %d - '%s'", track_id, fs_path)
                self._delete_track(fs_path)
                removed += 1
                continue

            try:
                self.library.filesystem.stat(fs_path)
                continue
            except FileNotFoundError:
                pass
            except OSError:
                continue

            log.info("Removing non existent %d - '%s'", track_id, fs_path)
            self.library.remove_file(fs_path)
            removed += 1
        return removed

    def _delete_track(self, fs_path: str) -> None:
        try:
            self._database.execute(
                lambda conn: conn.execute(
                    "DELETE FROM tracks WHERE fs_path = ?", (fs_path,)
                )
            )
        except (sqlite3.Error, RuntimeError) as err:
            log.error("Error removing %s: %s", fs_path, err)