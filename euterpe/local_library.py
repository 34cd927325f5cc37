"""The local media library: files on local storage indexed in SQLite."""

from __future__ import annotations

import logging
import os
import sqlite3
from typing import Any, BinaryIO, Callable, Union

from .catalog import Catalog
from .database import Database
from .models import MediaFile, OSFileSystem, SearchResult

log = logging.getLogger(__name__)

TagReader = Callable[[str], MediaFile]
ImageSource = Union[bytes, bytearray, BinaryIO]

# Only files a browser player can handle are kept in the library.
SUPPORTED_FORMATS = frozenset(
    {".mp3", ".ogg", ".oga", ".wav", ".fla", ".flac", ".m4a", ".opus", ".webm"}
)

THUMBNAIL_WIDTH = 60

_TRACK_COLUMNS = """
    t.id AS track_id,
    t.name AS track,
    al.name AS album,
    at.name AS artist,
    at.id AS artist_id,
    t.number AS track_number,
    t.album_id AS album_id,
    t.fs_path AS fs_path,
    t.duration AS duration
"""

_TRACK_JOINS = """
    tracks AS t
        LEFT JOIN albums AS al ON al.id = t.album_id
        LEFT JOIN artists AS at ON at.id = t.artist_id
"""


def _extension(path: str) -> str:
    base = os.path.basename(path)
    _, dot, suffix = base.rpartition(".")
    return dot + suffix if dot else ""


def is_supported_format(path: str) -> bool:
    """Whether the file at ``path`` is a media file the library keeps."""
    base = os.path.basename(path)
    ext = _extension(path)
    if not ext or base == ext:
        # Files such as "path/to/.hidden" have no extension, only a name.
        return False
    return ext.lower() in SUPPORTED_FORMATS


def _media_format(fs_path: str) -> str:
    return _extension(fs_path).lstrip(".").lower()


def _row_to_result(row: tuple) -> SearchResult | None:
    (track_id, title, album, artist, artist_id, number, album_id, fs_path, duration) = row
    if None in (track_id, title, album, artist, artist_id, number, album_id, fs_path):
        return None
    return SearchResult(
        id=track_id,
        title=title,
        album=album,
        artist=artist,
        artist_id=artist_id,
        track_number=number,
        album_id=album_id,
        format=_media_format(fs_path),
        duration=duration or 0,
    )


class LocalLibrary:
    """A media library made of files found on the local storage."""

    def __init__(
        self,
        database_path: str | os.PathLike,
        sql_dir: str | os.PathLike,
        tag_reader: TagReader | None = None,
        filesystem: Any = None,
    ) -> None:
        self.filesystem = filesystem if filesystem is not None else OSFileSystem()
        self.database = Database(database_path, sql_dir, self.filesystem)
        self.catalog = Catalog(self.database)
        self.tag_reader = tag_reader
        self.paths: list[str] = []
        self.scaler: Any = None

    def initialize(self) -> None:
        """Prepare the database; run once every time a library is created."""
        self.database.initialize()

    def close(self) -> None:
        """Close the database. Safe to call many times."""
        self.database.close()

    def truncate(self) -> None:
        """Close the library and remove its database file."""
        self.database.truncate()

    def __enter__(self) -> "LocalLibrary":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def add_library_path(self, path: str) -> None:
        """Add a directory to be scanned and watched; missing paths are ignored."""
        try:
            self.filesystem.stat(path)
        except OSError as err:
            log.error("error adding path: %s", err)
            return
        self.paths.append(path)

    def search(self, term: str) -> list[SearchResult]:
        """Find tracks whose title, album or artist contains ``term``."""
        pattern = f"%{term}%"

        def work(conn: sqlite3.Connection) -> list[tuple]:
            return conn.execute(
                f"""
                SELECT {_TRACK_COLUMNS}
                FROM {_TRACK_JOINS}
                WHERE
                    t.name LIKE ? OR
                    al.name LIKE ? OR
                    at.name LIKE ?
                ORDER BY
                    al.name, t.number
                """,
                (pattern, pattern, pattern),
            ).fetchall()

        return self._collect(work, "search")

    def get_album_files(self, album_id: int) -> list[SearchResult]:
        """Return all tracks of the album with this ID."""

        def work(conn: sqlite3.Connection) -> list[tuple]:
            return conn.execute(
                f"""
                SELECT {_TRACK_COLUMNS}
                FROM {_TRACK_JOINS}
                WHERE t.album_id = ?
                ORDER BY al.name, t.number
                """,
                (album_id,),
            ).fetchall()

        return self._collect(work, "get album files")

    def _collect(self, work: Callable, what: str) -> list[SearchResult]:
        try:
            rows = self.database.execute(work)
        except (sqlite3.Error, RuntimeError) as err:
            log.error("Error executing %s db work: %s", what, err)
            return []

        results = []
        for row in rows:
            result = _row_to_result(row)
            if result is None:
                log.warning("Error scanning search result: incomplete row %r", row)
                continue
            results.append(result)
        return results

    def get_file_path(self, track_id: int) -> str:
        """Return the file system path of a track, or "" when it is unknown."""
        try:
            row = self.database.execute(
                lambda conn: conn.execute(
                    "SELECT fs_path FROM tracks WHERE id = ?", (track_id,)
                ).fetchone()
            )
        except (sqlite3.Error, RuntimeError) as err:
            log.error("Error getting file path: %s", err)
            return ""
        if row is None:
            log.warning("No file path for track %s", track_id)
            return ""
        return row[0]

    def remove_file(self, file_path: str) -> None:
        """Forget the track stored for this file."""
        full_path = os.path.abspath(file_path)
        try:
            self.database.execute(
                lambda conn: conn.execute(
                    "DELETE FROM tracks WHERE fs_path = ?", (full_path,)
                )
            )
        except (sqlite3.Error, RuntimeError) as err:
            log.error("Error removing %s: %s", full_path, err)

    def remove_directory(self, dir_path: str) -> None:
        """Forget every track stored under this directory."""
        # The trailing slash makes sure only whole directories match.
        match = dir_path.rstrip("/") + "/%"
        try:
            self.database.execute(
                lambda conn: conn.execute(
                    "DELETE FROM tracks WHERE fs_path LIKE ?", (match,)
                )
            )
        except (sqlite3.Error, RuntimeError) as err:
            log.error("Error removing %s: %s", dir_path, err)

    def add_media(self, filename: str) -> None:
        """Read the tags of a file and add it to the library if it is new."""
        filename = os.path.normpath(filename)

        if self.catalog.media_exists(filename):
            return

        self.filesystem.stat(filename)

        if self.tag_reader is None:
            raise RuntimeError("no tag reader set for the local library")

        try:
            media = self.tag_reader(filename)
        except Exception as err:
            raise OSError(f"Tag reading error for {filename}: {err}") from err

        self.catalog.insert_media(media, filename)

    def set_scaler(self, scaler: Any) -> None:
        """Use this image scaler for artwork thumbnails."""
        self.scaler = scaler

    def scale_thumbnail(self, img: ImageSource) -> bytes:
        """Scale an image to a small JPEG thumbnail."""
        if self.scaler is None:
            raise RuntimeError("no image scaler set for the local library")
        try:
            return self.scaler.scale(img, THUMBNAIL_WIDTH)
        except ValueError as err:
            raise ValueError(f"scaling failed: {err}") from err