"""Artist, album and track records of the media library."""

from __future__ import annotations

import logging
import os
import sqlite3
from datetime import timedelta

from .database import Database
from .models import UNKNOWN_LABEL, AlbumNotFoundError, ArtistNotFoundError, MediaFile

log = logging.getLogger(__name__)


class Catalog:
    """Reads and writes the artist, album and track tables."""

    def __init__(self, database: Database) -> None:
        self.database = database
        # While a full rescan runs, mismatching insert IDs are expected.
        self.running_rescan = False

    def media_exists(self, filename: str) -> bool:
        """Whether a track with this file system path is already in the library."""

        def work(conn: sqlite3.Connection) -> bool:
            row = conn.execute(
                "SELECT count(id) FROM tracks WHERE fs_path = ?", (filename,)
            ).fetchone()
            return row[0] >= 1

        try:
            return self.database.execute(work)
        except (sqlite3.Error, RuntimeError) as err:
            log.error("error checking whether media exists already: %s", err)
            return False

    def get_artist_id(self, artist: str) -> int:
        """Return the ID of ``artist``; raise ArtistNotFoundError when missing."""
        row = self.database.execute(
            lambda conn: conn.execute(
                "SELECT id FROM artists WHERE name = ?", (artist,)
            ).fetchone()
        )
        if row is None:
            raise ArtistNotFoundError()
        return row[0]

    def set_artist_id(self, artist: str) -> int:
        """Return the ID of ``artist``, inserting it when it is new."""
        if not artist:
            artist = UNKNOWN_LABEL

        try:
            return self.get_artist_id(artist)
        except LookupError:
            pass

        last_id = self.database.execute(
            lambda conn: conn.execute(
                "INSERT INTO artists (name) VALUES (?)", (artist,)
            ).lastrowid
        )

        try:
            new_id = self.get_artist_id(artist)
        except LookupError as err:
            raise LookupError(
                f"getting the ID of inserted artist failed: {err}"
            ) from err

        log.info("Inserted artist id: %d, name: %s", new_id, artist)
        if last_id != new_id:
            log.warning(
                "Wrong ID returned for artist `%s` on insert. Returned: %s, actual: %d.",
                artist,
                last_id,
                new_id,
            )
        return new_id

    def get_album_id(self, album: str, fs_path: str) -> int:
        """Return the ID of the album at ``fs_path``; raise AlbumNotFoundError when missing."""
        row = self.database.execute(
            lambda conn: conn.execute(
                "SELECT id FROM albums WHERE name = ? AND fs_path = ?",
                (album, fs_path),
            ).fetchone()
        )
        if row is None:
            raise AlbumNotFoundError()
        return row[0]

    def set_album_id(self, album: str, fs_path: str) -> int:
        """Return the ID of the album, inserting it when it is new.

        Albums with the same name in different directories get separate IDs.
        """
        if not album:
            album = UNKNOWN_LABEL

        try:
            return self.get_album_id(album, fs_path)
        except LookupError:
            pass

        def insert(conn: sqlite3.Connection) -> int | None:
            try:
                return conn.execute(
                    "INSERT INTO albums (name, fs_path) VALUES (?, ?)",
                    (album, fs_path),
                ).lastrowid
            except sqlite3.Error as err:
                raise sqlite3.Error(f"executing album insert: {err}") from err

        last_id = self.database.execute(insert)

        try:
            new_id = self.get_album_id(album, fs_path)
        except LookupError as err:
            raise LookupError(f"could not get ID of inserted album: {err}") from err

        log.info("Inserted album id: %d, name: %s, path: %s", new_id, album, fs_path)
        if last_id != new_id:
            log.warning(
                "Wrong ID returned for album `%s` (%s) on insert. "
                "Returned: %s, actual: %d.",
                album,
                fs_path,
                last_id,
                new_id,
            )
        return new_id

    def get_track_id(self, title: str, artist_id: int, album_id: int) -> int:
        """Return the ID of a track; raise LookupError when missing."""
        row = self.database.execute(
            lambda conn: conn.execute(
                "SELECT id FROM tracks WHERE name = ? AND artist_id = ? AND album_id = ?",
                (title, artist_id, album_id),
            ).fetchone()
        )
        if row is None:
            raise LookupError("Track Not Found")
        return row[0]

    def set_track_id(
        self,
        title: str,
        fs_path: str,
        track_number: int,
        artist_id: int,
        album_id: int,
        duration: int,
    ) -> int:
        """Insert a track, or update the one already at ``fs_path``, and return its ID."""
        if not title:
            title = os.path.basename(fs_path)

        params = {
            "name": title,
            "album_id": album_id,
            "artist_id": artist_id,
            "fs_path": fs_path,
            "number": track_number,
            "duration": duration,
        }

        last_id = self.database.execute(
            lambda conn: conn.execute(
                """
                INSERT INTO
                    tracks (name, album_id, artist_id, fs_path, number, duration)
                VALUES
                    (:name, :album_id, :artist_id, :fs_path, :number, :duration)
                ON CONFLICT (fs_path) DO
                UPDATE SET
                    name = :name,
                    album_id = :album_id,
                    artist_id = :artist_id,
                    number = :number,
                    duration = :duration
                """,
                params,
            ).lastrowid
        )

        row = self.database.execute(
            lambda conn: conn.execute(
                "SELECT id FROM tracks WHERE fs_path = ?", (fs_path,)
            ).fetchone()
        )
        if row is None:
            raise LookupError(f"track at {fs_path} missing after insert")
        track_id = row[0]

        log.info(
            "Inserted id: %d, name: %s, album ID: %d, artist ID: %d, "
            "number: %d, dur: %d, fs_path: %s",
            track_id,
            title,
            album_id,
            artist_id,
            track_number,
            duration,
            fs_path,
        )
        if not self.running_rescan and last_id != track_id:
            log.warning(
                "Wrong ID returned for track `%s` on insert. Returned: %s, actual: %d.",
                fs_path,
                last_id,
                track_id,
            )
        return track_id

    def get_album_fs_paths_by_name(self, album_name: str) -> list[str]:
        """Return every directory holding a version of the named album."""
        rows = self.database.execute(
            lambda conn: conn.execute(
                "SELECT fs_path FROM albums WHERE name = ?", (album_name,)
            ).fetchall()
        )
        if not rows:
            raise AlbumNotFoundError()
        return [row[0] for row in rows]

    def get_album_fs_path_by_id(self, album_id: int) -> str:
        """Return the directory of the album with this ID."""
        row = self.database.execute(
            lambda conn: conn.execute(
                "SELECT fs_path FROM albums WHERE id = ?", (album_id,)
            ).fetchone()
        )
        if row is None:
            raise AlbumNotFoundError()
        return row[0]

    def insert_media(self, media: MediaFile, file_path: str) -> int:
        """Store an already parsed media file found at ``file_path``; return its track ID."""
        artist_id = self.set_artist_id(media.artist.strip())

        file_dir = os.path.dirname(file_path) or "."
        album_id = self.set_album_id(media.album.strip(), file_dir)

        length = media.length
        duration = length // timedelta(milliseconds=1) if length else 0

        return self.set_track_id(
            media.title.strip(),
            file_path,
            int(media.track),
            artist_id,
            album_id,
            duration,
        )