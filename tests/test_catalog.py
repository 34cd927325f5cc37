from dataclasses import dataclass
from datetime import timedelta

import pytest

from euterpe.catalog import Catalog
from euterpe.database import MEMORY_DATABASE, Database
from euterpe.models import AlbumNotFoundError, ArtistNotFoundError

SCHEMA = """
CREATE TABLE artists (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);
CREATE UNIQUE INDEX unique_artist_name ON artists (name);
CREATE TABLE albums (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    fs_path TEXT NOT NULL
);
CREATE UNIQUE INDEX unique_album_path ON albums (name, fs_path);
CREATE TABLE tracks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    album_id INTEGER,
    artist_id INTEGER,
    name TEXT,
    number INTEGER,
    fs_path TEXT NOT NULL,
    duration INTEGER
);
CREATE UNIQUE INDEX unique_track_path ON tracks (fs_path);
"""


@dataclass
class MockMedia:
    artist: str
    album: str
    title: str
    track: int
    length: timedelta


@pytest.fixture
def catalog(tmp_path):
    (tmp_path / "library_schema.sql").write_text(SCHEMA, encoding="utf-8")
    db = Database(MEMORY_DATABASE, tmp_path)
    db.initialize()
    yield Catalog(db)
    db.close()


def _track_row(catalog, track_id):
    return catalog.database.execute(
        lambda conn: conn.execute(
            "SELECT name, number, duration, fs_path FROM tracks WHERE id = ?",
            (track_id,),
        ).fetchone()
    )


def test_pre_added_files(catalog):
    catalog.insert_media(
        MockMedia("Artist Testoff", "Album Of Tests", "Another One", 1, timedelta(seconds=3)),
        "/music/library/test_file_two.mp3",
    )

    with pytest.raises(ArtistNotFoundError):
        catalog.get_artist_id("doycho")

    artist_id = catalog.get_artist_id("Artist Testoff")

    with pytest.raises(AlbumNotFoundError):
        catalog.get_album_fs_paths_by_name("Album Of Not Being There")

    paths = catalog.get_album_fs_paths_by_name("Album Of Tests")
    assert paths == ["/music/library"]

    album_id = catalog.get_album_id("Album Of Tests", paths[0])

    with pytest.raises(LookupError):
        catalog.get_track_id("404 Not Found", artist_id, album_id)

    track_id = catalog.get_track_id("Another One", artist_id, album_id)
    assert _track_row(catalog, track_id) == (
        "Another One",
        1,
        3000,
        "/music/library/test_file_two.mp3",
    )


def test_albums_with_different_artists_share_id(catalog):
    tracks = [
        MockMedia("Buggy Bugoff", "Return Of The Bugs", "Payback", 1, timedelta(seconds=340)),
        MockMedia("Buggy Bugoff", "Return Of The Bugs", "Realization", 2, timedelta(seconds=345)),
        MockMedia("Off By One", "Return Of The Bugs", "Index By Index", 3, timedelta(seconds=244)),
    ]
    for media in tracks:
        catalog.insert_media(media, f"/media/return-of-the-bugs/{media.title}.mp3")

    album_ids = catalog.database.execute(
        lambda conn: {row[0] for row in conn.execute("SELECT album_id FROM tracks")}
    )
    assert len(album_ids) == 1
    assert catalog.get_album_fs_paths_by_name("Return Of The Bugs") == [
        "/media/return-of-the-bugs"
    ]
    assert catalog.get_artist_id("Buggy Bugoff") != catalog.get_artist_id("Off By One")


def test_different_albums_with_the_same_name(catalog):
    data = [
        (MockMedia("Buggy Bugoff", "Return Of The Bugs", "Payback", 1, timedelta(seconds=340)),
         "/media/return-of-the-bugs/track-1.mp3"),
        (MockMedia("Buggy Bugoff", "Return Of The Bugs", "Realization", 2, timedelta(seconds=345)),
         "/media/return-of-the-bugs/track-2.mp3"),
        (MockMedia("Off By One", "Return Of The Bugs", "Index By Index", 1, timedelta(seconds=244)),
         "/media/second-return-of-the-bugs/track-1.mp3"),
    ]
    for media, path in data:
        catalog.insert_media(media, path)

    paths = catalog.get_album_fs_paths_by_name("Return Of The Bugs")
    assert sorted(paths) == [
        "/media/return-of-the-bugs",
        "/media/second-return-of-the-bugs",
    ]
    ids = {catalog.get_album_id("Return Of The Bugs", p) for p in paths}
    assert len(ids) == 2


def test_adding_many_files(catalog):
    for i in range(100):
        media = MockMedia(f"artist {i}", f"album {i}", f"title {i} full", i, timedelta(seconds=123))
        catalog.insert_media(media, f"/path/to/file_{i}")

    assert catalog.database.table_size("tracks") == 100
    for i in (0, 42, 99):
        artist_id = catalog.get_artist_id(f"artist {i}")
        album_id = catalog.get_album_id(f"album {i}", "/path/to")
        track_id = catalog.get_track_id(f"title {i} full", artist_id, album_id)
        assert _track_row(catalog, track_id)[:2] == (f"title {i} full", i)


def test_missing_tags_use_defaults(catalog):
    track_id = catalog.insert_media(
        MockMedia("  ", "", "", 0, timedelta(0)), "/songs/untagged.mp3"
    )
    assert catalog.get_artist_id("Unknown") >= 1
    assert catalog.get_album_fs_paths_by_name("Unknown") == ["/songs"]
    assert _track_row(catalog, track_id)[0] == "untagged.mp3"


def test_reinserting_path_updates_track(catalog):
    first = catalog.insert_media(
        MockMedia("A", "B", "Broken File", 1, timedelta(seconds=1)), "/m/x.mp3"
    )
    second = catalog.insert_media(
        MockMedia("A", "B", "Another One", 2, timedelta(seconds=2)), "/m/x.mp3"
    )
    assert first == second
    assert catalog.database.table_size("tracks") == 1
    assert _track_row(catalog, first) == ("Another One", 2, 2000, "/m/x.mp3")


def test_set_ids_are_stable(catalog):
    artist_id = catalog.set_artist_id("Somebody")
    assert catalog.set_artist_id("Somebody") == artist_id
    album_id = catalog.set_album_id("Record", "/a")
    assert catalog.set_album_id("Record", "/a") == album_id
    assert catalog.set_album_id("Record", "/b") != album_id


def test_album_fs_path_by_id(catalog):
    album_id = catalog.set_album_id("Record", "/records/one")
    assert catalog.get_album_fs_path_by_id(album_id) == "/records/one"
    with pytest.raises(AlbumNotFoundError):
        catalog.get_album_fs_path_by_id(album_id + 1000)


def test_media_exists(catalog):
    assert catalog.media_exists("/m/song.mp3") is False
    catalog.insert_media(
        MockMedia("A", "B", "Song", 1, timedelta(seconds=5)), "/m/song.mp3"
    )
    assert catalog.media_exists("/m/song.mp3") is True


def test_media_exists_on_closed_database(catalog):
    catalog.database.close()
    assert catalog.media_exists("/m/song.mp3") is False