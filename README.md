# euterpe

A media library for a personal music server. It keeps a SQLite catalogue of
the audio files found under one or more directories and answers the questions
a player front-end asks: what matches this search, which tracks are on this
album, where is this track on disk, which artists and albums there are, page
by page. It can also keep the catalogue in step with the disk and scale
artwork down to thumbnails.

## Installing

```
pip install .
pip install ".[test]"   # with pytest, to run the tests
```

It needs Python 3.10 or later, Pillow for thumbnails and watchdog for
following changes on disk.

## Modules

| Module | Main names |
| --- | --- |
| `euterpe.models` | `SearchResult`, `Artist`, `Album`, `MediaFile`, `OSFileSystem`, `AlbumNotFoundError`, `ArtistNotFoundError`, `ArtworkError`, `UNKNOWN_LABEL` |
| `euterpe.database` | `Database`, `MEMORY_DATABASE` |
| `euterpe.catalog` | `Catalog` |
| `euterpe.local_library` | `LocalLibrary`, `is_supported_format`, `SUPPORTED_FORMATS`, `THUMBNAIL_WIDTH` |
| `euterpe.browse` | `LibraryBrowser`, `BrowseArgs`, `Order`, `OrderBy` |
| `euterpe.scan` | `LibraryScanner`, `ScanSettings` |
| `euterpe.cleanup` | `LibraryCleaner` |
| `euterpe.watch` | `LibraryWatcher` |
| `euterpe.scaler` | `Scaler`, `ScalerCancelledError` |
| `euterpe.version` | `print_version`, `VERSION` |

## The library

`LocalLibrary(database_path, sql_dir, tag_reader=None, filesystem=None)` opens
the SQLite database (`MEMORY_DATABASE`, that is `":memory:"`, keeps it in
memory only). `initialize()` runs `library_schema.sql` from `sql_dir` when the
database is new or empty, then applies the `.sql` files of `sql_dir/migrations`
in numeric order. Each migration's `-- +migrate up` section is run once and
recorded in the `gorp_migrations` table.

`tag_reader` is any callable that takes a file path and returns an object of
the `MediaFile` shape: `artist`, `album`, `title`, `track` and `length` (a
`timedelta`). The package does not read audio tags itself; `add_media` raises
`RuntimeError` when no reader is set.

```python
from euterpe.local_library import LocalLibrary, is_supported_format

with LocalLibrary("library.db", "sqls", tag_reader) as library:
    library.initialize()
    library.add_media("/music/album/01-track.flac")

    for result in library.search("bugs"):
        print(result.artist, result.album, result.title, result.format)

    tracks = library.get_album_files(result.album_id)
    path = library.get_file_path(result.id)

assert is_supported_format("song.MP3")
assert not is_supported_format("some/.mp3")
```

- Supported files are `.mp3`, `.ogg`, `.oga`, `.wav`, `.fla`, `.flac`,
  `.m4a`, `.opus` and `.webm`, matched case-insensitively. Hidden files such
  as `.mp3` with no other name are not media.
- `add_media` skips files already in the catalogue, raises `OSError` for
  missing files and for files whose tags cannot be read.
- Artist and album tags are trimmed; a missing one is stored as `Unknown`.
  A track with no title takes its file name. Albums with the same name in
  different directories are kept apart; tracks of one directory and album
  name share an album even when their artists differ.
- `search(term)` matches the term anywhere in the track, album or artist
  name, ordered by album name and track number. The search term is passed
  as a parameter, never spliced into SQL.
- `get_file_path` returns `""` for an unknown track.
- `remove_file` and `remove_directory` forget a file or every file below a
  directory.
- `close()` may be called many times; `truncate()` closes the library and
  deletes its database file (not for in-memory databases or when a custom
  file system object is given).

`Catalog` (as `library.catalog`) holds the lower-level lookups:
`get_artist_id`, `get_album_id`, `get_track_id` raise `LookupError`
subclasses when nothing is found; the `set_*` methods insert when needed and
return the ID; `get_album_fs_paths_by_name` and `get_album_fs_path_by_id`
raise `AlbumNotFoundError`; `insert_media(media, file_path)` stores an
already parsed `MediaFile` and returns the track ID. Inserting a track at an
existing path updates it.

## Browsing

```python
from euterpe.browse import LibraryBrowser, BrowseArgs, Order, OrderBy

browser = LibraryBrowser(library)
artists, total_artists = browser.browse_artists(
    BrowseArgs(page=0, per_page=20, order=Order.ASC, order_by=OrderBy.NAME)
)
albums, total_albums = browser.browse_albums(BrowseArgs(page=1, per_page=20))
```

Each call returns one page and the total count. The album count is the number
of albums that have tracks; an album whose tracks have more than one artist is
credited to `Various Artists`.

## Scanning, cleanup and watching

```python
from euterpe.scan import LibraryScanner, ScanSettings
from euterpe.watch import LibraryWatcher

library.add_library_path("/music")            # missing paths are ignored
scanner = LibraryScanner(
    library,
    ScanSettings(initial_wait=0, files_per_operation=100, sleep_per_operation=1.0),
)
watcher = LibraryWatcher(library, scanner)
scanner.watcher = watcher

scanner.scan()      # walk every path, then clean up
scanner.rescan()    # read the tags of every known file again
watcher.stop()
```

- `scan()` starts the watcher if one is given, waits `initial_wait` seconds,
  walks every library path in its own thread, adds supported files, watches
  every directory, and sleeps `sleep_per_operation` seconds after every
  `files_per_operation` entries. With `fast=True` the waits are skipped.
  When it is done it runs the cleaner.
- `rescan(stop_event=None)` updates the record of every file in the
  database; setting the event stops it with `InterruptedError`.
- `LibraryCleaner(library, pause=5.0, batch_limit=100).run()` removes tracks
  whose files are gone or whose paths are not clean, then albums (with their
  artwork rows) and artists left without tracks, in batches with `pause`
  seconds between them. It returns `False` when a clean-up is already running.
- `LibraryWatcher` follows changes on watched directories: new directories
  are watched and scanned, new supported files added, modified ones read
  again, deleted or moved ones forgotten, and deleted directories unwatched
  and forgotten.

## Thumbnails

```python
from euterpe.scaler import Scaler

with Scaler(workers=2) as scaler:
    jpeg_bytes = scaler.scale(open("cover.png", "rb"), 60, timeout=5)
```

`scale` accepts bytes or a binary file, keeps the aspect ratio, and returns a
JPEG; transparent parts become black. Data that is not an image raises
`ValueError` ("error decoding image"); a timeout raises `TimeoutError`. A
cancelled scaler refuses new work with `ScalerCancelledError` without reading
the image. `LocalLibrary.set_scaler(scaler)` and
`library.scale_thumbnail(img)` scale to `THUMBNAIL_WIDTH` (60) pixels.

## Version

`euterpe.version.print_version(out)` writes the version and the Python
build to a text stream.

## What it does not do

This is a library, not a server. It has no command-line program, no HTTP
server or web interface, no configuration file, no audio tag reader of its
own and no lookup of artwork from online services. An application wires
these pieces together and supplies the tag reader.