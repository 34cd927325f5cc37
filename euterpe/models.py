"""Data types shared by the media library."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import BinaryIO, Protocol, runtime_checkable

# Used when a media tag is missing. Many files with missing tags collapse
# into a single artist or album with this name.
UNKNOWN_LABEL = "Unknown"


@dataclass
class SearchResult:
    """A single media file found in the library."""

    id: int = 0
    artist_id: int = 0
    artist: str = ""
    album_id: int = 0
    album: str = ""
    title: str = ""
    track_number: int = 0
    format: str = ""
    duration: int = 0  # milliseconds

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "artist_id": self.artist_id,
            "artist": self.artist,
            "album_id": self.album_id,
            "album": self.album,
            "title": self.title,
            "track": self.track_number,
            "format": self.format,
            "duration": self.duration,
        }


@dataclass
class Artist:
    """An artist from the database."""

    id: int
    name: str

    def to_dict(self) -> dict:
        return {"artist_id": self.id, "artist": self.name}


@dataclass
class Album:
    """An album from the database."""

    id: int
    name: str
    artist: str = ""

    def to_dict(self) -> dict:
        return {"album_id": self.id, "album": self.name, "artist": self.artist}


@runtime_checkable
class MediaFile(Protocol):
    """What a media object must provide to be inserted into the library."""

    @property
    def artist(self) -> str: ...

    @property
    def album(self) -> str: ...

    @property
    def title(self) -> str: ...

    @property
    def track(self) -> int: ...

    @property
    def length(self) -> timedelta: ...


class AlbumNotFoundError(LookupError):
    """No album could be found for a particular operation."""

    def __init__(self, message: str = "Album Not Found") -> None:
        super().__init__(message)


class ArtistNotFoundError(LookupError):
    """No artist could be found for a particular operation."""

    def __init__(self, message: str = "Artist Not Found") -> None:
        super().__init__(message)


class ArtworkError(Exception):
    """Some kind of artwork problem."""

    def __init__(self, message: str = "Artwork Not Found") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class OSFileSystem:
    """File system access backed by the operating system."""

    def open(self, name: str | os.PathLike) -> BinaryIO:
        return open(name, "rb")

    def stat(self, name: str | os.PathLike) -> os.stat_result:
        return os.stat(name)