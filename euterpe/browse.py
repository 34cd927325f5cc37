"""Paged browsing of artists and albums."""

from __future__ import annotations

import enum
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any

from .models import Album, Artist

log = logging.getLogger(__name__)


class Order(enum.Enum):
    """Sort direction."""

    ASC = "ASC"
    DESC = "DESC"


class OrderBy(enum.Enum):
    """Property to sort by."""

    NAME = "name"
    ID = "id"


@dataclass
class BrowseArgs:
    """Which page to return and how to sort it."""

    page: int = 0
    per_page: int = 10
    order: Order = Order.ASC
    order_by: OrderBy = OrderBy.NAME


def _order_clause(prefix: str, args: BrowseArgs) -> str:
    column = f"{prefix}.id" if args.order_by is OrderBy.ID else f"{prefix}.name"
    direction = "DESC" if args.order is Order.DESC else "ASC"
    return f"{column} {direction}"


class LibraryBrowser:
    """Browses the artists and albums of a local library page by page."""

    def __init__(self, library: Any) -> None:
        self.library = library

    @property
    def _database(self) -> Any:
        return self.library.database

    def browse_artists(self, args: BrowseArgs) -> tuple[list[Artist], int]:
        """Return one page of artists and the number of all artists."""
        count = self._database.table_size("artists")

        def work(conn: sqlite3.Connection) -> list[tuple]:
            return conn.execute(
                f"""
                SELECT ar.id, ar.name
                FROM artists ar
                ORDER BY {_order_clause("ar", args)}
                LIMIT ?, ?
                """,
                (args.page * args.per_page, args.per_page),
            ).fetchall()

        try:
            rows = self._database.execute(work)
        except (sqlite3.Error, RuntimeError) as err:
            log.error("Error browse artist query: %s", err)
            return [], count

        return [Artist(id=row[0], name=row[1]) for row in rows], count

    def browse_albums(self, args: BrowseArgs) -> tuple[list[Album], int]:
        """Return one page of albums and the number of all albums with tracks."""

        def count_work(conn: sqlite3.Connection) -> int:
            return conn.execute(
                "SELECT COUNT(DISTINCT tr.album_id) AS cnt FROM tracks tr"
            ).fetchone()[0]

        try:
            count = self._database.execute(count_work)
        except (sqlite3.Error, RuntimeError) as err:
            log.error("Query for getting albums count not successful: %s", err)
            count = 0

        def work(conn: sqlite3.Connection) -> list[tuple]:
            return conn.execute(
                f"""
                SELECT
                    al.id,
                    al.name AS album_name,
                    CASE WHEN COUNT(DISTINCT tr.artist_id) = 1
                    THEN ar.name
                    ELSE 'Various Artists'
                    END AS artist_name
                FROM
                    tracks tr
                    LEFT JOIN albums al ON al.id = tr.album_id
                    LEFT JOIN artists ar ON ar.id = tr.artist_id
                GROUP BY
                    tr.album_id
                ORDER BY
                    {_order_clause("al", args)}
                LIMIT ?, ?
                """,
                (args.page * args.per_page, args.per_page),
            ).fetchall()

        try:
            rows = self._database.execute(work)
        except (sqlite3.Error, RuntimeError) as err:
            log.error("Error browse albums query: %s", err)
            return [], count

        albums = [
            Album(id=row[0], name=row[1], artist=row[2])
            for row in rows
            if row[0] is not None and row[1] is not None
        ]
        return albums, count