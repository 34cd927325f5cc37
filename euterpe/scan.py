"""Scanning library directories for media files and re-reading their tags."""

from __future__ import annotations

import logging
import os
import sqlite3
import stat
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterator

from .cleanup import LibraryCleaner
from .local_library import is_supported_format

log = logging.getLogger(__name__)

RESCAN_BATCH_SIZE = 500


@dataclass
class ScanSettings:
    """How gently the file system is scanned.

    ``initial_wait`` and ``sleep_per_operation`` are in seconds.
    """

    initial_wait: float = 0.0
    files_per_operation: int = 0
    sleep_per_operation: float = 0.0


def _walk(root: str) -> Iterator[tuple[str, bool]]:
    """Yield ``(path, is_dir)`` for ``root`` and everything below it, in lexical order."""
    try:
        st = os.lstat(root)
    except OSError as err:
        log.error("error while scanning %s: %s", root, err)
        return
    yield from _walk_entry(root, stat.S_ISDIR(st.st_mode))


def _walk_entry(path: str, is_dir: bool) -> Iterator[tuple[str, bool]]:
    yield path, is_dir
    if not is_dir:
        return
    try:
        with os.scandir(path) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as err:
        log.error("error while scanning %s: %s", path, err)
        return
    for entry in entries:
        try:
            entry_is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            entry_is_dir = False
        yield from _walk_entry(entry.path, entry_is_dir)


class LibraryScanner:
    """Finds media files in the library paths and adds them to the database."""

    def __init__(
        self,
        library: Any,
        settings: ScanSettings | None = None,
        fast: bool = False,
        cleaner: LibraryCleaner | None = None,
        watcher: Any = None,
    ) -> None:
        self.library = library
        self.settings = settings if settings is not None else ScanSettings()
        # When set, the settings for pausing while scanning are ignored.
        self.fast = fast
        self.cleaner = cleaner if cleaner is not None else LibraryCleaner(library)
        self.watcher = watcher
        self._active = 0
        self._idle = threading.Condition()

    def _wait_idle(self) -> None:
        with self._idle:
            self._idle.wait_for(lambda: self._active == 0)

    def scan(self) -> None:
        """Scan every library path, then clean up the database."""
        self._wait_idle()

        start = time.monotonic()
        if self.watcher is not None:
            self.watcher.start()

        initial_wait = self.settings.initial_wait
        if not self.fast and initial_wait > 0:
            log.info("Pausing initial library scan for %ss as configured", initial_wait)
            time.sleep(initial_wait)

        threads = [
            threading.Thread(target=self.scan_path, args=(path,), daemon=True)
            for path in list(self.library.paths)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self._wait_idle()
        log.info("Scanning took %.3fs", time.monotonic() - start)

        start = time.monotonic()
        self.cleaner.run()
        log.info("Cleaning up took %.3fs", time.monotonic() - start)

    def scan_path(self, scanned_path: str) -> None:
        """Walk one directory tree, adding supported media files and watching directories."""
        with self._idle:
            self._active += 1
        start = time.monotonic()
        try:
            self._walk_and_add(scanned_path)
        finally:
            log.info("Walking %s took %.3fs", scanned_path, time.monotonic() - start)
            with self._idle:
                self._active -= 1
                self._idle.notify_all()

    def _walk_and_add(self, scanned_path: str) -> None:
        per_operation = self.settings.files_per_operation
        sleep_time = self.settings.sleep_per_operation
        scanned_files = 0

        for path, is_dir in _walk(scanned_path):
            if is_supported_format(path):
                try:
                    self.library.add_media(path)
                except Exception as err:  # one bad file must not stop the scan
                    log.error("Error adding `%s`: %s", path, err)

            if self.watcher is not None and is_dir:
                try:
                    self.watcher.watch(path)
                except Exception as err:
                    log.error("Starting a file system watch for %s failed: %s", path, err)

            scanned_files += 1
            if (
                not self.fast
                and per_operation > 0
                and scanned_files >= per_operation
                and sleep_time > 0
            ):
                log.info(
                    "Scan limit of %d files reached for [%s], sleeping for %ss",
                    per_operation,
                    scanned_path,
                    sleep_time,
                )
                time.sleep(sleep_time)
                scanned_files = 0

    def rescan(self, stop_event: threading.Event | None = None) -> None:
        """Read the tags of every file in the database again and update its record."""
        reader = self.library.tag_reader
        if reader is None:
            raise RuntimeError("no tag reader set for the local library")

        catalog = self.library.catalog
        catalog.running_rescan = True
        try:
            cursor = 0
            while True:
                files = self._media_filenames(cursor, RESCAN_BATCH_SIZE, stop_event)
                if not files:
                    break
                cursor += len(files)

                for file_name in files:
                    try:
                        media = reader(file_name)
                    except Exception as err:
                        log.error("Tag reading error for %s: %s", file_name, err)
                        continue
                    try:
                        catalog.insert_media(media, file_name)
                    except (sqlite3.Error, LookupError, RuntimeError) as err:
                        log.error("failed updating file %s: %s", file_name, err)
        finally:
            catalog.running_rescan = False

    def _media_filenames(
        self, cursor: int, batch_size: int, stop_event: threading.Event | None
    ) -> list[str]:
        if stop_event is not None and stop_event.is_set():
            raise InterruptedError("rescan cancelled")

        def work(conn: sqlite3.Connection) -> list[str]:
            rows = conn.execute(
                "SELECT fs_path FROM tracks LIMIT ? OFFSET ?", (batch_size, cursor)
            ).fetchall()
            return [row[0] for row in rows]

        try:
            return self.library.database.execute(work)
        except (sqlite3.Error, RuntimeError) as err:
            raise RuntimeError(
                f"error getting media files from the db: getting files for cursor "
                f"{cursor} and batch size {batch_size} failed: {err}"
            ) from err