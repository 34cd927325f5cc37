"""Watching library directories and keeping the database in step with them."""

from __future__ import annotations

import logging
import os
import stat
import threading
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .local_library import is_supported_format

log = logging.getLogger(__name__)


class _EventForwarder(FileSystemEventHandler):
    """Passes every file system event on to a LibraryWatcher."""

    def __init__(self, watcher: "LibraryWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            self._watcher.handle_event(event)
        except Exception as err:  # a bad event must not stop the observer
            log.error("Directory watcher error: %s", err)


class LibraryWatcher:
    """Watches library directories and applies their changes to the library.

    New directories are watched and scanned, new files are added, deleted
    files are removed, deleted directories are unwatched and forgotten and
    modified files are read again.
    """

    def __init__(self, library: Any, scanner: Any = None) -> None:
        self.library = library
        self.scanner = scanner
        self._lock = threading.RLock()
        self._observer: Any = None
        self._watches: dict[str, Any] = {}
        self._handler = _EventForwarder(self)

    @property
    def running(self) -> bool:
        with self._lock:
            return self._observer is not None

    @property
    def watched(self) -> frozenset[str]:
        """The directories currently watched."""
        with self._lock:
            return frozenset(self._watches)

    def start(self) -> bool:
        """Start the watcher unless it runs already; return whether it runs.

        On failure the problem is logged and the watcher stays stopped: the
        library works without it, only new files are not noticed.
        """
        with self._lock:
            if self._observer is not None:
                return True
            observer = Observer()
            try:
                observer.start()
            except Exception as err:
                log.error(
                    "Directory watcher was not initialized properly. "
                    "New files will not be added to the library. Reason: %s",
                    err,
                )
                return False
            self._observer = observer
        return True

    def watch(self, path: str | os.PathLike) -> None:
        """Start watching the directory ``path``."""
        name = os.fspath(path)
        with self._lock:
            if self._observer is None:
                raise RuntimeError("directory watcher is not started")
            if name in self._watches:
                return
            self._watches[name] = self._observer.schedule(
                self._handler, name, recursive=False
            )

    def unwatch(self, path: str | os.PathLike) -> None:
        """Stop watching the directory ``path``."""
        name = os.fspath(path)
        with self._lock:
            if self._observer is None:
                raise RuntimeError("directory watcher is not started")
            try:
                watch = self._watches.pop(name)
            except KeyError:
                raise LookupError(f"{name} is not watched") from None
            try:
                self._observer.unschedule(watch)
            except (OSError, KeyError) as err:
                log.warning("error removing watch for %s: %s", name, err)

    def handle_event(self, event: FileSystemEvent) -> None:
        """Apply one file system event to the library."""
        kind = event.event_type
        name = os.fsdecode(event.src_path)

        if kind == EVENT_TYPE_MOVED:
            self._removed(name)
            dest = os.fsdecode(getattr(event, "dest_path", "") or "")
            if dest:
                self._changed(dest, created=True)
            return

        if kind == EVENT_TYPE_DELETED:
            self._removed(name)
        elif kind == EVENT_TYPE_CREATED:
            self._changed(name, created=True)
        elif kind == EVENT_TYPE_MODIFIED:
            self._changed(name, created=False)
        # Opening, closing and attribute changes leave the library as it is.

    def _removed(self, name: str) -> None:
        if is_supported_format(name):
            self.library.remove_file(name)
            return

        # Not a media file, so it was probably a directory.
        try:
            self.unwatch(name)
        except (LookupError, RuntimeError) as err:
            log.warning("error removing watcher for %s: %s", name, err)
        self.library.remove_directory(name)

    def _changed(self, name: str, created: bool) -> None:
        try:
            st = self.library.filesystem.stat(name)
        except OSError as err:
            log.warning("Watch event stat received error: %s", err)
            return

        is_dir = stat.S_ISDIR(st.st_mode)

        if created and is_dir:
            try:
                self.watch(name)
            except Exception as err:
                log.error("error starting a watcher for %s: %s", name, err)
            if self.scanner is not None:
                self.scanner.scan_path(name)
            return

        if is_dir or not is_supported_format(name):
            return

        if created:
            try:
                self.library.add_media(name)
            except Exception as err:
                log.error("error adding newly created file: %s", err)
            return

        self.library.remove_file(name)
        try:
            self.library.add_media(name)
        except Exception as err:
            log.error("error adding modified file: %s", err)

    def stop(self) -> None:
        """Stop watching every directory and stop the watcher."""
        with self._lock:
            observer = self._observer
            self._observer = None
            self._watches.clear()
        if observer is None:
            return
        observer.stop()
        observer.join()
        log.info("Directory watcher event receiver stopped.")