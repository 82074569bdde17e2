"""
Filesystem watch source.

Adapts a watchdog Observer into a stream of filtered ChangeEvents. The
observer's thread calls back into the debouncer directly.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..models.runtime import ChangeEvent
from ..validation import ConfigurationError, WatchSourceFailure

logger = logging.getLogger(__name__)


class ChangeEventHandler(FileSystemEventHandler):
    """
    Turns watchdog events into ChangeEvents for relevant paths.

    Args:
        sink: Receives each relevant ChangeEvent
        is_relevant: Path predicate (ignore globs and extension filter)
        files: Individually watched files; events for their siblings are dropped
        dirs: Recursively watched directories
    """

    def __init__(self, sink: Callable[[ChangeEvent], None], is_relevant: Callable[[Path], bool],
                 files: Iterable[Path] = (), dirs: Iterable[Path] = ()):
        super().__init__()
        self.sink = sink
        self.is_relevant = is_relevant
        self.files: Set[Path] = set(files)
        self.dirs: List[Path] = list(dirs)

    def _is_watched(self, path: Path) -> bool:
        if path in self.files:
            return True
        for root in self.dirs:
            if path == root or root in path.parents:
                return True
        return False

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if event.event_type in ("opened", "closed_no_write"):
            return

        paths = [event.src_path]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(dest)

        now = time.monotonic()
        for raw in paths:
            if isinstance(raw, bytes):
                raw = raw.decode(errors="replace")
            path = Path(raw).resolve()
            if not self._is_watched(path) or not self.is_relevant(path):
                continue
            logger.debug(f"Change: {event.event_type} {path}")
            self.sink(ChangeEvent(path=path, timestamp=now))


class WatchSource:
    """
    Schedules the session's watch paths on a watchdog Observer.

    Directories are watched recursively. A single file is watched through its
    parent directory, restricted to that file. Missing paths are skipped.

    Args:
        paths: Watch paths from configuration
        sink: Receives each relevant ChangeEvent
        is_relevant: Path predicate
        observer_factory: Creates the observer (injectable for tests)
    """

    def __init__(self, paths: Iterable[Path], sink: Callable[[ChangeEvent], None],
                 is_relevant: Callable[[Path], bool],
                 observer_factory: Callable[[], Observer] = Observer):
        self.paths = [Path(p) for p in paths]
        self.sink = sink
        self.is_relevant = is_relevant
        self._observer_factory = observer_factory
        self.observer: Optional[Observer] = None
        self.handler: Optional[ChangeEventHandler] = None

    def start(self) -> None:
        """
        Start watching.

        Raises:
            ConfigurationError: If none of the watch paths exists
            WatchSourceFailure: If the observer cannot be started
        """
        files: List[Path] = []
        dirs: List[Path] = []
        for p in self.paths:
            if not p.exists():
                logger.warning(f"Watch path missing (skipped): {p}")
                continue
            absolute = p.resolve()
            (dirs if absolute.is_dir() else files).append(absolute)

        if not files and not dirs:
            raise ConfigurationError("no watch paths exist")

        self.handler = ChangeEventHandler(self.sink, self.is_relevant, files=files, dirs=dirs)
        observer = self._observer_factory()
        try:
            for d in dirs:
                observer.schedule(self.handler, str(d), recursive=True)
                logger.info(f"Watching {d}")
            for parent in sorted({f.parent for f in files}):
                if any(parent == d or d in parent.parents for d in dirs):
                    continue
                observer.schedule(self.handler, str(parent), recursive=False)
            for f in files:
                logger.info(f"Watching {f}")
            observer.start()
        except OSError as e:
            raise WatchSourceFailure(f"failed to start file watcher: {e}") from e
        self.observer = observer

    def is_alive(self) -> bool:
        return self.observer is not None and self.observer.is_alive()

    def stop(self, timeout: float = 5.0) -> None:
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join(timeout)
        self.observer = None
