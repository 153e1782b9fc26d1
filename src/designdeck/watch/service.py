"""Filesystem change monitor for the design directory."""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from designdeck.metadata import MetadataStore
from designdeck.workspace import WorkspaceLayout

LOGGER = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    """Normalized kinds of document change."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One logical change to a design document.

    Attributes:
        kind: What happened to the document.
        path: Absolute path of the document.
    """

    kind: ChangeKind
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


class ChangeCoalescer:
    """Collapse bursts of raw filesystem events into one event per path.

    A path is reported once it has been quiet for ``window`` seconds. The
    reported kind is derived from the net change in presence since the last
    report for that path, so a create followed by a delete of a previously
    unknown file reports nothing while the same sequence on a known file
    reports a deletion.
    """

    def __init__(self, window: float, known: Iterable[Path] = ()) -> None:
        self._window = max(0.0, window)
        self._present: set[Path] = set(known)
        self._pending: dict[Path, tuple[ChangeKind, float]] = {}

    @property
    def window(self) -> float:
        return self._window

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def add(self, kind: ChangeKind, path: Path, now: float) -> None:
        """Record a raw event for ``path`` observed at ``now``."""
        self._pending[path] = (kind, now)

    def next_deadline(self) -> Optional[float]:
        """Return the monotonic time at which the next path becomes due."""
        if not self._pending:
            return None
        return min(seen for _, seen in self._pending.values()) + self._window

    def drain(self, now: float, force: bool = False) -> list[ChangeEvent]:
        """Return logical events for every path whose window has elapsed.

        Args:
            now: Current monotonic time.
            force: Flush every pending path regardless of its window.
        """
        due = sorted(
            path
            for path, (_, seen) in self._pending.items()
            if force or now - seen >= self._window
        )
        events: list[ChangeEvent] = []
        for path in due:
            last_kind, _ = self._pending.pop(path)
            present = last_kind != ChangeKind.DELETED
            was_present = path in self._present
            if present and was_present:
                kind = ChangeKind.MODIFIED
            elif present:
                kind = ChangeKind.CREATED
                self._present.add(path)
            elif was_present:
                kind = ChangeKind.DELETED
                self._present.discard(path)
            else:
                continue
            events.append(ChangeEvent(kind=kind, path=path))
        return events


ChangeCallback = Callable[[list[ChangeEvent]], None]

_STOP = (None, None)


class DesignWatcher:
    """Watch the design directory and report debounced document changes."""

    def __init__(
        self,
        layout: WorkspaceLayout,
        store: MetadataStore,
        *,
        on_change: ChangeCallback | None = None,
        debounce_seconds: float = 0.3,
    ) -> None:
        """Initialize the watcher.

        Args:
            layout: Workspace layout providing the watched directory.
            store: Metadata store seeded for newly discovered documents.
            on_change: Callable invoked with each flushed batch of events.
            debounce_seconds: Coalescing window for raw filesystem events.
        """
        self._layout = layout
        self._store = store
        self._on_change = on_change
        self._debounce_seconds = max(0.05, debounce_seconds)
        self._queue: queue.Queue[tuple[ChangeKind | None, Path | None]] = queue.Queue()
        self._stop_event = threading.Event()
        self._observer: object | None = None
        self._thread: threading.Thread | None = None
        self._coalescer = ChangeCoalescer(self._debounce_seconds)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def reconcile(self) -> int:
        """Seed metadata for on-disk documents lacking a record.

        Returns:
            int: Number of records created.
        """
        names = [path.name for path in self._layout.list_design_files()]
        return self._store.reconcile(names)

    def start(self) -> None:
        """Reconcile metadata, then start the observer and the consumer thread.

        Raises:
            RuntimeError: If the watcher is already running.
        """
        if self._observer is not None:
            raise RuntimeError("DesignWatcher is already running.")

        self._layout.initialize()
        self.reconcile()
        self._coalescer = ChangeCoalescer(
            self._debounce_seconds, known=self._layout.list_design_files()
        )
        self._stop_event.clear()

        observer = Observer()
        handler = _DesignEventHandler(self._layout, self._queue)
        observer.schedule(handler, str(self._layout.designs_dir), recursive=False)
        observer.start()
        self._observer = observer

        self._thread = threading.Thread(target=self._run_loop, name="designdeck-watch", daemon=True)
        self._thread.start()
        LOGGER.info("Watching %s", self._layout.designs_dir)

    def stop(self) -> None:
        """Stop the observer and the consumer thread."""
        self._stop_event.set()
        observer = self._observer
        if observer is not None:
            observer.stop()  # type: ignore[attr-defined]
            observer.join(timeout=5)  # type: ignore[attr-defined]
            self._observer = None
        self._queue.put(_STOP)
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def submit(self, kind: ChangeKind, path: Path) -> None:
        """Queue a raw event as if it had come from the observer."""
        self._queue.put((kind, path))

    def process_events(self, events: list[ChangeEvent]) -> None:
        """Seed metadata for created documents and notify the callback."""
        if not events:
            return
        created = [event for event in events if event.kind == ChangeKind.CREATED]
        if created:
            known = [path.name for path in self._layout.list_design_files()]
            for event in created:
                try:
                    self._store.apply_default(event.name, known=known)
                except Exception as exc:
                    LOGGER.warning("Could not seed metadata for %s: %s", event.name, exc)
        for event in events:
            LOGGER.debug("Design file %s: %s", event.kind.value, event.path)
        if self._on_change is None:
            return
        try:
            self._on_change(events)
        except Exception:
            LOGGER.exception("Change callback failed for %d event(s)", len(events))

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            deadline = self._coalescer.next_deadline()
            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                kind, path = self._queue.get(timeout=timeout)
            except queue.Empty:
                kind, path = None, None
            else:
                if kind is None or path is None:
                    break
                self._coalescer.add(kind, path, time.monotonic())

            ready = self._coalescer.drain(time.monotonic())
            if ready:
                self.process_events(ready)

        leftover = self._coalescer.drain(time.monotonic(), force=True)
        if leftover:
            self.process_events(leftover)


class _DesignEventHandler(FileSystemEventHandler):
    """Forward watchdog events for tracked documents into the watcher queue."""

    def __init__(
        self,
        layout: WorkspaceLayout,
        queue_handle: queue.Queue[tuple[ChangeKind | None, Path | None]],
    ) -> None:
        self._layout = layout
        self._queue = queue_handle

    def on_created(self, event: FileSystemEvent) -> None:
        self._enqueue(ChangeKind.CREATED, event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._enqueue(ChangeKind.MODIFIED, event.src_path, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._enqueue(ChangeKind.DELETED, event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._enqueue(ChangeKind.DELETED, event.src_path, event.is_directory)
        self._enqueue(ChangeKind.CREATED, event.dest_path, event.is_directory)

    def _enqueue(self, kind: ChangeKind, raw_path: str | bytes, is_directory: bool) -> None:
        if is_directory or not raw_path:
            return
        path = Path(os.fsdecode(raw_path))
        if path.parent != self._layout.designs_dir:
            return
        if path.name.startswith(".") or not self._layout.is_design_file(path):
            return
        self._queue.put((kind, path))


__all__ = ["ChangeCallback", "ChangeCoalescer", "ChangeEvent", "ChangeKind", "DesignWatcher"]
