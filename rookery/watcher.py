"""File watching for Rookery.

Wraps a watchdog Observer over the project's ``site/`` directory and turns
file system events into ChangeSets delivered to registered callbacks.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .project import Project


@dataclass
class ChangeSet:
    """Paths added, modified and removed by one notification."""

    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.added) + len(self.modified) + len(self.removed)


ChangeCallback = Callable[[ChangeSet], None]


def change_set_for(event: FileSystemEvent) -> ChangeSet | None:
    """Translate a watchdog event into a ChangeSet.

    Returns None for directory events and event types that do not change
    file paths (opened, closed).
    """
    if event.is_directory:
        return None
    src = str(event.src_path)
    if event.event_type == "created":
        return ChangeSet(added=[src])
    if event.event_type == "modified":
        return ChangeSet(modified=[src])
    if event.event_type == "deleted":
        return ChangeSet(removed=[src])
    if event.event_type == "moved":
        return ChangeSet(added=[str(event.dest_path)], removed=[src])
    return None


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: Watcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event):
        changes = change_set_for(event)
        if changes is not None:
            self.watcher.notify(changes)


class Watcher:
    """Watches ``site/`` recursively and reports changes to callbacks.

    Attributes:
        project: Project whose site directory is watched.
    """

    def __init__(self, project: Project):
        self.project = project
        self._callbacks: list[ChangeCallback] = []
        self._observer: Observer | None = None

    def on_change(self, callback: ChangeCallback) -> ChangeCallback:
        """Register a callback; usable as a decorator."""
        self._callbacks.append(callback)
        return callback

    def notify(self, changes: ChangeSet) -> None:
        for callback in list(self._callbacks):
            callback(changes)

    def start(self) -> None:
        observer = Observer()
        observer.schedule(_ChangeHandler(self), str(self.project.site_dir), recursive=True)
        observer.start()
        self._observer = observer

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None
