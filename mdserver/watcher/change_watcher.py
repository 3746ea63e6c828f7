"""
Filesystem change watcher.

Observes the content root recursively with watchdog and publishes a
ChangeEvent for every markdown file that is added, modified, deleted or
moved. Cache invalidation happens through the scanner and renderer
subscriptions on the same EventChannel.
"""

import logging
import os
import re
import threading
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from mdserver.config.server_config import WatchConfig
from mdserver.events import ChangeEvent, ChangeEventType, ChangeListener, EventChannel
from mdserver.exceptions import WatcherException
from mdserver.interfaces.components import IChangeWatcher

logger = logging.getLogger(__name__)


class MarkdownChangeHandler(FileSystemEventHandler):
    """Forward watchdog file events to the owning ChangeWatcher."""

    def __init__(self, watcher: "ChangeWatcher"):
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(ChangeEventType.ADDED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(ChangeEventType.CHANGED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(ChangeEventType.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(ChangeEventType.DELETED, event.src_path)
            self._watcher.dispatch(ChangeEventType.ADDED, event.dest_path)


class ChangeWatcher(IChangeWatcher):
    """
    Recursive watchdog observer over the content root.

    Implements the IChangeWatcher interface.

    start() and stop() are idempotent. Paths are matched against the ignore
    pattern in their root-relative, '/'-separated form.

    Example:
        >>> watcher = ChangeWatcher(WatchConfig(root_path=Path("docs")), channel)
        >>> watcher.add_listener(lambda event: print(event.name, event.payload))
        >>> watcher.start()
    """

    def __init__(
        self,
        config: WatchConfig,
        channel: Optional[EventChannel] = None,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        """
        Initialize the watcher.

        Args:
            config: Watch configuration
            channel: Channel to publish on; a private one is created if omitted
            observer_factory: Builds the watchdog observer (tests pass a fake)
        """
        self._config = config
        self._root = Path(config.root_path)
        self._extensions = tuple(ext.lower() for ext in config.supported_extensions)
        self._ignore = re.compile(config.ignore_pattern) if config.ignore_pattern else None
        self.channel = channel or EventChannel()
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        with self._lock:
            if self._observer is not None:
                return

            if not self._root.is_dir():
                raise WatcherException(
                    "Failed to start file watching: root directory does not exist",
                    {"root": str(self._root)},
                )

            observer = self._observer_factory()
            try:
                observer.schedule(MarkdownChangeHandler(self), str(self._root), recursive=True)
                observer.start()
            except OSError as e:
                raise WatcherException(
                    f"Failed to start file watching: {e}",
                    {"root": str(self._root)},
                ) from e

            self._observer = observer
            logger.info(f"Watching {self._root} for markdown changes")

    def stop(self) -> None:
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)
        logger.info(f"Stopped watching {self._root}")

    def add_listener(self, listener: ChangeListener) -> None:
        self.channel.subscribe(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        self.channel.unsubscribe(listener)

    def relative_path(self, absolute_path: str) -> Optional[str]:
        """Root-relative '/'-separated path, or None if outside the root."""
        try:
            relative = os.path.relpath(absolute_path, self._root)
        except ValueError:
            return None
        relative = relative.replace(os.sep, "/")
        if relative == ".." or relative.startswith("../"):
            return None
        return relative

    def should_handle(self, relative_path: str) -> bool:
        if self._ignore is not None and self._ignore.search(relative_path):
            return False
        return relative_path.lower().endswith(self._extensions)

    def dispatch(self, event_type: ChangeEventType, absolute_path) -> Optional[ChangeEvent]:
        """
        Publish a change for one path if it is a watched markdown file.

        Returns:
            The published event, or None when the path was filtered out
        """
        if isinstance(absolute_path, bytes):
            absolute_path = os.fsdecode(absolute_path)
        relative = self.relative_path(absolute_path)
        if relative is None or not self.should_handle(relative):
            return None

        event = ChangeEvent(type=event_type, path=relative)
        logger.debug(f"{event.name}: {relative}")
        self.channel.publish(event)
        return event
