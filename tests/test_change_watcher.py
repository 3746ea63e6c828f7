"""
Tests for the ChangeWatcher.

The watchdog observer is replaced by a fake so events can be driven
synchronously through the handler.
"""

import os

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from mdserver.config.server_config import RendererConfig, ScannerConfig, ServerConfig, WatchConfig
from mdserver.events import ChangeEventType
from mdserver.exceptions import WatcherException
from mdserver.factories.server_factory import ServerFactory
from mdserver.watcher.change_watcher import ChangeWatcher, MarkdownChangeHandler


class FakeObserver:
    """Stands in for watchdog's Observer."""

    instances = []

    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False
        self.joined = False
        FakeObserver.instances.append(self)

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((handler, path, recursive))

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        self.joined = True

    @property
    def handler(self):
        return self.scheduled[0][0]


class FailingObserver(FakeObserver):
    def start(self):
        raise OSError(28, "inotify watch limit reached")


@pytest.fixture(autouse=True)
def clear_instances():
    FakeObserver.instances.clear()
    yield
    FakeObserver.instances.clear()


@pytest.fixture
def root(tmp_path):
    (tmp_path / "guide").mkdir()
    return tmp_path


@pytest.fixture
def watcher(root):
    return ChangeWatcher(WatchConfig(root_path=root), observer_factory=FakeObserver)


@pytest.fixture
def received(watcher):
    """Collect events published by the watcher."""
    events = []
    watcher.add_listener(events.append)
    return events


class TestStartStop:
    """Tests for the watcher lifecycle."""

    def test_start_schedules_recursive_watch(self, watcher, root):
        watcher.start()

        observer = FakeObserver.instances[0]
        assert watcher.is_running
        assert observer.started
        handler, path, recursive = observer.scheduled[0]
        assert isinstance(handler, MarkdownChangeHandler)
        assert path == str(root)
        assert recursive is True

    def test_start_is_idempotent(self, watcher):
        watcher.start()
        watcher.start()
        assert len(FakeObserver.instances) == 1

    def test_stop_is_idempotent(self, watcher):
        watcher.start()
        watcher.stop()
        watcher.stop()

        observer = FakeObserver.instances[0]
        assert observer.stopped and observer.joined
        assert not watcher.is_running

    def test_stop_without_start(self, watcher):
        watcher.stop()
        assert not watcher.is_running

    def test_restart_creates_new_observer(self, watcher):
        watcher.start()
        watcher.stop()
        watcher.start()
        assert len(FakeObserver.instances) == 2
        assert watcher.is_running

    def test_missing_root(self, tmp_path):
        watcher = ChangeWatcher(WatchConfig(root_path=tmp_path / "missing"), observer_factory=FakeObserver)

        with pytest.raises(WatcherException):
            watcher.start()
        assert not watcher.is_running

    def test_observer_failure_is_wrapped(self, root):
        watcher = ChangeWatcher(WatchConfig(root_path=root), observer_factory=FailingObserver)

        with pytest.raises(WatcherException) as exc_info:
            watcher.start()

        assert isinstance(exc_info.value.__cause__, OSError)
        assert not watcher.is_running


class TestHandlerEvents:
    """Tests for mapping watchdog events to change events."""

    def _handler(self, watcher):
        watcher.start()
        return FakeObserver.instances[0].handler

    def test_created(self, watcher, received, root):
        self._handler(watcher).dispatch(FileCreatedEvent(str(root / "guide" / "new.md")))

        assert len(received) == 1
        assert received[0].type == ChangeEventType.ADDED
        assert received[0].path == "guide/new.md"

    def test_modified(self, watcher, received, root):
        self._handler(watcher).dispatch(FileModifiedEvent(str(root / "a.md")))
        assert [(e.name, e.path) for e in received] == [("fileChanged", "a.md")]

    def test_deleted(self, watcher, received, root):
        self._handler(watcher).dispatch(FileDeletedEvent(str(root / "a.md")))
        assert [(e.name, e.path) for e in received] == [("fileDeleted", "a.md")]

    def test_moved_is_delete_then_add(self, watcher, received, root):
        self._handler(watcher).dispatch(
            FileMovedEvent(str(root / "old.md"), str(root / "guide" / "new.md"))
        )
        assert [(e.name, e.path) for e in received] == [
            ("fileDeleted", "old.md"),
            ("fileAdded", "guide/new.md"),
        ]

    def test_directory_events_ignored(self, watcher, received, root):
        self._handler(watcher).dispatch(DirCreatedEvent(str(root / "folder.md")))
        assert received == []

    def test_non_markdown_ignored(self, watcher, received, root):
        self._handler(watcher).dispatch(FileModifiedEvent(str(root / "image.png")))
        assert received == []


class TestDispatch:
    """Tests for path filtering in dispatch()."""

    def test_ignore_pattern(self, watcher, received, root):
        assert watcher.dispatch(ChangeEventType.CHANGED, str(root / "node_modules" / "x.md")) is None
        assert watcher.dispatch(ChangeEventType.CHANGED, str(root / ".git" / "x.md")) is None
        assert received == []

    def test_extension_case_insensitive(self, watcher, root):
        event = watcher.dispatch(ChangeEventType.ADDED, str(root / "NOTES.MD"))
        assert event is not None
        assert event.path == "NOTES.MD"

    def test_path_outside_root(self, watcher, root):
        outside = root.parent / "elsewhere.md"
        assert watcher.dispatch(ChangeEventType.ADDED, str(outside)) is None

    def test_bytes_path(self, watcher, root):
        event = watcher.dispatch(ChangeEventType.ADDED, os.fsencode(str(root / "a.md")))
        assert event.path == "a.md"

    def test_custom_ignore_pattern(self, root):
        watcher = ChangeWatcher(
            WatchConfig(root_path=root, ignore_pattern=r"^drafts/"),
            observer_factory=FakeObserver,
        )
        assert watcher.dispatch(ChangeEventType.ADDED, str(root / "drafts" / "a.md")) is None
        assert watcher.dispatch(ChangeEventType.ADDED, str(root / "node_modules" / "a.md")) is not None

    def test_failing_listener_isolated(self, watcher, received, root):
        def broken(event):
            raise RuntimeError("listener failed")

        watcher.channel.subscribe(broken)
        watcher.dispatch(ChangeEventType.CHANGED, str(root / "a.md"))

        assert len(received) == 1

    def test_remove_listener(self, watcher, received, root):
        watcher.remove_listener(received.append)
        watcher.dispatch(ChangeEventType.CHANGED, str(root / "a.md"))
        assert received == []


class TestCacheInvalidation:
    """Watcher events reach the scanner and renderer caches."""

    @pytest.fixture
    def components(self, root):
        (root / "guide" / "intro.md").write_text("# Intro\n", encoding="utf-8")
        config = ServerConfig(
            scanner=ScannerConfig(root_path=root),
            renderer=RendererConfig(root_path=root),
            watch=WatchConfig(root_path=root),
        )
        return ServerFactory().create(config)

    @pytest.mark.asyncio
    async def test_change_clears_tree_and_page(self, components, root):
        await components.scanner.get_tree()
        await components.renderer.render_file("guide/intro.md")

        components.watcher.dispatch(ChangeEventType.CHANGED, str(root / "guide" / "intro.md"))

        assert components.scanner.cache_stats()["size"] == 0
        assert components.renderer.cache_stats()["size"] == 0

    @pytest.mark.asyncio
    async def test_other_file_change_keeps_page(self, components, root):
        await components.renderer.render_file("guide/intro.md")

        components.watcher.dispatch(ChangeEventType.ADDED, str(root / "other.md"))

        assert components.renderer.cache_stats()["keys"] == ["guide/intro.md"]

    @pytest.mark.asyncio
    async def test_caches_invalidate_before_other_listeners(self, components, root):
        seen = []

        def listener(event):
            seen.append(components.scanner.cache_stats()["size"])

        components.watcher.add_listener(listener)
        await components.scanner.get_tree()

        components.watcher.dispatch(ChangeEventType.DELETED, str(root / "a.md"))

        assert seen == [0]
