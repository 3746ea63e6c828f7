"""
Change events and the channel that carries them.

The watcher publishes ChangeEvents on an EventChannel; the scanner and the
renderer subscribe to drop stale cache entries, and any further listeners
(the SSE stream, CLI hooks, tests) are notified afterwards.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class ChangeEventType(str, Enum):
    """Kinds of markdown file changes."""
    ADDED = "fileAdded"
    CHANGED = "fileChanged"
    DELETED = "fileDeleted"


@dataclass(frozen=True)
class ChangeEvent:
    """
    A change to one markdown file.

    Attributes:
        type: What happened to the file
        path: Path relative to the content root, '/'-separated
    """
    type: ChangeEventType
    path: str

    @property
    def name(self) -> str:
        """Event name as sent to clients."""
        return self.type.value

    @property
    def payload(self) -> dict:
        """Event payload as sent to clients."""
        return {"path": self.path}


ChangeListener = Callable[[ChangeEvent], None]


class EventChannel:
    """
    Ordered set of listeners for ChangeEvents.

    Listeners run synchronously, in subscription order, on the publishing
    thread. A failing listener is logged and skipped; it never affects the
    publisher or the remaining listeners.
    """

    def __init__(self):
        # dict keeps insertion order and gives set semantics
        self._listeners: Dict[ChangeListener, None] = {}
        self._lock = threading.Lock()

    def subscribe(self, listener: ChangeListener) -> None:
        """Register a listener. Subscribing twice is a no-op."""
        with self._lock:
            self._listeners[listener] = None

    def unsubscribe(self, listener: ChangeListener) -> None:
        """Remove a listener if present."""
        with self._lock:
            self._listeners.pop(listener, None)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every listener.

        Returns:
            Number of listeners that handled the event without raising
        """
        with self._lock:
            listeners = list(self._listeners)

        delivered = 0
        for listener in listeners:
            try:
                listener(event)
                delivered += 1
            except Exception:
                logger.exception(f"Error in change listener {listener!r} for {event.name} {event.path}")
        return delivered


class ChangeEventStream:
    """
    Bridge from an EventChannel to an asyncio queue.

    Events published on any thread are handed to the owning event loop with
    call_soon_threadsafe. Use as an async context manager so the
    subscription is always removed.

    Example:
        >>> async with ChangeEventStream(channel) as stream:
        ...     event = await stream.get()
    """

    def __init__(self, channel: EventChannel, max_queue: int = 100):
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _on_event(self, event: ChangeEvent) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._enqueue, event)

    def _enqueue(self, event: ChangeEvent) -> None:
        if self._queue.full():
            # Slow consumer: drop the oldest event rather than block the watcher
            self._queue.get_nowait()
        self._queue.put_nowait(event)

    async def __aenter__(self) -> "ChangeEventStream":
        self._loop = asyncio.get_running_loop()
        self._channel.subscribe(self._on_event)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._channel.unsubscribe(self._on_event)
        self._loop = None

    async def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Wait for the next event; None when the timeout elapses first."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
