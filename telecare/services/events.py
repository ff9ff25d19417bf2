import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription:
    """Handle returned by subscribe(); unsubscribe() is idempotent."""

    def __init__(self, on_cancel: Callable[[], None]) -> None:
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._on_cancel()


class StateEvents(Generic[T]):
    """Publishes state snapshots to callbacks and async streams.

    After close() nothing is delivered and every open stream ends.
    """

    def __init__(self, stream_maxsize: int = 16) -> None:
        self._listeners: dict[int, Callable[[T], None]] = {}
        self._queues: set[asyncio.Queue] = set()
        self._next_id = 0
        self._stream_maxsize = stream_maxsize
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def listener_count(self) -> int:
        return len(self._listeners) + len(self._queues)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        if self._closed:
            raise RuntimeError("event stream is closed")
        key = self._next_id
        self._next_id += 1
        self._listeners[key] = callback
        return Subscription(lambda: self._listeners.pop(key, None))

    def publish(self, value: T) -> None:
        if self._closed:
            return
        for callback in list(self._listeners.values()):
            try:
                callback(value)
            except Exception as e:
                logger.exception("State listener failed: %s", e)
        for queue in list(self._queues):
            if queue.full():
                # Slow consumer: keep the newest snapshot
                queue.get_nowait()
            queue.put_nowait(value)

    async def stream(self) -> AsyncIterator[T]:
        """Yield each published snapshot until close() or the consumer stops."""
        if self._closed:
            return
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._stream_maxsize)
        self._queues.add(queue)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            self._queues.discard(queue)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        for queue in list(self._queues):
            while not queue.empty():
                queue.get_nowait()
            queue.put_nowait(_CLOSED)
