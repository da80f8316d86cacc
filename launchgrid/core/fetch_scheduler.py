"""
Icon fetch scheduler for LaunchGrid.

Issues icon-retrieval calls to an external collaborator with a fixed bound on
how many may be outstanding at once. Pending work is ordered by priority
(highest first) and then by enqueue time, and every key has at most one fetch
in flight: later requests for the same key attach to the existing outcome.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set
from dataclasses import dataclass, field
import asyncio
import itertools
import logging
import time

from .icon_cache import IconCache

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 6

# Event types published on the optional event bus
FETCH_STARTED = "icon.fetch_started"
ICON_RESOLVED = "icon.resolved"
ICON_MISSING = "icon.missing"

FetchIcon = Callable[[str], Awaitable[Optional[str]]]
OutcomeCallback = Callable[[Optional[str]], None]


class SharedOutcome:
    """One-shot broadcast channel shared by every requester of a key."""

    def __init__(self):
        self._callbacks: List[OutcomeCallback] = []
        self._settled = False
        self._value: Optional[str] = None

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def value(self) -> Optional[str]:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def subscribe(self, callback: OutcomeCallback) -> None:
        if self._settled:
            callback(self._value)
            return
        self._callbacks.append(callback)

    def unsubscribe(self, callback: OutcomeCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def settle(self, value: Optional[str]) -> None:
        if self._settled:
            return
        self._settled = True
        self._value = value
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(value)
            except Exception:
                logger.exception("Icon outcome subscriber failed")


@dataclass
class QueueEntry:
    """A fetch waiting for a free concurrency slot."""
    key: str
    priority: int
    enqueued_at: float
    sequence: int
    outcome: SharedOutcome = field(default_factory=SharedOutcome)
    cancelled: bool = False

    def sort_key(self):
        return (-self.priority, self.enqueued_at, self.sequence)


class IconRequest:
    """Awaitable, cancellable handle for one caller's interest in a key.

    Cancelling only detaches this caller. A fetch that is already running keeps
    running for any other attached caller and still fills the cache.
    """

    def __init__(self, key: str, future: asyncio.Future,
                 outcome: Optional[SharedOutcome] = None,
                 on_detach: Optional[Callable[["IconRequest"], None]] = None):
        self.key = key
        self.outcome = outcome
        self._future = future
        self._on_detach = on_detach
        self._detached = False
        if outcome is not None:
            outcome.subscribe(self._on_settled)
            self._future.add_done_callback(self._on_future_done)

    @classmethod
    def resolved(cls, key: str, payload: Optional[str],
                 loop: asyncio.AbstractEventLoop) -> "IconRequest":
        future = loop.create_future()
        future.set_result(payload)
        return cls(key, future)

    def _on_settled(self, payload: Optional[str]) -> None:
        if not self._future.done():
            self._future.set_result(payload)

    def _on_future_done(self, future: asyncio.Future) -> None:
        # an awaiting task may cancel the future without calling cancel()
        if future.cancelled():
            self._detach()

    def _detach(self) -> None:
        if self._detached:
            return
        self._detached = True
        if self.outcome is not None:
            self.outcome.unsubscribe(self._on_settled)
        if self._on_detach is not None:
            self._on_detach(self)

    def cancel(self) -> bool:
        """Stop waiting for the result. Returns False if it already arrived."""
        if self._future.done():
            return False
        self._detach()
        self._future.cancel()
        return True

    def cancelled(self) -> bool:
        return self._future.cancelled()

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> Optional[str]:
        return self._future.result()

    def add_done_callback(self, fn: Callable[[asyncio.Future], Any]) -> None:
        self._future.add_done_callback(fn)

    def __await__(self):
        return self._future.__await__()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled() else ("done" if self.done() else "pending")
        return f"<IconRequest key={self.key!r} {state}>"


class FetchScheduler:
    """Bounded-concurrency, priority-ordered, deduplicating icon fetch queue.

    All queue, slot and cache mutation runs synchronously on the event loop
    thread between awaits of the collaborator, so no locking is needed.
    """

    def __init__(self, fetch_icon: FetchIcon, cache: IconCache,
                 max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
                 max_pending: Optional[int] = None,
                 event_bus: Any = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")
        self._fetch_icon = fetch_icon
        self._cache = cache
        self._max_concurrency = max_concurrency
        self._max_pending = max_pending
        self._event_bus = event_bus
        self._loop = loop

        self._pending: List[QueueEntry] = []
        self._pending_by_key: Dict[str, QueueEntry] = {}
        self._in_flight: Dict[str, SharedOutcome] = {}
        self._active = 0
        self._tasks: Set[asyncio.Task] = set()
        self._sequence = itertools.count()
        self._closed = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def pending_count(self) -> int:
        return sum(1 for entry in self._pending if not entry.cancelled)

    @property
    def in_flight_keys(self) -> List[str]:
        return list(self._in_flight)

    def request(self, key: str, priority: int = 0) -> IconRequest:
        """Request the icon payload for a key."""
        loop = self._get_loop()

        cached = self._cache.get(key)
        if cached:
            return IconRequest.resolved(key, cached, loop)

        if self._closed:
            return IconRequest.resolved(key, None, loop)

        outcome = self._in_flight.get(key)
        if outcome is not None:
            logger.debug(f"Joining in-flight icon fetch for {key}")
            return self._attach(key, outcome, loop)

        entry = self._pending_by_key.get(key)
        if entry is not None and not entry.cancelled:
            entry.priority = max(entry.priority, priority)
            logger.debug(f"Joining pending icon fetch for {key} (priority={entry.priority})")
            return self._attach(key, entry.outcome, loop)

        entry = QueueEntry(
            key=key,
            priority=priority,
            enqueued_at=time.monotonic(),
            sequence=next(self._sequence),
        )
        self._pending.append(entry)
        self._pending_by_key[key] = entry
        request = self._attach(key, entry.outcome, loop)

        self._drain()
        self._shed_overflow()
        return request

    async def join(self) -> None:
        """Wait until no fetch is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def shutdown(self) -> None:
        """Drop pending work and cancel running fetches."""
        self._closed = True
        pending, self._pending = self._pending, []
        self._pending_by_key.clear()
        for entry in pending:
            if not entry.cancelled:
                entry.cancelled = True
                entry.outcome.settle(None)
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
        logger.debug(f"Fetch scheduler shut down ({len(pending)} pending dropped)")

    # ------------------------------------------------------------------
    # Queue internals
    # ------------------------------------------------------------------
    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def _attach(self, key: str, outcome: SharedOutcome,
                loop: asyncio.AbstractEventLoop) -> IconRequest:
        return IconRequest(key, loop.create_future(), outcome, self._on_detach)

    def _on_detach(self, request: IconRequest) -> None:
        entry = self._pending_by_key.get(request.key)
        if entry is None or entry.outcome is not request.outcome:
            return
        if entry.outcome.subscriber_count == 0:
            # dropped lazily when the drain reaches it
            entry.cancelled = True
            del self._pending_by_key[request.key]
            logger.debug(f"Cancelled pending icon fetch for {request.key}")

    def _drain(self) -> None:
        while not self._closed and self._active < self._max_concurrency and self._pending:
            self._pending.sort(key=QueueEntry.sort_key)
            entry = self._pending.pop(0)
            if entry.cancelled:
                continue
            if self._pending_by_key.get(entry.key) is entry:
                del self._pending_by_key[entry.key]
            self._dispatch(entry)

    def _shed_overflow(self) -> None:
        if self._max_pending is None:
            return
        live = [entry for entry in self._pending if not entry.cancelled]
        overflow = len(live) - self._max_pending
        if overflow <= 0:
            return
        live.sort(key=QueueEntry.sort_key)
        for entry in live[-overflow:]:
            entry.cancelled = True
            if self._pending_by_key.get(entry.key) is entry:
                del self._pending_by_key[entry.key]
            logger.debug(f"Pending icon queue full, dropping {entry.key}")
            entry.outcome.settle(None)

    def _dispatch(self, entry: QueueEntry) -> None:
        self._active += 1
        self._in_flight[entry.key] = entry.outcome
        task = self._get_loop().create_task(self._run(entry))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._publish(FETCH_STARTED, entry.key)

    async def _run(self, entry: QueueEntry) -> None:
        payload: Optional[str] = None
        try:
            payload = await self._fetch_icon(entry.key)
        except Exception as e:
            logger.warning(f"Icon fetch failed for {entry.key}: {e}")
        finally:
            self._complete(entry, payload)

    def _complete(self, entry: QueueEntry, payload: Optional[str]) -> None:
        self._active -= 1
        if self._in_flight.get(entry.key) is entry.outcome:
            del self._in_flight[entry.key]

        if payload:
            self._cache.put(entry.key, payload)
            self._publish(ICON_RESOLVED, entry.key)
        else:
            payload = None
            self._publish(ICON_MISSING, entry.key)

        entry.outcome.settle(payload)
        self._drain()

    def _publish(self, event_type: str, key: str) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(event_type, {"key": key})
