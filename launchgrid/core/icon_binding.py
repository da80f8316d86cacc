from __future__ import annotations
from typing import Callable, Iterable, Optional, Tuple
import asyncio
import logging

from .fetch_scheduler import FetchScheduler, IconRequest
from .icon_cache import IconCache

logger = logging.getLogger(__name__)

DEFAULT_ICON_PRIORITY = 10
DEFAULT_SYNTHETIC_PREFIXES: Tuple[str, ...] = ("Script:",)

IconCallback = Callable[[Optional[str]], None]


class IconBinding:
    """Current icon of one rendered item.

    ``icon`` is the payload to draw, or None while the placeholder should be
    shown. ``on_change`` fires whenever it changes. The binding fetches only
    while active and must be released when its item is torn down.
    """

    def __init__(self, key: str, scheduler: FetchScheduler, cache: IconCache,
                 priority: int = DEFAULT_ICON_PRIORITY,
                 known_payload: Optional[str] = None,
                 on_change: Optional[IconCallback] = None,
                 active: bool = True, fetchable: bool = True):
        self.key = key
        self._scheduler = scheduler
        self._cache = cache
        self._priority = priority
        self._known_payload = known_payload
        self._on_change = on_change
        self._active = active
        self._fetchable = fetchable
        self._icon: Optional[str] = None
        self._request: Optional[IconRequest] = None
        self._released = False
        self._resolve()

    @property
    def icon(self) -> Optional[str]:
        return self._icon

    @property
    def active(self) -> bool:
        return self._active

    @property
    def released(self) -> bool:
        return self._released

    @property
    def pending(self) -> bool:
        return self._request is not None and not self._request.done()

    def set_active(self, active: bool) -> None:
        if self._released or active == self._active:
            return
        self._active = active
        if active:
            self._resolve()
        else:
            self._cancel_request()

    def release(self) -> None:
        """Detach from the scheduler and drop the change callback."""
        if self._released:
            return
        self._released = True
        self._cancel_request()
        self._on_change = None

    def _resolve(self) -> None:
        if self._released or self._icon is not None:
            return
        if self._known_payload:
            self._set_icon(self._known_payload)
            return
        if not self._fetchable:
            return

        cached = self._cache.get(self.key)
        if cached:
            self._set_icon(cached)
            return

        if not self._active or self.pending:
            return

        request = self._scheduler.request(self.key, self._priority)
        self._request = request
        request.add_done_callback(lambda future: self._on_request_done(request, future))

    def _on_request_done(self, request: IconRequest, future: asyncio.Future) -> None:
        if request is not self._request:
            return
        self._request = None
        if self._released or future.cancelled():
            return
        payload = future.result()
        if payload:
            self._set_icon(payload)

    def _cancel_request(self) -> None:
        request, self._request = self._request, None
        if request is not None:
            request.cancel()

    def _set_icon(self, payload: Optional[str]) -> None:
        if payload == self._icon:
            return
        self._icon = payload
        if self._on_change is None:
            return
        try:
            self._on_change(payload)
        except Exception:
            logger.exception(f"Icon change handler failed for {self.key}")


class IconBinder:
    """Creates IconBindings that share one scheduler and cache."""

    def __init__(self, scheduler: FetchScheduler, cache: IconCache,
                 priority: int = DEFAULT_ICON_PRIORITY,
                 synthetic_prefixes: Iterable[str] = DEFAULT_SYNTHETIC_PREFIXES):
        self._scheduler = scheduler
        self._cache = cache
        self._priority = priority
        self._synthetic_prefixes = tuple(synthetic_prefixes)

    @property
    def priority(self) -> int:
        return self._priority

    def is_synthetic(self, key: str) -> bool:
        """Keys such as user scripts have no file behind them to take an icon from."""
        return bool(self._synthetic_prefixes) and key.startswith(self._synthetic_prefixes)

    def bind(self, key: str, known_payload: Optional[str] = None,
             on_change: Optional[IconCallback] = None, active: bool = True) -> IconBinding:
        return IconBinding(
            key,
            self._scheduler,
            self._cache,
            priority=self._priority,
            known_payload=known_payload,
            on_change=on_change,
            active=active,
            fetchable=not self.is_synthetic(key),
        )
