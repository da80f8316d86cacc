from __future__ import annotations

from typing import Iterable

from PySide6.QtWidgets import QLabel, QMainWindow, QStatusBar

from ..core.fetch_scheduler import FetchScheduler
from ..core.icon_binding import IconBinder
from ..core.icon_cache import IconCache
from ..services.config_service import UISettings
from ..services.interfaces import Events, IEventBus
from .app_grid import AppGrid, LaunchItem


class MainWindow(QMainWindow):
    """Launcher shell: the app grid plus a status line with icon loading stats."""

    def __init__(self, binder: IconBinder, scheduler: FetchScheduler, cache: IconCache,
                 event_bus: IEventBus, ui_settings: UISettings,
                 margin: int = 240, threshold: float = 0.01) -> None:
        super().__init__()
        self.setWindowTitle("LaunchGrid")
        self.resize(ui_settings.window_width, ui_settings.window_height)
        self.setStatusBar(QStatusBar(self))

        self._scheduler = scheduler
        self._cache = cache
        self._event_bus = event_bus

        self.grid = AppGrid(binder, ui_settings.columns, ui_settings.tile_size, margin, threshold, self)
        self.setCentralWidget(self.grid)

        self.lbl_stats = QLabel()
        self.statusBar().addPermanentWidget(self.lbl_stats)

        for event_type in (Events.ICON_FETCH_STARTED, Events.ICON_RESOLVED, Events.ICON_MISSING):
            event_bus.subscribe(event_type, self._on_icon_event)
        self._update_stats()

    def set_items(self, items: Iterable[LaunchItem]) -> None:
        items = list(items)
        self.grid.set_items(items)
        self.statusBar().showMessage(f"{len(items)} items", 3000)

    def _on_icon_event(self, data) -> None:
        self._update_stats()

    def _update_stats(self) -> None:
        self.lbl_stats.setText(
            f"icons cached: {len(self._cache)}/{self._cache.capacity}  "
            f"loading: {self._scheduler.active_count}  "
            f"queued: {self._scheduler.pending_count}"
        )

    def closeEvent(self, event) -> None:
        for event_type in (Events.ICON_FETCH_STARTED, Events.ICON_RESOLVED, Events.ICON_MISSING):
            self._event_bus.unsubscribe(event_type, self._on_icon_event)
        self.grid.clear()
        super().closeEvent(event)
