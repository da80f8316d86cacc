from __future__ import annotations
from typing import Iterable, List, Optional
from dataclasses import dataclass

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QGridLayout, QLayout, QScrollArea, QWidget

from ..core.icon_binding import IconBinder
from ..core.visibility import DEFAULT_MARGIN, DEFAULT_THRESHOLD, VisibilityGate
from .icon_widget import AppIconWidget


@dataclass
class LaunchItem:
    """Something the grid can show: an app path or a synthetic entry."""
    key: str
    name: str
    icon: Optional[str] = None


class AppGrid(QScrollArea):
    """Scrollable grid of launcher tiles whose icons load as they near the viewport."""

    def __init__(self, binder: IconBinder, columns: int = 6, tile_size: int = 96,
                 margin: int = DEFAULT_MARGIN, threshold: float = DEFAULT_THRESHOLD, parent=None):
        super().__init__(parent)
        self._binder = binder
        self._columns = max(1, columns)
        self._tile_size = tile_size
        self._tiles: List[AppIconWidget] = []

        self.setWidgetResizable(True)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self._container = QWidget()
        self._layout = QGridLayout(self._container)
        # grow the container with its rows so tiles keep their real positions
        self._layout.setSizeConstraint(QLayout.SizeConstraint.SetMinimumSize)
        self._layout.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignLeft)
        self.setWidget(self._container)

        self.gate = VisibilityGate(self, margin, threshold)

    @property
    def tiles(self) -> List[AppIconWidget]:
        return list(self._tiles)

    def set_items(self, items: Iterable[LaunchItem]) -> None:
        self.clear()
        for index, item in enumerate(items):
            tile = AppIconWidget(self._binder, item.key, item.name, item.icon,
                                 self._tile_size, self._container)
            row, col = divmod(index, self._columns)
            self._layout.addWidget(tile, row, col)
            self._tiles.append(tile)
        # place tiles before the gate takes their first measurement
        self._layout.activate()
        for tile in self._tiles:
            self.gate.observe(tile, tile.set_active)

    def clear(self) -> None:
        """Tear down every tile, releasing its icon binding."""
        for tile in self._tiles:
            self.gate.unobserve(tile)
            tile.release()
            self._layout.removeWidget(tile)
            tile.deleteLater()
        self._tiles.clear()
