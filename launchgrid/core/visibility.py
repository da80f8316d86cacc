from __future__ import annotations
from typing import Callable, Dict, Optional
from dataclasses import dataclass
import logging

from PySide6.QtCore import QEvent, QObject, QPoint, QRect, QTimer
from PySide6.QtWidgets import QAbstractScrollArea, QWidget

logger = logging.getLogger(__name__)

DEFAULT_MARGIN = 240
DEFAULT_THRESHOLD = 0.01

_REFRESH_EVENTS = (
    QEvent.Type.Resize,
    QEvent.Type.Move,
    QEvent.Type.Show,
    QEvent.Type.Hide,
    QEvent.Type.LayoutRequest,
)


def intersection_ratio(item: QRect, viewport: QRect, margin: int = DEFAULT_MARGIN) -> float:
    """Fraction of ``item`` inside ``viewport`` widened vertically by ``margin``."""
    if item.width() <= 0 or item.height() <= 0:
        return 0.0
    root = viewport.adjusted(0, -margin, 0, margin)
    overlap = item.intersected(root)
    if overlap.isEmpty():
        return 0.0
    return (overlap.width() * overlap.height()) / (item.width() * item.height())


def is_active(item: QRect, viewport: QRect, margin: int = DEFAULT_MARGIN,
              threshold: float = DEFAULT_THRESHOLD) -> bool:
    ratio = intersection_ratio(item, viewport, margin)
    return ratio > 0.0 and ratio >= threshold


@dataclass
class _Observation:
    widget: QWidget
    callback: Callable[[bool], None]
    active: bool = False


class VisibilityGate(QObject):
    """Tracks which widgets inside a scroll area are near the visible region.

    Each observed widget gets its callback invoked with the initial state and
    then on every active/inactive transition, re-evaluated whenever the area
    scrolls, resizes or lays out its children.
    """

    def __init__(self, scroll_area: QAbstractScrollArea, margin: int = DEFAULT_MARGIN,
                 threshold: float = DEFAULT_THRESHOLD, parent: Optional[QObject] = None):
        super().__init__(parent or scroll_area)
        self._area = scroll_area
        self._margin = margin
        self._threshold = threshold
        self._observed: Dict[int, _Observation] = {}

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(0)
        self._timer.timeout.connect(self.refresh)

        scroll_area.viewport().installEventFilter(self)
        for bar in (scroll_area.verticalScrollBar(), scroll_area.horizontalScrollBar()):
            bar.valueChanged.connect(self.schedule_refresh)
            bar.rangeChanged.connect(self.schedule_refresh)

    @property
    def margin(self) -> int:
        return self._margin

    def observe(self, widget: QWidget, callback: Callable[[bool], None]) -> None:
        """Start watching a widget; the callback fires immediately with its state."""
        key = id(widget)
        if key in self._observed:
            self.unobserve(widget)
        observation = _Observation(widget, callback)
        observation.active = self._evaluate(widget)
        self._observed[key] = observation
        widget.installEventFilter(self)
        widget.destroyed.connect(lambda *_: self._observed.pop(key, None))
        callback(observation.active)

    def unobserve(self, widget: QWidget) -> None:
        if self._observed.pop(id(widget), None) is not None:
            widget.removeEventFilter(self)

    def is_observed(self, widget: QWidget) -> bool:
        return id(widget) in self._observed

    def is_active(self, widget: QWidget) -> bool:
        observation = self._observed.get(id(widget))
        return observation.active if observation else False

    def schedule_refresh(self, *args) -> None:
        if not self._timer.isActive():
            self._timer.start()

    def refresh(self) -> None:
        """Re-evaluate every observed widget and report transitions."""
        for observation in list(self._observed.values()):
            active = self._evaluate(observation.widget)
            if active == observation.active:
                continue
            observation.active = active
            try:
                observation.callback(active)
            except Exception:
                logger.exception("Visibility callback failed")

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:
        if event.type() in _REFRESH_EVENTS:
            self.schedule_refresh()
        return super().eventFilter(watched, event)

    def _evaluate(self, widget: QWidget) -> bool:
        viewport = self._area.viewport()
        if not widget.isVisibleTo(viewport):
            return False
        top_left = widget.mapTo(viewport, QPoint(0, 0))
        item = QRect(top_left, widget.size())
        return is_active(item, viewport.rect(), self._margin, self._threshold)
