from __future__ import annotations
from typing import Optional
import base64
import binascii

from PySide6.QtCore import Qt
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import QLabel, QVBoxLayout, QWidget

from ..core.icon_binding import IconBinder, IconBinding


def pixmap_from_data_uri(payload: str) -> Optional[QPixmap]:
    """Decode a ``data:image/...;base64,`` payload, None if it is not one."""
    header, sep, encoded = payload.partition(",")
    if not sep or not header.startswith("data:image/"):
        return None
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return None
    pixmap = QPixmap()
    if not pixmap.loadFromData(data):
        return None
    return pixmap


class AppIconWidget(QWidget):
    """Launcher tile: the app icon, or its initial as a placeholder, above its name."""

    def __init__(self, binder: IconBinder, key: str, name: str,
                 known_icon: Optional[str] = None, tile_size: int = 96, parent=None):
        super().__init__(parent)
        self.key = key
        self.name = name
        self._icon_size = max(16, tile_size - 32)

        self.icon_label = QLabel()
        self.icon_label.setObjectName("appIcon")
        self.icon_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.icon_label.setFixedSize(self._icon_size, self._icon_size)
        self.name_label = QLabel(name)
        self.name_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.name_label.setWordWrap(True)

        lay = QVBoxLayout(self)
        lay.setContentsMargins(4, 4, 4, 4)
        lay.addWidget(self.icon_label, 0, Qt.AlignmentFlag.AlignHCenter)
        lay.addWidget(self.name_label)
        self.setFixedSize(tile_size, tile_size + 24)

        # inactive until the visibility gate reports otherwise
        self._binding: IconBinding = binder.bind(key, known_icon, on_change=self._show_icon, active=False)
        binding = self._binding
        self.destroyed.connect(lambda *_: binding.release())
        self._show_icon(binding.icon)

    @property
    def binding(self) -> IconBinding:
        return self._binding

    @property
    def has_icon(self) -> bool:
        return self._binding.icon is not None

    def set_active(self, active: bool) -> None:
        self._binding.set_active(active)

    def release(self) -> None:
        self._binding.release()

    def _show_icon(self, payload: Optional[str]) -> None:
        pixmap = pixmap_from_data_uri(payload) if payload else None
        if pixmap is None:
            self.icon_label.setPixmap(QPixmap())
            self.icon_label.setText(self.name[:1].upper())
            return
        self.icon_label.setText("")
        self.icon_label.setPixmap(pixmap.scaled(
            self._icon_size, self._icon_size,
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))
