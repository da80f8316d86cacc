"""
Icon provider implementation for LaunchGrid.
Turns an application path into a PNG data URI, keeping rendered icons on disk
so later sessions skip the native lookup.
"""

from __future__ import annotations
from typing import Iterable, Optional
from pathlib import Path
import asyncio
import io

from PIL import Image
from PySide6.QtCore import QBuffer, QFileInfo, QIODevice
from PySide6.QtWidgets import QFileIconProvider

from .interfaces import IIconProvider, ILogger
from ..core.utils.hashing import icon_file_name, png_data_uri


class IconProvider(IIconProvider):
    """Concrete implementation of the icon-fetch collaborator."""

    # Files Pillow can decode directly, .icns bundles icons included
    IMAGE_SUFFIXES = {'.png', '.icns', '.ico', '.jpg', '.jpeg', '.bmp', '.gif', '.webp', '.tif', '.tiff'}

    def __init__(self, logger: ILogger, cache_dir: Optional[Path] = None,
                 icon_size: int = 128, synthetic_prefixes: Iterable[str] = ("Script:",)):
        self._logger = logger
        self._cache_dir = cache_dir
        self._icon_size = icon_size
        self._synthetic_prefixes = tuple(synthetic_prefixes)
        if cache_dir is not None:
            try:
                cache_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                self._logger.error(f"Failed to create icon cache directory: {cache_dir}", exception=e)
                self._cache_dir = None

    @property
    def cache_dir(self) -> Optional[Path]:
        return self._cache_dir

    def cache_path(self, key: str) -> Optional[Path]:
        if self._cache_dir is None:
            return None
        return self._cache_dir / icon_file_name(key)

    async def fetch_icon(self, key: str) -> Optional[str]:
        """Return the icon for a key as a data URI, or None if there is none."""
        if self._synthetic_prefixes and key.startswith(self._synthetic_prefixes):
            return None

        loop = asyncio.get_running_loop()
        cache_path = self.cache_path(key)
        if cache_path is not None:
            data = await loop.run_in_executor(None, self._read_cached, cache_path)
            if data:
                return png_data_uri(data)

        path = Path(key)
        if not path.exists():
            self._logger.debug(f"No icon source for missing path: {key}")
            return None

        if path.is_file() and path.suffix.lower() in self.IMAGE_SUFFIXES:
            data = await loop.run_in_executor(None, self._thumbnail, path)
        else:
            # Qt icon lookups must stay on the GUI thread
            data = self._render_native(path)

        if not data:
            return None

        if cache_path is not None:
            await loop.run_in_executor(None, self._write_cached, cache_path, data)
        return png_data_uri(data)

    def _read_cached(self, cache_path: Path) -> Optional[bytes]:
        try:
            return cache_path.read_bytes() if cache_path.exists() else None
        except OSError as e:
            self._logger.warning(f"Failed to read cached icon {cache_path}: {e}")
            return None

    def _write_cached(self, cache_path: Path, data: bytes) -> None:
        try:
            cache_path.write_bytes(data)
        except OSError as e:
            self._logger.warning(f"Failed to write cached icon {cache_path}: {e}")

    def _thumbnail(self, path: Path) -> Optional[bytes]:
        """Scale an image file down to the icon size and encode it as PNG."""
        try:
            with Image.open(path) as im:
                im = im.convert("RGBA")
                im.thumbnail((self._icon_size, self._icon_size), Image.Resampling.LANCZOS)
                buffer = io.BytesIO()
                im.save(buffer, format="PNG")
                return buffer.getvalue()
        except OSError as e:
            self._logger.warning(f"Failed to decode icon image {path}: {e}")
            return None

    def _render_native(self, path: Path) -> Optional[bytes]:
        """Ask the platform icon theme for the icon of a file or bundle."""
        icon = QFileIconProvider().icon(QFileInfo(str(path)))
        if icon.isNull():
            return None
        pixmap = icon.pixmap(self._icon_size, self._icon_size)
        if pixmap.isNull():
            return None

        buffer = QBuffer()
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        if not pixmap.save(buffer, "PNG"):
            self._logger.warning(f"Failed to encode native icon for {path}")
            return None
        return buffer.data().data()
