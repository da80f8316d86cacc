from __future__ import annotations
import base64
import hashlib

PNG_DATA_URI_PREFIX = "data:image/png;base64,"


def icon_file_name(key: str) -> str:
    """Stable on-disk name for the rendered icon of a key."""
    return f"{hashlib.md5(key.encode('utf-8')).hexdigest()}.png"


def png_data_uri(data: bytes) -> str:
    return PNG_DATA_URI_PREFIX + base64.b64encode(data).decode("ascii")
