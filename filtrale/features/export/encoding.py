"""
匯出用編碼工具

重新解碼與無損重新編碼、data URI 轉換
"""

import base64
import binascii
import io
from typing import Final

from PIL import Image

from filtrale.common.errors import ExportError, ExportErrorKind
from filtrale.data_model import PNG_MIME_TYPE


DATA_URI_PREFIX: Final[str] = "data:"
_BASE64_MARKER: Final[str] = ";base64,"


def reencode_png(data: bytes, strategy: str | None = None) -> bytes:
    """
    將位元組重新解碼至新畫布，再無損編碼為 PNG

    Raises:
        ExportError: 解碼或編碼失敗時 (ENCODE_FAILED)
    """
    try:
        with Image.open(io.BytesIO(data)) as opened:
            opened.load()
            surface = opened.copy()
        buffer = io.BytesIO()
        surface.save(buffer, format="PNG")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ExportError(
            ExportErrorKind.ENCODE_FAILED,
            "無法重新編碼圖片",
            strategy=strategy,
        ) from e
    return buffer.getvalue()


def to_data_uri(data: bytes, mime_type: str = PNG_MIME_TYPE) -> str:
    """位元組轉為 base64 data URI"""
    encoded = base64.b64encode(data).decode("ascii")
    return f"{DATA_URI_PREFIX}{mime_type}{_BASE64_MARKER}{encoded}"


def is_data_uri(href: str) -> bool:
    return href.startswith(DATA_URI_PREFIX)


def decode_data_uri(href: str) -> bytes:
    """
    解析 base64 data URI

    Raises:
        ValueError: 格式錯誤時
    """
    if not is_data_uri(href) or _BASE64_MARKER not in href:
        raise ValueError("不是 base64 data URI")

    payload = href.split(_BASE64_MARKER, 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError("data URI 內容不是有效的 base64") from e
