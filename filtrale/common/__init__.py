"""
共用模組

提供在多個功能間共用的錯誤定義與色彩工具
"""

from .color import RgbColor, coerce_rgb, parse_hex_color, to_hex
from .errors import (
    ExportError,
    ExportErrorKind,
    FiltraleError,
    ReferenceRevokedError,
    RenderError,
    RenderErrorKind,
)


__all__ = [
    "FiltraleError",
    "RenderError",
    "RenderErrorKind",
    "ExportError",
    "ExportErrorKind",
    "ReferenceRevokedError",
    "RgbColor",
    "coerce_rgb",
    "parse_hex_color",
    "to_hex",
]
