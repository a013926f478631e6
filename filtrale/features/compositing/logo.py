"""
標誌資源

載入外部標誌圖檔，或以 Pillow 繪製內建文字標誌
"""

import logging
from pathlib import Path
from typing import Final

from PIL import Image, ImageDraw, ImageFont


logger = logging.getLogger(__name__)

DEFAULT_LOGO_TEXT: Final[str] = "FILTRALE"
_LOGO_FONT_SIZE: Final[int] = 96
_LOGO_PADDING: Final[int] = 32
_LOGO_BORDER: Final[int] = 8
_LOGO_FILL: Final[tuple[int, int, int, int]] = (255, 255, 255, 235)


def load_logo(path: Path) -> Image.Image:
    """
    載入標誌圖檔

    Args:
        path: 標誌圖檔路徑

    Returns:
        RGBA 標誌圖片

    Raises:
        FileNotFoundError: 當標誌檔案不存在時
    """
    if not path.exists():
        raise FileNotFoundError(f"標誌檔案不存在: {path}")

    with Image.open(path) as opened:
        logo = opened.convert("RGBA")
    logger.info("已載入標誌: %s (%dx%d)", path, logo.width, logo.height)
    return logo


def default_logo(text: str = DEFAULT_LOGO_TEXT) -> Image.Image:
    """
    繪製內建文字標誌（透明背景、白色字樣加外框）

    Args:
        text: 標誌文字

    Returns:
        RGBA 標誌圖片
    """
    font = ImageFont.load_default(size=_LOGO_FONT_SIZE)
    probe = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = probe.textbbox((0, 0), text, font=font)

    inner = _LOGO_PADDING + _LOGO_BORDER
    width = (right - left) + inner * 2
    height = (bottom - top) + inner * 2

    logo = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(logo)
    draw.rounded_rectangle(
        [(0, 0), (width - 1, height - 1)],
        radius=height // 4,
        outline=_LOGO_FILL,
        width=_LOGO_BORDER,
    )
    draw.text((inner - left, inner - top), text, font=font, fill=_LOGO_FILL)
    return logo


def resolve_logo(path: Path | None) -> Image.Image:
    """依設定取得標誌：有路徑則載入，否則使用內建標誌"""
    if path is None:
        return default_logo()
    return load_logo(path)
