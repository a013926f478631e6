"""
色彩解析工具

將十六進位色碼轉換為 RGB 三元組
"""

import re
from collections.abc import Sequence
from typing import Final


RgbColor = tuple[int, int, int]

_HEX_PATTERN: Final[re.Pattern[str]] = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
CHANNEL_MAX: Final[int] = 255


def parse_hex_color(value: str) -> RgbColor:
    """
    解析十六進位色碼

    接受 ``#RRGGBB``、``RRGGBB`` 與簡寫 ``#RGB``。
    不接受含 alpha 的 8 位色碼，透明度只由漸層強度決定。

    Args:
        value: 色碼字串

    Returns:
        (r, g, b) 三元組

    Raises:
        ValueError: 色碼格式錯誤時
    """
    match = _HEX_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"無效的色碼: {value!r}（需為 #RRGGBB 或 #RGB）")

    digits = match.group(1)
    if len(digits) == 3:  # noqa: PLR2004
        digits = "".join(ch * 2 for ch in digits)

    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def coerce_rgb(value: str | Sequence[int]) -> RgbColor:
    """將色碼字串或 RGB 序列統一為 RGB 三元組"""
    if isinstance(value, str):
        return parse_hex_color(value)

    channels = tuple(int(c) for c in value)
    if len(channels) != 3:  # noqa: PLR2004
        raise ValueError(f"RGB 色彩需要 3 個通道，收到 {len(channels)} 個")
    if any(not 0 <= c <= CHANNEL_MAX for c in channels):
        raise ValueError(f"RGB 通道必須在 [0, 255] 範圍內: {channels}")
    return (channels[0], channels[1], channels[2])


def to_hex(color: RgbColor) -> str:
    """RGB 三元組轉為 ``#rrggbb``"""
    return "#{:02x}{:02x}{:02x}".format(*color)
