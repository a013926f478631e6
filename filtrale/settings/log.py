"""
日誌設定
"""

import logging

from .app import AppSettings, settings


def configure_logging(app_settings: AppSettings | None = None) -> None:
    """
    依設定初始化根日誌

    Args:
        app_settings: 應用程式設定，預設使用全局設定
    """
    level_name = (app_settings or settings).log_level.upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"無效的日誌級別: {level_name}")

    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)
