"""
設定模組
"""

from .app import AppSettings, settings
from .log import configure_logging


__all__ = ["AppSettings", "configure_logging", "settings"]
