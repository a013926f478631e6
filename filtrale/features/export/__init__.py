"""
匯出功能模組

提供環境分類、策略分派、平台下載機制與批次匯出
"""

from .batch import BatchExporter, ProgressCallback
from .dispatcher import (
    MANUAL_SAVE_MESSAGE,
    OPENED_MESSAGE,
    STRATEGY_TABLE,
    AnchorBlobStrategy,
    ExportDispatcher,
    ExportJob,
    ExportState,
    ExportStrategy,
    OpenNewContextStrategy,
    ReencodeBlobStrategy,
    ReencodeDataUriStrategy,
    build_filename,
)
from .encoding import decode_data_uri, is_data_uri, reencode_png, to_data_uri
from .environment import (
    DESKTOP_PROFILE,
    DeviceClass,
    EngineQuirk,
    EnvironmentProfile,
    detect_environment,
)
from .pacing import PacedScheduler
from .platform import Anchor, BaseSaveTarget, DirectorySaveTarget


__all__ = [
    "Anchor",
    "AnchorBlobStrategy",
    "BaseSaveTarget",
    "BatchExporter",
    "DESKTOP_PROFILE",
    "DeviceClass",
    "DirectorySaveTarget",
    "EngineQuirk",
    "EnvironmentProfile",
    "ExportDispatcher",
    "ExportJob",
    "ExportState",
    "ExportStrategy",
    "MANUAL_SAVE_MESSAGE",
    "OPENED_MESSAGE",
    "OpenNewContextStrategy",
    "PacedScheduler",
    "ProgressCallback",
    "ReencodeBlobStrategy",
    "ReencodeDataUriStrategy",
    "STRATEGY_TABLE",
    "build_filename",
    "decode_data_uri",
    "detect_environment",
    "is_data_uri",
    "reencode_png",
    "to_data_uri",
]
