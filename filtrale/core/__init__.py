"""
核心模組 - 定義介面、參照登錄表與處理狀態

處理器請由 filtrale.core.processor 匯入（依賴合成功能模組）
"""

from .interfaces import AnchorHandle, ProcessingObserver, SaveTarget
from .references import ReferenceRegistry
from .state import ProcessingStateTable


__all__ = [
    "AnchorHandle",
    "ProcessingObserver",
    "ProcessingStateTable",
    "ReferenceRegistry",
    "SaveTarget",
]
