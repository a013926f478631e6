"""
錯誤定義模組

渲染與匯出流程共用的例外類別
"""

from enum import StrEnum


class FiltraleError(Exception):
    """Filtrale 基底例外"""


class RenderErrorKind(StrEnum):
    """渲染錯誤類型"""

    DECODE_FAILED = "decode_failed"  # 來源無法解碼為圖片
    ENCODE_FAILED = "encode_failed"  # 畫布無法序列化為 PNG


class ExportErrorKind(StrEnum):
    """匯出錯誤類型"""

    ENCODE_FAILED = "encode_failed"  # 重新編碼失敗
    SAVE_BLOCKED = "save_blocked"  # 下載觸發被阻擋
    OPEN_FAILED = "open_failed"  # 新分頁開啟失敗（彈出視窗被阻擋）


class RenderError(FiltraleError):
    """
    單張圖片渲染錯誤

    同一輸入重試不會成功，需往上回報而非略過
    """

    def __init__(
        self,
        kind: RenderErrorKind,
        message: str = "",
        source_id: str | None = None,
    ) -> None:
        self.kind = kind
        self.source_id = source_id
        super().__init__(message or kind.value)


class ExportError(FiltraleError):
    """
    單次匯出嘗試錯誤

    分派器會改用策略表中的下一個備援策略
    """

    def __init__(
        self,
        kind: ExportErrorKind,
        message: str = "",
        strategy: str | None = None,
    ) -> None:
        self.kind = kind
        self.strategy = strategy
        super().__init__(message or kind.value)


class ReferenceRevokedError(FiltraleError, KeyError):
    """渲染參照已釋放或不存在"""
