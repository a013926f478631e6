"""
介面定義

核心與外部協作者（檢視層、平台下載機制）之間的協定
"""

from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from filtrale.common.errors import RenderError
from filtrale.data_model import ProcessedResult


@runtime_checkable
class ProcessingObserver(Protocol):
    """
    處理生命週期觀察者

    每個獲勝的任務實例先送出 started，再送出 completed 或 failed 其中之一
    """

    def processing_started(self, image_id: str) -> None: ...

    def processing_completed(self, image_id: str, result: ProcessedResult) -> None: ...

    def processing_failed(self, image_id: str, error: RenderError) -> None: ...


class AnchorHandle(Protocol):
    """一次性的下載觸發控制代碼"""

    href: str
    filename: str

    def activate(self) -> None:
        """
        觸發下載

        Raises:
            ExportError: 下載被阻擋時 (SAVE_BLOCKED)
        """
        ...


class SaveTarget(Protocol):
    """
    平台下載機制

    瀏覽器以暫時的 <a download> 元素實作，非瀏覽器環境則直接寫檔
    """

    def acquire_anchor(self, href: str, filename: str) -> AbstractContextManager[AnchorHandle]:
        """取得下載觸發控制代碼，離開區塊時必定釋放"""
        ...

    def open_in_new_context(self, href: str) -> bool:
        """在新的瀏覽環境開啟資源，被阻擋時回傳 False"""
        ...

    def cleanup(self) -> int:
        """釋放平台端的暫存資源，回傳釋放數量"""
        ...
