"""
處理狀態表

以 id 對應處理狀態，只由處理器變更，其餘元件僅能讀取
"""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from filtrale.data_model import ProcessingStatus


class ProcessingStateTable:
    """
    處理狀態表

    讀取端應以 PROCESSING 為準，即使同一 id 已有舊結果
    """

    def __init__(self) -> None:
        self._states: dict[str, ProcessingStatus] = {}

    def mark_pending(self, image_id: str) -> None:
        self._states[image_id] = ProcessingStatus.PENDING

    def mark_processing(self, image_id: str) -> None:
        self._states[image_id] = ProcessingStatus.PROCESSING

    def mark_done(self, image_id: str) -> None:
        self._states[image_id] = ProcessingStatus.DONE

    def mark_failed(self, image_id: str) -> None:
        self._states[image_id] = ProcessingStatus.FAILED

    def discard(self, image_id: str) -> None:
        self._states.pop(image_id, None)

    def clear(self) -> None:
        self._states.clear()

    def status(self, image_id: str) -> ProcessingStatus | None:
        """取得狀態，未知 id 回傳 None"""
        return self._states.get(image_id)

    def is_processing(self, image_id: str) -> bool:
        """id 是否正在處理中"""
        return self._states.get(image_id) is ProcessingStatus.PROCESSING

    def in_flight(self) -> frozenset[str]:
        """所有處理中的 id"""
        return frozenset(
            image_id
            for image_id, status in self._states.items()
            if status is ProcessingStatus.PROCESSING
        )

    def view(self) -> Mapping[str, ProcessingStatus]:
        """唯讀檢視"""
        return MappingProxyType(self._states)

    def __contains__(self, image_id: object) -> bool:
        return image_id in self._states

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def __len__(self) -> int:
        return len(self._states)
