"""
圖片處理器模組

負責每張圖片的處理任務生命週期，遵循單一職責原則 (SRP)
依賴抽象介面而非具體實作，遵循依賴反轉原則 (DIP)
"""

import asyncio
import itertools
import logging
from collections.abc import Iterable, Mapping

from filtrale.common.errors import RenderError
from filtrale.data_model import (
    OverlayConfig,
    ProcessedResult,
    ProcessingStatus,
    SourceImage,
)
from filtrale.features.compositing import Compositor, publish

from .interfaces import ProcessingObserver
from .references import ReferenceRegistry
from .state import ProcessingStateTable


logger = logging.getLogger(__name__)


class ImageProcessor:
    """
    圖片處理器

    每張圖片一個任務，不同 id 的任務在同一事件迴圈上並行；
    合成的 CPU 工作交由 asyncio.to_thread 執行，各任務使用獨立畫布

    同一 id 重新處理時由最新的任務實例勝出，被取代的任務跑完後
    其結果參照會被撤銷並丟棄，不送出完成事件
    """

    def __init__(
        self,
        compositor: Compositor,
        registry: ReferenceRegistry | None = None,
        observers: Iterable[ProcessingObserver] = (),
    ):
        """
        初始化處理器

        Args:
            compositor: 合成器
            registry: 渲染參照登錄表
            observers: 生命週期觀察者
        """
        self._compositor = compositor
        self._registry = registry or ReferenceRegistry()
        self._observers: list[ProcessingObserver] = list(observers)
        self._states = ProcessingStateTable()
        self._results: dict[str, ProcessedResult] = {}
        self._generations: dict[str, int] = {}
        self._tokens = itertools.count(1)

    @property
    def registry(self) -> ReferenceRegistry:
        return self._registry

    @property
    def states(self) -> Mapping[str, ProcessingStatus]:
        """處理狀態唯讀檢視"""
        return self._states.view()

    @property
    def results(self) -> tuple[ProcessedResult, ...]:
        """依首次上傳順序排列的結果"""
        return tuple(self._results.values())

    def add_observer(self, observer: ProcessingObserver) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: ProcessingObserver) -> None:
        self._observers.remove(observer)

    def get_result(self, image_id: str) -> ProcessedResult | None:
        return self._results.get(image_id)

    def status(self, image_id: str) -> ProcessingStatus | None:
        return self._states.status(image_id)

    def is_processing(self, image_id: str) -> bool:
        """id 是否處理中（優先於任何舊結果）"""
        return self._states.is_processing(image_id)

    async def process_all(
        self,
        sources: Iterable[SourceImage],
        config: OverlayConfig,
    ) -> list[ProcessedResult | None]:
        """
        並行處理多張圖片

        Args:
            sources: 來源圖片
            config: 疊加設定快照

        Returns:
            依輸入順序的結果（失敗或被取代者為 None）
        """
        batch = list(sources)
        for source in batch:
            self._states.mark_pending(source.id)

        logger.info("Processing %d images", len(batch))
        return await asyncio.gather(*(self.process(source, config) for source in batch))

    async def process(self, source: SourceImage, config: OverlayConfig) -> ProcessedResult | None:
        """
        處理單張圖片

        Args:
            source: 來源圖片
            config: 疊加設定快照

        Returns:
            處理結果；失敗或被較新任務取代時回傳 None
        """
        image_id = source.id
        token = next(self._tokens)
        self._generations[image_id] = token
        self._states.mark_processing(image_id)
        for observer in self._observers:
            observer.processing_started(image_id)

        try:
            rendered = await asyncio.to_thread(self._compositor.render_png, source, config)
        except RenderError as error:
            if not self._retire(image_id, token):
                logger.debug("Discarding failure of superseded task for %s", image_id)
                return None
            self._states.mark_failed(image_id)
            logger.warning("處理失敗 %s (%s): %s", source.name, error.kind, error)
            for observer in self._observers:
                observer.processing_failed(image_id, error)
            return None
        except Exception:
            if self._retire(image_id, token):
                self._states.mark_failed(image_id)
            raise

        result = publish(image_id, rendered, self._registry)
        if not self._retire(image_id, token):
            self._registry.revoke(result.reference)
            logger.debug("Discarding result of superseded task for %s", image_id)
            return None

        previous = self._results.get(image_id)
        if previous is not None:
            self._registry.revoke(previous.reference)
        self._results[image_id] = result
        self._states.mark_done(image_id)

        logger.debug("Processed %s -> %s", image_id, result.url)
        for observer in self._observers:
            observer.processing_completed(image_id, result)
        return result

    def remove(self, image_id: str) -> None:
        """
        移除單張圖片的結果與狀態

        處理中的任務會被作廢，完成後自行撤銷其參照
        """
        self._generations.pop(image_id, None)
        previous = self._results.pop(image_id, None)
        if previous is not None:
            self._registry.revoke(previous.reference)
        self._states.discard(image_id)

    def clear(self) -> None:
        """清除整個工作階段：撤銷所有結果參照並作廢處理中的任務"""
        self._generations.clear()
        for result in self._results.values():
            self._registry.revoke(result.reference)

        released = len(self._results)
        self._results.clear()
        self._states.clear()
        logger.info("Session cleared (%d results released)", released)

    def _retire(self, image_id: str, token: int) -> bool:
        """任務結束時呼叫：若仍是最新實例則移除世代紀錄並回傳 True"""
        if self._generations.get(image_id) != token:
            return False
        del self._generations[image_id]
        return True
