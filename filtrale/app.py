"""
應用程式服務層

檢視層呼叫的工作階段門面：上傳、即時設定、重新處理、下載與清除
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from filtrale.core.interfaces import ProcessingObserver, SaveTarget
from filtrale.core.processor import ImageProcessor
from filtrale.core.references import ReferenceRegistry
from filtrale.data_model import (
    BatchOutcome,
    ExportOutcome,
    OverlayConfig,
    ProcessedResult,
    SourceImage,
)
from filtrale.features.compositing import Compositor
from filtrale.features.export import (
    BatchExporter,
    DirectorySaveTarget,
    EnvironmentProfile,
    ExportDispatcher,
    ProgressCallback,
    detect_environment,
)
from filtrale.features.export.dispatcher import Sleeper
from filtrale.settings import AppSettings, configure_logging, settings


logger = logging.getLogger(__name__)


class FiltraleSession:
    """
    工作階段

    協調處理器與匯出流程，實現依賴反轉原則 (DIP)；
    環境描述在每次下載時由 user-agent 計算一次，再作為參數往下傳
    """

    def __init__(
        self,
        target: SaveTarget | None = None,
        app_settings: AppSettings | None = None,
        user_agent: str = "",
        compositor: Compositor | None = None,
        registry: ReferenceRegistry | None = None,
        observers: Iterable[ProcessingObserver] = (),
        sleep: Sleeper = asyncio.sleep,
        setup_logging: bool = True,
    ):
        """
        初始化工作階段

        Args:
            target: 平台下載機制，預設寫入設定中的下載目錄
            app_settings: 應用程式設定
            user_agent: 瀏覽器 user-agent
            compositor: 合成器（可注入，預設依設定建立）
            registry: 渲染參照登錄表
            observers: 處理生命週期觀察者
            sleep: 等待函式（測試可注入）
            setup_logging: 是否依設定初始化根日誌
        """
        self.settings = app_settings or settings
        if setup_logging:
            configure_logging(self.settings)
        self.user_agent = user_agent
        self.registry = registry or ReferenceRegistry()
        self.processor = ImageProcessor(
            compositor or Compositor.from_settings(self.settings),
            self.registry,
            observers,
        )
        self.target = target or DirectorySaveTarget(self.settings.download_dir, self.registry)
        self.dispatcher = ExportDispatcher(self.registry, self.target, self.settings, sleep=sleep)
        self._sleep = sleep
        self._sources: dict[str, SourceImage] = {}
        self._config = OverlayConfig(
            gradient_intensity=self.settings.default_gradient_intensity,
            gradient_color=self.settings.default_gradient_color,
            logo_position=self.settings.default_logo_position,
        )

    @property
    def config(self) -> OverlayConfig:
        """目前的疊加設定"""
        return self._config

    @property
    def sources(self) -> tuple[SourceImage, ...]:
        """依上傳順序的來源圖片"""
        return tuple(self._sources.values())

    @property
    def max_files(self) -> int:
        """上傳元件允許的最大檔案數"""
        return self.settings.max_files

    @property
    def results(self) -> tuple[ProcessedResult, ...]:
        """依上傳順序的處理結果（尚未完成者不列入）"""
        ordered = (self.processor.get_result(image_id) for image_id in self._sources)
        return tuple(result for result in ordered if result is not None)

    def update_config(self, **changes: Any) -> OverlayConfig:
        """
        更新疊加設定

        只影響之後觸發的處理任務，已完成的結果不會回溯重繪
        """
        self._config = self._config.with_changes(**changes)
        logger.debug(
            "Overlay config: %d%% %s %s",
            self._config.intensity_percent,
            self._config.color_hex,
            self._config.logo_position,
        )
        return self._config

    def is_processing(self, image_id: str) -> bool:
        return self.processor.is_processing(image_id)

    def environment(self) -> EnvironmentProfile:
        return detect_environment(self.user_agent)

    async def add_uploads(self, uploads: Iterable[SourceImage]) -> list[ProcessedResult | None]:
        """
        加入上傳的圖片並以目前設定處理

        數量上限由上傳元件負責，這裡不重新驗證
        """
        batch = list(uploads)
        for source in batch:
            self._sources[source.id] = source
        return await self.processor.process_all(batch, self._config)

    async def replace_uploads(self, uploads: Iterable[SourceImage]) -> list[ProcessedResult | None]:
        """以新的上傳集合取代目前工作階段"""
        self.clear()
        return await self.add_uploads(uploads)

    async def reprocess(self, image_id: str) -> ProcessedResult | None:
        """
        以目前設定重新處理單張圖片

        Raises:
            KeyError: 未知的圖片 id
        """
        source = self._sources[image_id]
        return await self.processor.process(source, self._config)

    def remove(self, image_id: str) -> None:
        """移除單張圖片並釋放其結果"""
        self._sources.pop(image_id, None)
        self.processor.remove(image_id)

    async def download(self, index: int) -> ExportOutcome:
        """
        下載單張結果

        Args:
            index: 0 起算的結果位置（檔名使用 1 起算序號）

        Raises:
            IndexError: 位置超出範圍
        """
        result = self.results[index]
        return await self.dispatcher.export(result, index + 1, self.environment())

    async def download_all(self, progress_callback: ProgressCallback | None = None) -> BatchOutcome:
        """依序下載所有結果"""
        exporter = BatchExporter(
            self.dispatcher,
            self.settings,
            progress_callback=progress_callback,
            sleep=self._sleep,
        )
        outcome = await exporter.export_all(self.results, self.environment())
        logger.info(outcome.summary())
        return outcome

    def clear(self) -> None:
        """清除工作階段並釋放所有結果參照與平台暫存資源"""
        self._sources.clear()
        self.processor.clear()
        removed = self.target.cleanup()
        if removed:
            logger.debug("Removed %d temporary files", removed)
