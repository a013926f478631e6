"""
批次匯出協調器

依輸入順序逐一匯出，行動裝置間隔較長以避免瀏覽器略過連續下載；
單張失敗不中斷批次，最後彙整成功與失敗數
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from filtrale.data_model import BatchOutcome, ExportOutcome, ExportStatus, ProcessedResult
from filtrale.settings import AppSettings, settings

from .dispatcher import MANUAL_SAVE_MESSAGE, ExportDispatcher, Sleeper
from .environment import DeviceClass, EnvironmentProfile
from .pacing import PacedScheduler


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, ExportOutcome], None]


class BatchExporter:
    """
    批次匯出協調器

    嚴格循序執行（行動瀏覽器對並行下載會節流或略過）
    """

    def __init__(
        self,
        dispatcher: ExportDispatcher,
        app_settings: AppSettings | None = None,
        progress_callback: ProgressCallback | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """
        初始化批次匯出協調器

        Args:
            dispatcher: 單張匯出分派器
            app_settings: 應用程式設定（各裝置類別的間隔）
            progress_callback: 進度回調函數 (current, total, outcome)
            sleep: 等待函式（測試可注入）
        """
        active = app_settings or settings
        self._dispatcher = dispatcher
        self._delays = {
            DeviceClass.DESKTOP: active.desktop_export_delay,
            DeviceClass.MOBILE: active.mobile_export_delay,
        }
        self._progress_callback = progress_callback
        self._sleep = sleep

    def delay_for(self, profile: EnvironmentProfile) -> float:
        """依裝置類別取得匯出間隔"""
        return self._delays[profile.device_class]

    async def export_all(
        self,
        results: Sequence[ProcessedResult],
        profile: EnvironmentProfile,
    ) -> BatchOutcome:
        """
        匯出所有結果

        絕不拋出單張匯出的例外，一律計為失敗

        Args:
            results: 依顯示順序排列的處理結果
            profile: 環境描述

        Returns:
            批次結果
        """
        total = len(results)
        scheduler = PacedScheduler(self.delay_for(profile), sleep=self._sleep)
        logger.info(
            "Exporting %d images (%s, %.1fs apart)",
            total,
            profile.device_class,
            scheduler.delay,
        )

        def make_task(ordinal: int, result: ProcessedResult) -> Callable[[], Awaitable[ExportOutcome]]:
            async def task() -> ExportOutcome:
                return await self._export_one(result, ordinal, total, profile)

            return task

        outcomes = await scheduler.run(
            make_task(ordinal, result) for ordinal, result in enumerate(results, 1)
        )

        succeeded = sum(1 for outcome in outcomes if outcome.succeeded)
        batch = BatchOutcome(
            succeeded=succeeded,
            failed=total - succeeded,
            outcomes=tuple(outcomes),
        )
        logger.info("Batch export finished: %d succeeded, %d failed", batch.succeeded, batch.failed)
        return batch

    async def _export_one(
        self,
        result: ProcessedResult,
        ordinal: int,
        total: int,
        profile: EnvironmentProfile,
    ) -> ExportOutcome:
        try:
            outcome = await self._dispatcher.export(result, ordinal, profile)
        except Exception:
            logger.exception("Unexpected error exporting %s", result.original_id)
            outcome = ExportOutcome(
                status=ExportStatus.FAILED,
                filename=self._dispatcher.filename_for(ordinal),
                message=MANUAL_SAVE_MESSAGE,
            )

        if self._progress_callback is not None:
            self._progress_callback(ordinal, total, outcome)
        return outcome
