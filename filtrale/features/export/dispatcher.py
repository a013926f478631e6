"""
匯出策略分派器

每次匯出嘗試的狀態機:
    Start → DetectEnvironment → SelectStrategy → Attempt
          → {Success | AttemptFallback → Attempt → … | Exhausted}

依環境描述從有序的策略表選出下載機制，失敗時改用下一個備援策略；
嘗試期間建立的暫存參照在任何結束路徑上都會於短暫寬限後釋放
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from enum import StrEnum
from typing import ClassVar, Final

from filtrale.common.errors import ExportError, ExportErrorKind, ReferenceRevokedError
from filtrale.core.interfaces import SaveTarget
from filtrale.core.references import ReferenceRegistry
from filtrale.data_model import (
    ExportOutcome,
    ExportStatus,
    ProcessedResult,
    RenderedReference,
)
from filtrale.settings import AppSettings, settings

from .encoding import reencode_png, to_data_uri
from .environment import EngineQuirk, EnvironmentProfile


logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

MANUAL_SAVE_MESSAGE: Final[str] = (
    "Could not download automatically. Press and hold the image "
    '(or right-click it) and choose "Save image".'
)
OPENED_MESSAGE: Final[str] = (
    'The image was opened in a new tab. Press and hold it (or right-click it) and choose "Save image".'
)


class ExportState(StrEnum):
    """匯出嘗試狀態"""

    START = "start"
    DETECT_ENVIRONMENT = "detect_environment"
    SELECT_STRATEGY = "select_strategy"
    ATTEMPT = "attempt"
    ATTEMPT_FALLBACK = "attempt_fallback"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


class ExportJob:
    """
    單次匯出嘗試的共用狀態

    記錄嘗試期間建立的暫存參照，由分派器統一釋放
    """

    def __init__(
        self,
        result: ProcessedResult,
        filename: str,
        registry: ReferenceRegistry,
        target: SaveTarget,
    ) -> None:
        self.result = result
        self.filename = filename
        self.registry = registry
        self.target = target
        self._temporaries: list[RenderedReference] = []

    @property
    def temporaries(self) -> tuple[RenderedReference, ...]:
        return tuple(self._temporaries)

    def rendered_bytes(self, strategy: str) -> bytes:
        """
        讀取渲染結果的位元組

        Raises:
            ExportError: 結果參照已撤銷時 (ENCODE_FAILED)
        """
        try:
            return self.registry.resolve(self.result.reference)
        except ReferenceRevokedError as e:
            raise ExportError(
                ExportErrorKind.ENCODE_FAILED,
                f"渲染結果已釋放: {self.result.original_id}",
                strategy=strategy,
            ) from e

    def create_temporary(self, data: bytes) -> RenderedReference:
        """建立暫存參照（由分派器負責釋放）"""
        reference = self.registry.create(data, owner=None, mime_type=self.result.reference.mime_type)
        self._temporaries.append(reference)
        return reference

    def trigger_save(self, href: str) -> None:
        """取得下載控制代碼並觸發一次，離開時必定釋放"""
        with self.target.acquire_anchor(href, self.filename) as anchor:
            anchor.activate()

    def release_temporaries(self) -> int:
        released = sum(1 for ref in self._temporaries if self.registry.revoke(ref))
        self._temporaries.clear()
        return released


class ExportStrategy(ABC):
    """下載策略基底類別"""

    name: ClassVar[str]

    @abstractmethod
    async def attempt(self, job: ExportJob) -> ExportStatus:
        """
        執行一次下載嘗試

        Raises:
            ExportError: 嘗試失敗時
        """


class AnchorBlobStrategy(ExportStrategy):
    """標準桌面：暫時的 object URL + 程式觸發下載"""

    name: ClassVar[str] = "anchor-blob"

    async def attempt(self, job: ExportJob) -> ExportStatus:
        temporary = job.create_temporary(job.rendered_bytes(self.name))
        _trigger(job, temporary.url, self.name)
        return ExportStatus.SAVED


class ReencodeDataUriStrategy(ExportStrategy):
    """iOS-WebKit：重新解碼、無損重新編碼，以 data URI 觸發下載"""

    name: ClassVar[str] = "reencode-data-uri"

    async def attempt(self, job: ExportJob) -> ExportStatus:
        data = job.rendered_bytes(self.name)
        mime_type = job.result.reference.mime_type
        href = await asyncio.to_thread(_reencode_data_uri, data, mime_type, self.name)
        _trigger(job, href, self.name)
        return ExportStatus.SAVED


class ReencodeBlobStrategy(ExportStrategy):
    """其他行動裝置：非同步產生 blob 後觸發下載"""

    name: ClassVar[str] = "reencode-blob"

    async def attempt(self, job: ExportJob) -> ExportStatus:
        data = job.rendered_bytes(self.name)
        png = await asyncio.to_thread(reencode_png, data, self.name)
        temporary = job.create_temporary(png)
        _trigger(job, temporary.url, self.name)
        return ExportStatus.SAVED


class OpenNewContextStrategy(ExportStrategy):
    """備援：在新分頁開啟渲染結果，請使用者手動儲存"""

    name: ClassVar[str] = "open-new-context"

    async def attempt(self, job: ExportJob) -> ExportStatus:
        if not job.target.open_in_new_context(job.result.url):
            raise ExportError(
                ExportErrorKind.OPEN_FAILED,
                "新分頁開啟被阻擋",
                strategy=self.name,
            )
        return ExportStatus.OPENED_FOR_MANUAL_SAVE


def _reencode_data_uri(data: bytes, mime_type: str, strategy: str) -> str:
    return to_data_uri(reencode_png(data, strategy=strategy), mime_type)


def _trigger(job: ExportJob, href: str, strategy: str) -> None:
    try:
        job.trigger_save(href)
    except ExportError as error:
        error.strategy = error.strategy or strategy
        raise


# 有序策略表（各類別最相容者優先，最後為新分頁備援）
STRATEGY_TABLE: Final[Mapping[EngineQuirk, tuple[type[ExportStrategy], ...]]] = {
    EngineQuirk.STANDARD: (AnchorBlobStrategy, OpenNewContextStrategy),
    EngineQuirk.IOS_WEBKIT: (ReencodeDataUriStrategy, OpenNewContextStrategy),
    EngineQuirk.OTHER_MOBILE: (ReencodeBlobStrategy, OpenNewContextStrategy),
}


def build_filename(prefix: str, ordinal: int) -> str:
    """
    產生匯出檔名

    Args:
        prefix: 檔名前綴
        ordinal: 批次中 1 起算的位置

    Returns:
        例如 ``filtro-foto-1.png``
    """
    if ordinal < 1:
        raise ValueError(f"序號必須從 1 開始: {ordinal}")
    return f"{prefix}{ordinal}.png"


class ExportDispatcher:
    """
    匯出策略分派器

    為 (渲染位元組, 環境描述) 的函式，不自行查詢執行環境
    """

    def __init__(
        self,
        registry: ReferenceRegistry,
        target: SaveTarget,
        app_settings: AppSettings | None = None,
        strategy_table: Mapping[EngineQuirk, Sequence[type[ExportStrategy]]] | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """
        初始化分派器

        Args:
            registry: 渲染參照登錄表
            target: 平台下載機制
            app_settings: 應用程式設定（檔名前綴、釋放寬限時間）
            strategy_table: 自訂策略表
            sleep: 等待函式（測試可注入）
        """
        active = app_settings or settings
        self._registry = registry
        self._target = target
        self._prefix = active.export_filename_prefix
        self._grace_delay = active.release_grace_delay
        self._table = strategy_table or STRATEGY_TABLE
        self._sleep = sleep

    def filename_for(self, ordinal: int) -> str:
        return build_filename(self._prefix, ordinal)

    def strategies_for(self, profile: EnvironmentProfile) -> list[ExportStrategy]:
        """依環境描述選出有序的策略鏈"""
        return [strategy_cls() for strategy_cls in self._table[profile.engine_quirk]]

    async def export(
        self,
        result: ProcessedResult,
        ordinal: int,
        profile: EnvironmentProfile,
    ) -> ExportOutcome:
        """
        匯出單張結果

        可預期的失敗不拋出例外，一律以 ExportOutcome 回報

        Args:
            result: 處理結果
            ordinal: 批次中 1 起算的位置（決定檔名）
            profile: 環境描述

        Returns:
            匯出結果
        """
        filename = self.filename_for(ordinal)
        job = ExportJob(result, filename, self._registry, self._target)
        logger.debug("[%s] %s -> %s", filename, ExportState.START, ExportState.DETECT_ENVIRONMENT)
        logger.debug(
            "[%s] %s: %s/%s",
            filename,
            ExportState.SELECT_STRATEGY,
            profile.device_class,
            profile.engine_quirk,
        )

        last_error: ExportError | None = None
        last_strategy: str | None = None
        try:
            for position, strategy in enumerate(self.strategies_for(profile)):
                state = ExportState.ATTEMPT if position == 0 else ExportState.ATTEMPT_FALLBACK
                logger.debug("[%s] %s: %s", filename, state, strategy.name)
                last_strategy = strategy.name
                try:
                    status = await strategy.attempt(job)
                except ExportError as error:
                    last_error = error
                    logger.warning(
                        "Export strategy %s failed for %s (%s): %s",
                        strategy.name,
                        filename,
                        error.kind,
                        error,
                    )
                    continue

                logger.debug("[%s] %s via %s", filename, ExportState.SUCCESS, strategy.name)
                message = OPENED_MESSAGE if status is ExportStatus.OPENED_FOR_MANUAL_SAVE else None
                return ExportOutcome(
                    status=status,
                    filename=filename,
                    strategy=strategy.name,
                    message=message,
                )

            logger.error("[%s] %s: no save strategy succeeded", filename, ExportState.EXHAUSTED)
            return ExportOutcome(
                status=ExportStatus.FAILED,
                filename=filename,
                strategy=last_strategy,
                error=last_error.kind if last_error else None,
                message=MANUAL_SAVE_MESSAGE,
            )
        finally:
            await self._release(job)

    async def _release(self, job: ExportJob) -> None:
        """寬限時間後釋放暫存參照，讓平台先開始下載"""
        if not job.temporaries:
            return
        try:
            await self._sleep(self._grace_delay)
        finally:
            released = job.release_temporaries()
            logger.debug("[%s] released %d temporary references", job.filename, released)
