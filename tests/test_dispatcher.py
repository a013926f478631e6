"""
ExportDispatcher 測試（策略選擇、備援與暫存參照釋放）
"""

import asyncio
import io
import time

import pytest
from PIL import Image

from filtrale.common.errors import ExportError, ExportErrorKind
from filtrale.core.references import ReferenceRegistry
from filtrale.data_model import ExportStatus
from filtrale.features.export import (
    DESKTOP_PROFILE,
    MANUAL_SAVE_MESSAGE,
    OPENED_MESSAGE,
    STRATEGY_TABLE,
    AnchorBlobStrategy,
    DeviceClass,
    EngineQuirk,
    EnvironmentProfile,
    ExportDispatcher,
    OpenNewContextStrategy,
    build_filename,
)
from filtrale.settings import AppSettings


IOS_PROFILE = EnvironmentProfile(device_class=DeviceClass.MOBILE, engine_quirk=EngineQuirk.IOS_WEBKIT)
ANDROID_PROFILE = EnvironmentProfile(device_class=DeviceClass.MOBILE, engine_quirk=EngineQuirk.OTHER_MOBILE)


@pytest.fixture
def dispatcher(
    registry: ReferenceRegistry,
    save_target,
    test_settings: AppSettings,
    sleep_recorder,
) -> ExportDispatcher:
    return ExportDispatcher(registry, save_target, test_settings, sleep=sleep_recorder)


class TestFilenames:
    """匯出檔名"""

    @pytest.mark.unit
    def test_one_based(self) -> None:
        assert build_filename("filtro-foto-", 1) == "filtro-foto-1.png"
        assert build_filename("filtro-foto-", 12) == "filtro-foto-12.png"

    @pytest.mark.unit
    def test_rejects_zero(self) -> None:
        with pytest.raises(ValueError):
            build_filename("filtro-foto-", 0)

    @pytest.mark.unit
    def test_prefix_from_settings(self, registry: ReferenceRegistry, save_target) -> None:
        custom = AppSettings(_env_file=None, export_filename_prefix="overlay-")
        assert ExportDispatcher(registry, save_target, custom).filename_for(3) == "overlay-3.png"


class TestStrategySelection:
    """策略表"""

    @pytest.mark.unit
    @pytest.mark.parametrize("quirk", list(EngineQuirk))
    def test_every_chain_ends_with_new_context(self, quirk: EngineQuirk) -> None:
        chain = STRATEGY_TABLE[quirk]
        assert len(chain) >= 2
        assert chain[-1] is OpenNewContextStrategy

    @pytest.mark.unit
    def test_names_by_profile(self, dispatcher: ExportDispatcher) -> None:
        assert [s.name for s in dispatcher.strategies_for(DESKTOP_PROFILE)] == [
            "anchor-blob",
            "open-new-context",
        ]
        assert dispatcher.strategies_for(IOS_PROFILE)[0].name == "reencode-data-uri"
        assert dispatcher.strategies_for(ANDROID_PROFILE)[0].name == "reencode-blob"


class TestDesktopExport:
    """標準桌面流程"""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_saved_via_anchor_blob(
        self,
        dispatcher: ExportDispatcher,
        registry: ReferenceRegistry,
        save_target,
        sleep_recorder,
        result_factory,
    ) -> None:
        result = result_factory("a")
        outcome = await dispatcher.export(result, 1, DESKTOP_PROFILE)

        assert outcome.status is ExportStatus.SAVED
        assert outcome.strategy == "anchor-blob"
        assert outcome.filename == "filtro-foto-1.png"
        assert outcome.message is None

        filename, href, data = save_target.saves[0]
        assert filename == "filtro-foto-1.png"
        assert href != result.url
        assert data == registry.resolve(result.reference)

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_temporaries_released_after_grace(
        self,
        dispatcher: ExportDispatcher,
        registry: ReferenceRegistry,
        save_target,
        sleep_recorder,
        result_factory,
    ) -> None:
        result = result_factory("a")
        await dispatcher.export(result, 1, DESKTOP_PROFILE)

        _, href, _ = save_target.saves[0]
        assert not registry.is_live(href)
        assert registry.is_live(result.reference)
        assert registry.live_count() == 1
        assert sleep_recorder.delays == [0.1]

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_anchor_always_released(
        self,
        dispatcher: ExportDispatcher,
        save_target,
        result_factory,
    ) -> None:
        save_target.block_saves = True
        await dispatcher.export(result_factory("a"), 1, DESKTOP_PROFILE)

        assert save_target.open_anchors == 0
        assert all(anchor.released for anchor in save_target.anchors)


class TestMobileExport:
    """行動裝置流程"""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_ios_saves_data_uri(
        self,
        dispatcher: ExportDispatcher,
        registry: ReferenceRegistry,
        save_target,
        sleep_recorder,
        result_factory,
    ) -> None:
        result = result_factory("a", (64, 32))
        outcome = await dispatcher.export(result, 2, IOS_PROFILE)

        assert outcome.status is ExportStatus.SAVED
        assert outcome.strategy == "reencode-data-uri"
        _, href, data = save_target.saves[0]
        assert href.startswith("data:image/png;base64,")
        with Image.open(io.BytesIO(data)) as img:
            assert img.format == "PNG"
            assert img.size == (64, 32)
        # data URI 不需要釋放
        assert sleep_recorder.delays == []
        assert registry.live_count() == 1

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_ios_encode_failure_opens_new_context(
        self,
        dispatcher: ExportDispatcher,
        save_target,
        result_factory,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def broken_reencode(data: bytes, strategy: str | None = None) -> bytes:
            raise ExportError(ExportErrorKind.ENCODE_FAILED, "boom", strategy=strategy)

        monkeypatch.setattr("filtrale.features.export.dispatcher.reencode_png", broken_reencode)
        result = result_factory("a")
        outcome = await dispatcher.export(result, 1, IOS_PROFILE)

        assert outcome.status is ExportStatus.OPENED_FOR_MANUAL_SAVE
        assert outcome.strategy == "open-new-context"
        assert outcome.message == OPENED_MESSAGE
        assert outcome.succeeded
        assert save_target.opened == [result.url]
        assert save_target.saves == []

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_other_mobile_uses_reencoded_blob(
        self,
        dispatcher: ExportDispatcher,
        registry: ReferenceRegistry,
        save_target,
        sleep_recorder,
        result_factory,
    ) -> None:
        outcome = await dispatcher.export(result_factory("a"), 1, ANDROID_PROFILE)

        assert outcome.status is ExportStatus.SAVED
        assert outcome.strategy == "reencode-blob"
        _, href, data = save_target.saves[0]
        assert href.startswith("blob:")
        assert data.startswith(b"\x89PNG")
        assert sleep_recorder.delays == [0.1]
        assert registry.live_count() == 1


class TestExhausted:
    """所有策略失敗"""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_blocked_everywhere_reports_failure(
        self,
        dispatcher: ExportDispatcher,
        registry: ReferenceRegistry,
        save_target,
        result_factory,
    ) -> None:
        save_target.block_saves = True
        save_target.allow_open = False

        outcome = await dispatcher.export(result_factory("a"), 1, DESKTOP_PROFILE)

        assert outcome.status is ExportStatus.FAILED
        assert not outcome.succeeded
        assert outcome.error is ExportErrorKind.OPEN_FAILED
        assert outcome.strategy == "open-new-context"
        assert outcome.message == MANUAL_SAVE_MESSAGE
        assert registry.live_count() == 1

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_revoked_result_is_encode_failure(
        self,
        registry: ReferenceRegistry,
        save_target,
        test_settings: AppSettings,
        sleep_recorder,
        result_factory,
    ) -> None:
        dispatcher = ExportDispatcher(
            registry,
            save_target,
            test_settings,
            strategy_table={EngineQuirk.STANDARD: (AnchorBlobStrategy,)},
            sleep=sleep_recorder,
        )
        result = result_factory("a")
        registry.revoke(result.reference)

        outcome = await dispatcher.export(result, 1, DESKTOP_PROFILE)

        assert outcome.status is ExportStatus.FAILED
        assert outcome.error is ExportErrorKind.ENCODE_FAILED
        assert save_target.anchors == []
        assert sleep_recorder.delays == []


class TestEventLoopResponsiveness:
    """重新編碼不阻塞事件迴圈"""

    @pytest.mark.asyncio
    @pytest.mark.unit
    @pytest.mark.parametrize("profile", [IOS_PROFILE, ANDROID_PROFILE])
    async def test_loop_keeps_ticking_during_reencode(
        self,
        dispatcher: ExportDispatcher,
        result_factory,
        monkeypatch: pytest.MonkeyPatch,
        profile: EnvironmentProfile,
    ) -> None:
        def slow_reencode(data: bytes, strategy: str | None = None) -> bytes:
            time.sleep(0.2)
            return data

        monkeypatch.setattr("filtrale.features.export.dispatcher.reencode_png", slow_reencode)
        ticks = 0
        done = asyncio.Event()

        async def ticker() -> None:
            nonlocal ticks
            while not done.is_set():
                ticks += 1
                await asyncio.sleep(0.01)

        ticker_task = asyncio.create_task(ticker())
        await asyncio.sleep(0)
        outcome = await dispatcher.export(result_factory("a"), 1, profile)
        done.set()
        await ticker_task

        assert outcome.status is ExportStatus.SAVED
        assert ticks >= 5
