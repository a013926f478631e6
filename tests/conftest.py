"""
Pytest 配置和共用 fixtures
"""

import io
from collections.abc import Callable

import pytest
from PIL import Image, ImageDraw

from filtrale.common.errors import ExportError, ExportErrorKind, RenderError
from filtrale.core.references import ReferenceRegistry
from filtrale.data_model import ProcessedResult, SourceImage
from filtrale.features.compositing import Compositor
from filtrale.features.export import Anchor, BaseSaveTarget, decode_data_uri, is_data_uri
from filtrale.settings import AppSettings


def make_png_bytes(
    size: tuple[int, int] = (200, 100),
    color: tuple[int, int, int] = (255, 255, 255),
    image_format: str = "PNG",
) -> bytes:
    """生成測試用圖片位元組（含一個彩色矩形以避免單色）"""
    img = Image.new("RGB", size, color=color)
    draw = ImageDraw.Draw(img)
    draw.rectangle([(0, 0), (size[0] // 8, size[1] // 8)], fill=(30, 144, 255))
    buffer = io.BytesIO()
    img.save(buffer, format=image_format)
    return buffer.getvalue()


def make_result(registry: ReferenceRegistry, image_id: str, size: tuple[int, int] = (64, 32)) -> ProcessedResult:
    """建立已登錄的處理結果"""
    reference = registry.create(make_png_bytes(size), owner=image_id)
    return ProcessedResult(original_id=image_id, reference=reference, width=size[0], height=size[1])


class RecordingObserver:
    """記錄生命週期事件"""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, object]] = []

    def processing_started(self, image_id: str) -> None:
        self.events.append(("started", image_id, None))

    def processing_completed(self, image_id: str, result: ProcessedResult) -> None:
        self.events.append(("completed", image_id, result))

    def processing_failed(self, image_id: str, error: RenderError) -> None:
        self.events.append(("failed", image_id, error))

    def of_kind(self, kind: str) -> list[tuple[str, str, object]]:
        return [event for event in self.events if event[0] == kind]


class _RecordingAnchor(Anchor):
    def __init__(self, target: "RecordingSaveTarget", href: str, filename: str) -> None:
        super().__init__(href, filename)
        self._target = target

    def _trigger(self) -> None:
        if self.filename in self._target.blocked_filenames or self._target.block_saves:
            raise ExportError(ExportErrorKind.SAVE_BLOCKED, "blocked")
        data = decode_data_uri(self.href) if is_data_uri(self.href) else self._target.registry.resolve(self.href)
        self._target.saves.append((self.filename, self.href, data))


class RecordingSaveTarget(BaseSaveTarget):
    """記錄下載觸發的假平台，可設定阻擋行為"""

    def __init__(
        self,
        registry: ReferenceRegistry,
        block_saves: bool = False,
        allow_open: bool = True,
    ) -> None:
        super().__init__()
        self.registry = registry
        self.block_saves = block_saves
        self.allow_open = allow_open
        self.blocked_filenames: set[str] = set()
        self.blocked_open_urls: set[str] = set()
        self.saves: list[tuple[str, str, bytes]] = []
        self.opened: list[str] = []
        self.anchors: list[Anchor] = []

    def _create_anchor(self, href: str, filename: str) -> Anchor:
        anchor = _RecordingAnchor(self, href, filename)
        self.anchors.append(anchor)
        return anchor

    def open_in_new_context(self, href: str) -> bool:
        if not self.allow_open or href in self.blocked_open_urls:
            return False
        self.opened.append(href)
        return True

    @property
    def saved_filenames(self) -> list[str]:
        return [filename for filename, _, _ in self.saves]


class SleepRecorder:
    """不實際等待的 sleep，記錄每次等待時間"""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png_bytes


@pytest.fixture
def test_settings() -> AppSettings:
    """不讀取 .env 的測試設定"""
    return AppSettings(
        _env_file=None,
        export_filename_prefix="filtro-foto-",
        desktop_export_delay=0.3,
        mobile_export_delay=1.0,
        release_grace_delay=0.1,
    )


@pytest.fixture
def logo() -> Image.Image:
    """純紅色標誌，方便檢查位置"""
    return Image.new("RGBA", (40, 20), (255, 0, 0, 255))


@pytest.fixture
def compositor(logo: Image.Image) -> Compositor:
    return Compositor(logo)


@pytest.fixture
def registry() -> ReferenceRegistry:
    return ReferenceRegistry()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def save_target(registry: ReferenceRegistry) -> RecordingSaveTarget:
    return RecordingSaveTarget(registry)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def white_source() -> SourceImage:
    return SourceImage(id="white", name="white.png", data=make_png_bytes((200, 100)))


@pytest.fixture
def abc_sources() -> list[SourceImage]:
    """三張不同顏色的來源圖片 (a, b, c)"""
    return [
        SourceImage(id="a", name="a.png", data=make_png_bytes((120, 80), (200, 60, 60))),
        SourceImage(id="b", name="b.jpg", data=make_png_bytes((90, 90), (60, 200, 60), "JPEG")),
        SourceImage(id="c", name="c.png", data=make_png_bytes((64, 128), (60, 60, 200))),
    ]


@pytest.fixture
def corrupt_source() -> SourceImage:
    return SourceImage(id="broken", name="broken.png", data=b"definitely not an image")


@pytest.fixture
def result_factory(registry: ReferenceRegistry) -> Callable[..., ProcessedResult]:
    """建立已登錄的處理結果"""

    def factory(image_id: str, size: tuple[int, int] = (64, 32)) -> ProcessedResult:
        return make_result(registry, image_id, size)

    return factory
