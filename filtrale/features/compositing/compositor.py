"""
漸層與標誌合成器

將來源圖片以原始尺寸解碼，疊加依標誌位置定向的線性漸層，
再合成等比例縮放的標誌，最後編碼為無損 PNG

原理:
    每列 alpha = ramp(y) × intensity × 255
    bottom: ramp 由上 0 漸增至下 1
    top: ramp 由上 1 漸減至下 0
    middle: ramp 於上下邊緣為 0，垂直中央為 1
"""

import io
import logging
from dataclasses import dataclass
from typing import Final

import numpy as np
from PIL import Image, ImageOps

from filtrale.common.color import RgbColor
from filtrale.common.errors import RenderError, RenderErrorKind
from filtrale.core.references import ReferenceRegistry
from filtrale.data_model import (
    LogoPosition,
    OverlayConfig,
    ProcessedResult,
    SourceImage,
    clamp_intensity,
)
from filtrale.settings import AppSettings, settings

from .logo import resolve_logo


logger = logging.getLogger(__name__)

# 常數定義
ALPHA_MAX: Final[int] = 255
PNG_FORMAT: Final[str] = "PNG"


@dataclass(frozen=True, slots=True)
class LogoLayout:
    """
    標誌版面設定

    Attributes:
        width_ratio: 標誌寬度佔畫布寬度比例
        max_height_ratio: 標誌高度上限佔畫布高度比例
        margin_ratio: 邊距佔畫布短邊比例
    """

    width_ratio: float = 0.3
    max_height_ratio: float = 0.25
    margin_ratio: float = 0.05

    @classmethod
    def from_settings(cls, app_settings: AppSettings) -> "LogoLayout":
        return cls(
            width_ratio=app_settings.logo_width_ratio,
            max_height_ratio=app_settings.logo_max_height_ratio,
            margin_ratio=app_settings.logo_margin_ratio,
        )


@dataclass(frozen=True, slots=True)
class RenderedImage:
    """已編碼的渲染結果"""

    data: bytes
    width: int
    height: int


def decode_source(source: SourceImage) -> Image.Image:
    """
    解碼來源圖片為 RGBA 畫布（套用 EXIF 方向，不縮放）

    Raises:
        RenderError: 無法解碼時 (DECODE_FAILED)
    """
    try:
        with Image.open(io.BytesIO(source.data)) as opened:
            opened.load()
            oriented = ImageOps.exif_transpose(opened)
            surface = oriented.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise RenderError(
            RenderErrorKind.DECODE_FAILED,
            f"無法解碼圖片: {source.name}",
            source_id=source.id,
        ) from e
    return surface


def gradient_ramp(height: int, position: LogoPosition) -> np.ndarray:
    """
    計算每列的漸層比例 (0-1)

    以像素中心取樣，確保結果與高度無關地對稱

    Args:
        height: 畫布高度
        position: 標誌位置

    Returns:
        shape (height,) 的 float64 陣列
    """
    t = (np.arange(height, dtype=np.float64) + 0.5) / height
    if position is LogoPosition.TOP:
        return 1.0 - t
    if position is LogoPosition.MIDDLE:
        return 1.0 - np.abs(2.0 * t - 1.0)
    return t


def build_gradient_overlay(
    size: tuple[int, int],
    color: RgbColor,
    intensity: float,
    position: LogoPosition,
) -> Image.Image:
    """
    建立全畫布線性漸層圖層

    Args:
        size: 畫布尺寸 (width, height)
        color: 漸層顏色
        intensity: 漸層強度（會截斷至 [0, 1]）
        position: 標誌位置，決定漸層方向

    Returns:
        RGBA 漸層圖層
    """
    width, height = size
    ramp = gradient_ramp(height, position) * clamp_intensity(intensity)
    row_alpha = np.round(ramp * ALPHA_MAX).astype(np.uint8)
    mask = np.ascontiguousarray(np.broadcast_to(row_alpha[:, None], (height, width)))

    overlay = Image.new("RGBA", size, (*color, ALPHA_MAX))
    overlay.putalpha(Image.fromarray(mask))
    return overlay


def fit_logo(logo: Image.Image, size: tuple[int, int], layout: LogoLayout) -> Image.Image:
    """
    依畫布尺寸等比例縮放標誌

    以寬度比例為準，若高度超過上限則改以高度為準
    """
    width, height = size
    scale = (width * layout.width_ratio) / logo.width
    max_height = height * layout.max_height_ratio
    if logo.height * scale > max_height:
        scale = max_height / logo.height

    target = (max(1, round(logo.width * scale)), max(1, round(logo.height * scale)))
    return logo.resize(target, Image.Resampling.LANCZOS)


def logo_origin(
    surface_size: tuple[int, int],
    logo_size: tuple[int, int],
    position: LogoPosition,
    margin: int,
) -> tuple[int, int]:
    """
    計算標誌左上角座標（水平置中）

    Returns:
        (x, y) 座標
    """
    width, height = surface_size
    logo_width, logo_height = logo_size

    x = max(0, (width - logo_width) // 2)
    if position is LogoPosition.TOP:
        y = margin
    elif position is LogoPosition.MIDDLE:
        y = (height - logo_height) // 2
    else:
        y = height - logo_height - margin
    return (x, max(0, y))


def encode_png(surface: Image.Image, source_id: str | None = None) -> bytes:
    """
    將畫布編碼為無損 PNG

    Raises:
        RenderError: 無法序列化時 (ENCODE_FAILED)
    """
    buffer = io.BytesIO()
    try:
        surface.save(buffer, format=PNG_FORMAT)
    except (OSError, ValueError) as e:
        raise RenderError(
            RenderErrorKind.ENCODE_FAILED,
            "無法將畫布編碼為 PNG",
            source_id=source_id,
        ) from e
    return buffer.getvalue()


class Compositor:
    """
    合成器

    每次渲染都建立獨立畫布，共用的標誌只讀不寫，
    因此可同時在多個任務中使用
    """

    def __init__(self, logo: Image.Image, layout: LogoLayout | None = None) -> None:
        """
        初始化合成器

        Args:
            logo: RGBA 標誌圖片
            layout: 標誌版面設定
        """
        logo.load()
        self._logo = logo if logo.mode == "RGBA" else logo.convert("RGBA")
        self._layout = layout or LogoLayout()

    @classmethod
    def from_settings(cls, app_settings: AppSettings | None = None) -> "Compositor":
        """依設定建立合成器（標誌路徑與版面）"""
        active = app_settings or settings
        return cls(resolve_logo(active.logo_path), LogoLayout.from_settings(active))

    @property
    def layout(self) -> LogoLayout:
        return self._layout

    def compose(self, surface: Image.Image, config: OverlayConfig) -> Image.Image:
        """在已解碼的畫布上繪製漸層與標誌，回傳新畫布"""
        overlay = build_gradient_overlay(
            surface.size,
            config.gradient_color,
            config.gradient_intensity,
            config.logo_position,
        )
        composed = Image.alpha_composite(surface, overlay)

        logo = fit_logo(self._logo, composed.size, self._layout)
        margin = round(min(composed.size) * self._layout.margin_ratio)
        origin = logo_origin(composed.size, logo.size, config.logo_position, margin)
        composed.alpha_composite(logo, dest=origin)
        return composed

    def render_png(self, source: SourceImage, config: OverlayConfig) -> RenderedImage:
        """
        渲染並編碼（純 CPU 工作，可在事件迴圈外執行）

        Args:
            source: 來源圖片
            config: 疊加設定快照

        Returns:
            已編碼的 PNG 與尺寸

        Raises:
            RenderError: 解碼或編碼失敗時
        """
        surface = decode_source(source)
        composed = self.compose(surface, config)
        data = encode_png(composed, source_id=source.id)
        logger.debug(
            "Rendered %s (%dx%d, intensity=%.2f, position=%s)",
            source.id,
            composed.width,
            composed.height,
            config.gradient_intensity,
            config.logo_position,
        )
        return RenderedImage(data=data, width=composed.width, height=composed.height)

    def render(
        self,
        source: SourceImage,
        config: OverlayConfig,
        registry: ReferenceRegistry,
    ) -> ProcessedResult:
        """
        渲染並登錄為可撤銷參照

        Returns:
            處理結果

        Raises:
            RenderError: 解碼或編碼失敗時
        """
        rendered = self.render_png(source, config)
        return publish(source.id, rendered, registry)


def publish(source_id: str, rendered: RenderedImage, registry: ReferenceRegistry) -> ProcessedResult:
    """將已編碼結果登錄至參照表並包裝為 ProcessedResult"""
    reference = registry.create(rendered.data, owner=source_id)
    return ProcessedResult(
        original_id=source_id,
        reference=reference,
        width=rendered.width,
        height=rendered.height,
    )
