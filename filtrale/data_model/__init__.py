"""
資料模型模組

提供應用程式的核心資料結構，使用 Pydantic 進行驗證
"""

from .core import (
    DEFAULT_GRADIENT_INTENSITY,
    PNG_MIME_TYPE,
    BatchOutcome,
    ExportOutcome,
    ExportStatus,
    LogoPosition,
    OverlayConfig,
    ProcessedResult,
    ProcessingStatus,
    RenderedReference,
    SourceImage,
    clamp_intensity,
)

__all__ = [
    "BatchOutcome",
    "DEFAULT_GRADIENT_INTENSITY",
    "ExportOutcome",
    "ExportStatus",
    "LogoPosition",
    "OverlayConfig",
    "PNG_MIME_TYPE",
    "ProcessedResult",
    "ProcessingStatus",
    "RenderedReference",
    "SourceImage",
    "clamp_intensity",
]
