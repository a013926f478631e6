"""
核心資料模型

使用 Pydantic 進行資料驗證和序列化，確保資料完整性
"""

from enum import StrEnum
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from filtrale.common.color import RgbColor, coerce_rgb, to_hex
from filtrale.common.errors import ExportErrorKind


DEFAULT_GRADIENT_INTENSITY: Final[float] = 0.7
PNG_MIME_TYPE: Final[str] = "image/png"


class LogoPosition(StrEnum):
    """標誌位置（同時決定漸層方向）"""

    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class ProcessingStatus(StrEnum):
    """單張圖片處理狀態"""

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


class ExportStatus(StrEnum):
    """匯出結果狀態"""

    SAVED = "saved"
    OPENED_FOR_MANUAL_SAVE = "opened_for_manual_save"
    FAILED = "failed"


class SourceImage(BaseModel):
    """
    上傳的來源圖片

    Attributes:
        id: 穩定且唯一的識別碼（所有對應皆以此為鍵，而非陣列位置）
        name: 原始檔名
        data: 可解碼的點陣圖位元組
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    data: bytes = Field(repr=False)


class OverlayConfig(BaseModel):
    """
    疊加設定快照

    每個處理任務取得一份唯讀快照，之後的變更不會回溯套用

    Attributes:
        gradient_intensity: 漸層強度，超出 [0, 1] 時截斷而非拒絕
        gradient_color: 漸層顏色 (r, g, b)，接受十六進位色碼
        logo_position: 標誌位置
    """

    model_config = ConfigDict(frozen=True)

    gradient_intensity: float = DEFAULT_GRADIENT_INTENSITY
    gradient_color: RgbColor = (0, 0, 0)
    logo_position: LogoPosition = LogoPosition.BOTTOM

    @field_validator("gradient_intensity", mode="before")
    @classmethod
    def _clamp_intensity(cls, value: Any) -> float:
        """將強度截斷至 [0, 1]"""
        try:
            return clamp_intensity(float(value))
        except (TypeError, ValueError) as e:
            raise ValueError(f"無效的漸層強度: {value!r}") from e

    @field_validator("gradient_color", mode="before")
    @classmethod
    def _parse_color(cls, value: Any) -> RgbColor:
        """解析十六進位色碼或 RGB 序列"""
        return coerce_rgb(value)

    @property
    def intensity_percent(self) -> int:
        """強度百分比（顯示用）"""
        return round(self.gradient_intensity * 100)

    @property
    def color_hex(self) -> str:
        """漸層顏色的十六進位表示"""
        return to_hex(self.gradient_color)

    def with_changes(self, **changes: Any) -> "OverlayConfig":
        """
        產生套用變更後的新快照

        經過完整驗證，因此強度同樣會被截斷
        """
        data = self.model_dump()
        data.update(changes)
        return OverlayConfig.model_validate(data)


class RenderedReference(BaseModel):
    """
    渲染參照

    指向已編碼位元組的可撤銷控制代碼（相當於 blob URL）

    Attributes:
        url: 參照 URL
        owner: 擁有者識別碼（通常為來源圖片 id）
        mime_type: 內容類型
    """

    model_config = ConfigDict(frozen=True)

    url: str
    owner: str | None = None
    mime_type: str = PNG_MIME_TYPE


class ProcessedResult(BaseModel):
    """
    處理結果

    Attributes:
        original_id: 對應的 SourceImage.id
        reference: 渲染後 PNG 的參照
        width: 寬度（像素）
        height: 高度（像素）
    """

    model_config = ConfigDict(frozen=True)

    original_id: str
    reference: RenderedReference
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    @property
    def url(self) -> str:
        """參照 URL"""
        return self.reference.url


class ExportOutcome(BaseModel):
    """
    單次匯出結果

    Attributes:
        status: 匯出狀態
        filename: 匯出檔名
        strategy: 最後嘗試的策略名稱
        error: 失敗時的錯誤類型
        message: 給使用者的說明（手動儲存指示等）
    """

    model_config = ConfigDict(frozen=True)

    status: ExportStatus
    filename: str
    strategy: str | None = None
    error: ExportErrorKind | None = None
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        """是否已交給使用者（自動儲存或開啟供手動儲存）"""
        return self.status is not ExportStatus.FAILED


class BatchOutcome(BaseModel):
    """
    批次匯出結果

    Attributes:
        succeeded: 成功數
        failed: 失敗數
        outcomes: 依輸入順序的個別結果
    """

    model_config = ConfigDict(frozen=True)

    succeeded: int = Field(ge=0)
    failed: int = Field(ge=0)
    outcomes: tuple[ExportOutcome, ...] = Field(default_factory=tuple)

    @property
    def total(self) -> int:
        """總數"""
        return self.succeeded + self.failed

    @property
    def is_complete_success(self) -> bool:
        """是否全部成功"""
        return self.failed == 0

    def summary(self) -> str:
        """給使用者的批次摘要訊息"""
        message = f"{self.succeeded} image(s) exported. Check your downloads folder."
        if self.failed:
            message += (
                f" {self.failed} image(s) could not be saved automatically;"
                " try downloading them individually."
            )
        return message


def clamp_intensity(value: float) -> float:
    """
    截斷漸層強度至 [0, 1]

    Args:
        value: 原始強度

    Returns:
        截斷後的強度
    """
    return min(1.0, max(0.0, value))
