"""
應用程式設定

使用 Pydantic BaseSettings 管理環境變數和配置
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from filtrale.data_model import DEFAULT_GRADIENT_INTENSITY, LogoPosition


class AppSettings(BaseSettings):
    """
    應用程式設定

    從環境變數和 .env 文件讀取設定

    Attributes:
        log_level: 日誌級別 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        export_filename_prefix: 匯出檔名前綴（後接 1 起算序號與 .png）
        desktop_export_delay: 桌面裝置批次下載間隔（秒）
        mobile_export_delay: 行動裝置批次下載間隔（秒）
        release_grace_delay: 觸發下載後釋放暫存參照前的等待時間（秒）
        logo_path: 標誌圖檔路徑，未設定時使用內建標誌
        logo_width_ratio: 標誌寬度佔畫布寬度比例
        logo_max_height_ratio: 標誌高度上限佔畫布高度比例
        logo_margin_ratio: 標誌邊距佔畫布短邊比例
        default_gradient_intensity: 預設漸層強度
        default_gradient_color: 預設漸層顏色
        default_logo_position: 預設標誌位置
        max_files: 上傳元件允許的最大檔案數（核心不重新驗證）
        download_dir: 非瀏覽器環境的下載目錄
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FILTRALE_",
        case_sensitive=False,
    )

    # 日誌設定
    log_level: str = "INFO"

    # 匯出設定
    export_filename_prefix: str = "filtro-foto-"
    desktop_export_delay: float = Field(default=0.3, ge=0.0)
    mobile_export_delay: float = Field(default=1.0, ge=0.0)
    release_grace_delay: float = Field(default=0.1, ge=0.0)
    download_dir: Path = Path.home() / "Downloads"

    # 標誌設定
    logo_path: Path | None = None
    logo_width_ratio: float = Field(default=0.3, gt=0.0, le=1.0)
    logo_max_height_ratio: float = Field(default=0.25, gt=0.0, le=1.0)
    logo_margin_ratio: float = Field(default=0.05, ge=0.0, lt=0.5)

    # 疊加預設值
    default_gradient_intensity: float = DEFAULT_GRADIENT_INTENSITY
    default_gradient_color: str = "#000000"
    default_logo_position: LogoPosition = LogoPosition.BOTTOM

    # 上傳設定
    max_files: int = Field(default=10, ge=1)


# 創建全局設定實例
settings = AppSettings()
