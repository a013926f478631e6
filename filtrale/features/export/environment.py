"""
執行環境分類

以 user-agent 字串判斷裝置類別與瀏覽器引擎特性，
結果包裝成 EnvironmentProfile 作為參數傳入匯出流程
"""

import re
from enum import StrEnum
from typing import Final

from pydantic import BaseModel, ConfigDict


_MOBILE_PATTERN: Final[re.Pattern[str]] = re.compile(r"iPhone|iPad|iPod|Android", re.IGNORECASE)
_IOS_PATTERN: Final[re.Pattern[str]] = re.compile(r"iPhone|iPad|iPod", re.IGNORECASE)
# Safari 的 UA 也會出現在 Chrome/Android，需排除
_SAFARI_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^((?!chrome|android).)*safari", re.IGNORECASE
)


class DeviceClass(StrEnum):
    """裝置類別"""

    DESKTOP = "desktop"
    MOBILE = "mobile"


class EngineQuirk(StrEnum):
    """與下載機制相關的引擎特性類別"""

    STANDARD = "standard"
    IOS_WEBKIT = "ios_webkit"
    OTHER_MOBILE = "other_mobile"


class EnvironmentProfile(BaseModel):
    """
    執行環境描述

    Attributes:
        device_class: 裝置類別
        engine_quirk: 引擎特性類別
    """

    model_config = ConfigDict(frozen=True)

    device_class: DeviceClass = DeviceClass.DESKTOP
    engine_quirk: EngineQuirk = EngineQuirk.STANDARD

    @property
    def is_mobile(self) -> bool:
        return self.device_class is DeviceClass.MOBILE


DESKTOP_PROFILE: Final[EnvironmentProfile] = EnvironmentProfile()


def detect_environment(user_agent: str) -> EnvironmentProfile:
    """
    由 user-agent 分類執行環境（純函式，不連網）

    行動裝置中，iOS 裝置或非 Chrome/Android 的 Safari 視為 iOS-WebKit，
    其餘為一般行動裝置；桌面一律為標準引擎

    Args:
        user_agent: 瀏覽器回報的 user-agent

    Returns:
        環境描述
    """
    if not _MOBILE_PATTERN.search(user_agent):
        return DESKTOP_PROFILE

    if _IOS_PATTERN.search(user_agent) or _SAFARI_PATTERN.search(user_agent):
        quirk = EngineQuirk.IOS_WEBKIT
    else:
        quirk = EngineQuirk.OTHER_MOBILE
    return EnvironmentProfile(device_class=DeviceClass.MOBILE, engine_quirk=quirk)
