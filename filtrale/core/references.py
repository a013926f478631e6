"""
渲染參照登錄表

以記憶體模擬瀏覽器的 object URL：每段已編碼位元組以可撤銷的
``blob:`` URL 登錄，撤銷後即無法再解析
"""

import logging
import uuid
from typing import Final

from filtrale.common.errors import ReferenceRevokedError
from filtrale.data_model import PNG_MIME_TYPE, RenderedReference


logger = logging.getLogger(__name__)

BLOB_URL_PREFIX: Final[str] = "blob:filtrale/"


class ReferenceRegistry:
    """
    渲染參照登錄表

    單執行緒使用（事件迴圈內），不需加鎖
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[RenderedReference, bytes]] = {}
        self._revoked_count = 0

    def create(
        self,
        data: bytes,
        owner: str | None = None,
        mime_type: str = PNG_MIME_TYPE,
    ) -> RenderedReference:
        """
        登錄位元組並回傳新參照

        Args:
            data: 已編碼的位元組
            owner: 擁有者識別碼
            mime_type: 內容類型

        Returns:
            新建立的參照
        """
        reference = RenderedReference(
            url=f"{BLOB_URL_PREFIX}{uuid.uuid4()}",
            owner=owner,
            mime_type=mime_type,
        )
        self._entries[reference.url] = (reference, data)
        logger.debug("Created reference %s (owner=%s, %d bytes)", reference.url, owner, len(data))
        return reference

    def resolve(self, reference: RenderedReference | str) -> bytes:
        """
        取得參照指向的位元組

        Raises:
            ReferenceRevokedError: 參照已撤銷或不存在
        """
        url = _url_of(reference)
        entry = self._entries.get(url)
        if entry is None:
            raise ReferenceRevokedError(url)
        return entry[1]

    def revoke(self, reference: RenderedReference | str) -> bool:
        """
        撤銷參照（可重複呼叫）

        Returns:
            參照在撤銷前是否仍有效
        """
        url = _url_of(reference)
        if self._entries.pop(url, None) is None:
            return False
        self._revoked_count += 1
        logger.debug("Revoked reference %s", url)
        return True

    def is_live(self, reference: RenderedReference | str) -> bool:
        """參照是否仍有效"""
        return _url_of(reference) in self._entries

    def live_count(self, owner: str | None = None) -> int:
        """
        有效參照數量

        Args:
            owner: 僅計算此擁有者的參照，None 表示全部
        """
        if owner is None:
            return len(self._entries)
        return sum(1 for ref, _ in self._entries.values() if ref.owner == owner)

    def revoke_all(self) -> int:
        """撤銷所有參照，回傳撤銷數量"""
        count = len(self._entries)
        self._entries.clear()
        self._revoked_count += count
        return count

    @property
    def revoked_count(self) -> int:
        """累計撤銷次數"""
        return self._revoked_count


def _url_of(reference: RenderedReference | str) -> str:
    return reference if isinstance(reference, str) else reference.url
