"""
平台下載機制

下載觸發以有範圍的資源建模：取得控制代碼、只使用一次、離開時必定釋放。
DirectorySaveTarget 為非瀏覽器環境的實作，觸發下載即直接寫檔
"""

import logging
import tempfile
import webbrowser
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from filtrale.common.errors import ExportError, ExportErrorKind, ReferenceRevokedError
from filtrale.core.references import ReferenceRegistry

from .encoding import decode_data_uri, is_data_uri


logger = logging.getLogger(__name__)

BrowserOpener = Callable[[str], bool]


class Anchor(ABC):
    """
    一次性的下載觸發控制代碼

    Attributes:
        href: 下載來源（blob URL 或 data URI）
        filename: 建議檔名
    """

    def __init__(self, href: str, filename: str) -> None:
        self.href = href
        self.filename = filename
        self._activated = False
        self._released = False

    @property
    def activated(self) -> bool:
        return self._activated

    @property
    def released(self) -> bool:
        return self._released

    def activate(self) -> None:
        """
        觸發下載（只能呼叫一次）

        Raises:
            RuntimeError: 已釋放或已觸發過
            ExportError: 下載被阻擋時
        """
        if self._released:
            raise RuntimeError("Anchor already released")
        if self._activated:
            raise RuntimeError("Anchor can only be activated once")
        self._activated = True
        self._trigger()

    def release(self) -> None:
        self._released = True

    @abstractmethod
    def _trigger(self) -> None:
        """實際觸發平台下載"""


class BaseSaveTarget(ABC):
    """下載目標基底類別，負責控制代碼的取得與釋放"""

    def __init__(self) -> None:
        self._open_anchors = 0

    @property
    def open_anchors(self) -> int:
        """尚未釋放的控制代碼數量"""
        return self._open_anchors

    @contextmanager
    def acquire_anchor(self, href: str, filename: str) -> Iterator[Anchor]:
        """
        取得下載觸發控制代碼

        不論成功或失敗，離開區塊時都會釋放
        """
        anchor = self._create_anchor(href, filename)
        self._open_anchors += 1
        try:
            yield anchor
        finally:
            anchor.release()
            self._open_anchors -= 1

    @abstractmethod
    def _create_anchor(self, href: str, filename: str) -> Anchor:
        """建立平台專屬的控制代碼"""

    @abstractmethod
    def open_in_new_context(self, href: str) -> bool:
        """在新的瀏覽環境開啟資源，被阻擋時回傳 False"""

    def cleanup(self) -> int:
        """釋放平台端的暫存資源，回傳釋放數量"""
        return 0


class _FileAnchor(Anchor):
    def __init__(self, target: "DirectorySaveTarget", href: str, filename: str) -> None:
        super().__init__(href, filename)
        self._target = target

    def _trigger(self) -> None:
        self._target.write(self.href, self.filename)


class DirectorySaveTarget(BaseSaveTarget):
    """
    目錄下載目標

    觸發下載時將內容寫入下載目錄，檔名衝突時比照瀏覽器加上 (n) 後綴；
    新分頁開啟則寫入暫存檔並交給系統瀏覽器
    """

    def __init__(
        self,
        download_dir: Path,
        registry: ReferenceRegistry,
        opener: BrowserOpener | None = None,
    ) -> None:
        """
        初始化目錄下載目標

        Args:
            download_dir: 下載目錄
            registry: 用於解析 blob URL 的參照登錄表
            opener: 開啟 URL 的函式，預設為 webbrowser.open
        """
        super().__init__()
        self.download_dir = download_dir
        self._registry = registry
        self._opener = opener or webbrowser.open
        self.saved_paths: list[Path] = []
        self.temporary_paths: list[Path] = []

    def _create_anchor(self, href: str, filename: str) -> Anchor:
        return _FileAnchor(self, href, filename)

    def resolve(self, href: str) -> bytes:
        """
        取得 href 指向的內容

        Raises:
            ExportError: 參照已撤銷或 data URI 無效時 (SAVE_BLOCKED)
        """
        try:
            if is_data_uri(href):
                return decode_data_uri(href)
            return self._registry.resolve(href)
        except (ReferenceRevokedError, ValueError) as e:
            raise ExportError(ExportErrorKind.SAVE_BLOCKED, f"無法讀取下載來源: {href[:48]}") from e

    def write(self, href: str, filename: str) -> Path:
        """
        將內容寫入下載目錄

        Raises:
            ExportError: 寫入失敗時 (SAVE_BLOCKED)
        """
        data = self.resolve(href)
        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
            path = _unique_path(self.download_dir / filename)
            path.write_bytes(data)
        except OSError as e:
            raise ExportError(ExportErrorKind.SAVE_BLOCKED, f"無法寫入檔案: {filename}") from e

        self.saved_paths.append(path)
        logger.info("已儲存: %s", path)
        return path

    def open_in_new_context(self, href: str) -> bool:
        try:
            data = self.resolve(href)
            with tempfile.NamedTemporaryFile(prefix="filtrale-", suffix=".png", delete=False) as handle:
                self.temporary_paths.append(Path(handle.name))
                handle.write(data)
            opened = bool(self._opener(Path(handle.name).as_uri()))
        except (ExportError, OSError, webbrowser.Error):
            logger.warning("無法在新分頁開啟圖片", exc_info=True)
            return False

        if not opened:
            logger.warning("新分頁開啟被阻擋")
        return opened

    def cleanup(self) -> int:
        """
        刪除新分頁開啟時建立的暫存檔

        Returns:
            刪除的檔案數量
        """
        remaining: list[Path] = []
        for path in self.temporary_paths:
            try:
                path.unlink(missing_ok=True)
            except OSError:
                logger.warning("無法刪除暫存檔: %s", path, exc_info=True)
                remaining.append(path)

        removed = len(self.temporary_paths) - len(remaining)
        self.temporary_paths = remaining
        return removed


def _unique_path(path: Path) -> Path:
    """檔名已存在時加上 (n) 後綴"""
    if not path.exists():
        return path

    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1
