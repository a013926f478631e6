"""
Rich 進度條模組

提供基於 rich 的批次匯出進度條，可直接作為 BatchExporter 的進度回調
"""

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from filtrale.data_model import ExportOutcome, ExportStatus


_STATUS_LABELS: dict[ExportStatus, str] = {
    ExportStatus.SAVED: "[green]SAVED[/green]",
    ExportStatus.OPENED_FOR_MANUAL_SAVE: "[yellow]OPENED[/yellow]",
    ExportStatus.FAILED: "[red]FAIL[/red]",
}


class ExportProgressBar:
    """
    基於 rich 的批次匯出進度條

    用法::

        with ExportProgressBar(total=len(results)) as bar:
            exporter = BatchExporter(dispatcher, progress_callback=bar)
            await exporter.export_all(results, profile)
    """

    def __init__(self, total: int) -> None:
        self._total = total
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=30),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
        )
        self._task_id = self._progress.add_task("Exporting", total=total)
        self._counts: dict[ExportStatus, int] = dict.fromkeys(ExportStatus, 0)

    def __enter__(self) -> "ExportProgressBar":
        self._progress.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self._progress.stop()

    def __call__(self, current: int, total: int, outcome: ExportOutcome) -> None:
        """
        記錄一筆匯出結果並推進進度條

        Args:
            current: 1 起算的目前序號
            total: 總數
            outcome: 匯出結果
        """
        self._counts[outcome.status] += 1
        description = f"{outcome.filename} {_STATUS_LABELS[outcome.status]}"
        self._progress.update(
            self._task_id,
            completed=current,
            total=total,
            description=description,
        )

    def count(self, status: ExportStatus) -> int:
        """指定狀態的數量"""
        return self._counts[status]

    @property
    def succeeded_count(self) -> int:
        """成功數量（含開啟供手動儲存）"""
        return self._counts[ExportStatus.SAVED] + self._counts[ExportStatus.OPENED_FOR_MANUAL_SAVE]

    @property
    def failed_count(self) -> int:
        """失敗數量"""
        return self._counts[ExportStatus.FAILED]
