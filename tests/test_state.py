"""
處理狀態表測試
"""

import pytest

from filtrale.core.state import ProcessingStateTable
from filtrale.data_model import ProcessingStatus


@pytest.mark.unit
def test_lifecycle_transitions() -> None:
    table = ProcessingStateTable()
    table.mark_pending("a")
    assert table.status("a") is ProcessingStatus.PENDING
    assert not table.is_processing("a")

    table.mark_processing("a")
    assert table.is_processing("a")
    assert table.in_flight() == frozenset({"a"})

    table.mark_done("a")
    assert table.status("a") is ProcessingStatus.DONE
    assert table.in_flight() == frozenset()


@pytest.mark.unit
def test_unknown_id() -> None:
    table = ProcessingStateTable()
    assert table.status("missing") is None
    assert not table.is_processing("missing")
    assert "missing" not in table


@pytest.mark.unit
def test_discard_and_clear() -> None:
    table = ProcessingStateTable()
    table.mark_failed("a")
    table.mark_processing("b")
    table.discard("a")
    assert list(table) == ["b"]
    table.clear()
    assert len(table) == 0


@pytest.mark.unit
def test_view_reflects_changes() -> None:
    table = ProcessingStateTable()
    view = table.view()
    table.mark_processing("a")
    assert view["a"] is ProcessingStatus.PROCESSING
