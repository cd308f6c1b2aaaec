from __future__ import annotations

from models import ResultRecord
from pipeline.selection import RunSelector
from storage import ResultIndex


def _rec(run_id: int, case_id: int, status: str, end_time: str) -> ResultRecord:
    return ResultRecord(run_id=run_id, case_id=case_id, status=status, end_time=end_time)


def test_all_passed_run_is_selected_regardless_of_timestamps() -> None:
    records = [
        _rec(200, 5, "passed", "2025-03-01 10:00:00"),
        _rec(200, 5, "passed", ""),
        _rec(200, 6, "passed", "2024-01-01 00:00:00"),
    ]
    assert RunSelector().select_records(records) == [200]


def test_single_never_passing_case_vetoes_run() -> None:
    records = [
        _rec(10, 1, "passed", "2025-03-01 10:00:00"),
        _rec(10, 2, "passed", "2025-03-01 10:00:00"),
        _rec(10, 3, "failed", "2025-03-01 09:00:00"),
        _rec(10, 3, "blocked", "2025-03-01 11:00:00"),
    ]
    assert RunSelector().select_records(records) == []


def test_latest_failure_after_pass_rejects_run() -> None:
    records = [
        _rec(11, 1, "passed", "2025-03-01 10:00:00"),
        _rec(11, 1, "failed", "2025-03-01 10:00:01"),
    ]
    assert RunSelector().select_records(records) == []


def test_pass_after_earlier_failure_keeps_run() -> None:
    records = [
        _rec(12, 1, "failed", "2025-03-01 10:00:00"),
        _rec(12, 1, "passed", "2025-03-01 10:05:00"),
        _rec(12, 2, "passed", "2025-03-01 10:01:00"),
    ]
    assert RunSelector().select_records(records) == [12]


def test_equal_timestamps_resolve_to_passing_record() -> None:
    records = [
        _rec(13, 1, "failed", "2025-03-01 10:00:00"),
        _rec(13, 1, "passed", "2025-03-01 10:00:00"),
    ]
    assert RunSelector().select_records(records) == [13]


def test_end_to_end_selection_example() -> None:
    records = [
        _rec(100, 1, "passed", "2025-03-01 10:00:00"),
        _rec(100, 2, "failed", "2025-03-01 10:30:00"),
        _rec(200, 5, "passed", "2025-03-01 09:00:00"),
        _rec(200, 5, "passed", "2025-03-01 09:30:00"),
        _rec(200, 6, "passed", "2025-03-01 09:10:00"),
    ]
    assert RunSelector().select_records(records) == [200]


def test_selection_is_sorted_and_repeatable() -> None:
    records = [
        _rec(300, 1, "passed", "2025-03-01 10:00:00"),
        _rec(30, 1, "passed", "2025-03-01 10:00:00"),
        _rec(3000, 1, "failed", "2025-03-01 10:00:00"),
        _rec(3000, 1, "passed", "2025-03-01 10:10:00"),
        _rec(300, 2, "passed", "2025-03-01 10:00:00"),
    ]
    index = ResultIndex.from_records(records)
    selector = RunSelector()

    first = selector.select(index)
    second = selector.select(index)

    assert first == [30, 300, 3000]
    assert first == second


def test_empty_index_selects_nothing() -> None:
    assert RunSelector().select(ResultIndex({})) == []
