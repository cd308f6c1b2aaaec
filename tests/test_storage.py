from __future__ import annotations

import json

import pytest

from storage import ErrorLedger, ResultIndex, ResultLog, decode_run_ids, encode_run_ids, read_run_ids, write_run_ids
from utils.exceptions import ResultLogError, RunIdCodecError


def test_encode_run_ids_has_no_brackets_or_spaces() -> None:
    assert encode_run_ids([3, 17, 200]) == "3,17,200"
    assert encode_run_ids([]) == ""


def test_decode_run_ids_accepts_trailing_newline() -> None:
    assert decode_run_ids("3,17,200\n") == [3, 17, 200]
    assert decode_run_ids("   ") == []


@pytest.mark.parametrize("text", ["1,,2", "1,2,", "1,abc", "1, 2", "-4", "[1,2]"])
def test_decode_run_ids_rejects_bad_tokens(text: str) -> None:
    with pytest.raises(RunIdCodecError):
        decode_run_ids(text)


def test_encode_run_ids_rejects_non_integers() -> None:
    with pytest.raises(RunIdCodecError):
        encode_run_ids([1, "2"])
    with pytest.raises(RunIdCodecError):
        encode_run_ids([True])


def test_run_id_files(tmp_path) -> None:
    path = tmp_path / "final.txt"
    write_run_ids(path, [5, 9])
    assert path.read_text(encoding="utf-8") == "5,9"
    assert read_run_ids(path) == [5, 9]

    with pytest.raises(RunIdCodecError):
        read_run_ids(tmp_path / "missing.txt")


def test_result_log_skips_malformed_lines(tmp_path) -> None:
    path = tmp_path / "results.json"
    lines = [
        json.dumps({"run_id": 1, "case_id": 1, "status": "passed", "end_time": "2025-01-01 10:00:00"}),
        "{not json",
        json.dumps({"run_id": 1, "status": "passed"}),
        "",
        json.dumps([1, 2, 3]),
        json.dumps({"run_id": 2, "case_id": 4, "status": "failed", "end_time": "2025-01-01 11:00:00"}),
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    records = ResultLog(path).load()

    assert [(r.run_id, r.case_id) for r in records] == [(1, 1), (2, 4)]


def test_result_log_append_and_reset(tmp_path) -> None:
    log = ResultLog(tmp_path / "results.json")
    log.reset()
    assert log.append([{"run_id": 1, "case_id": 1, "status": "passed", "end_time": "t1"}]) == 1
    assert log.append([{"run_id": 1, "case_id": 2, "status": "passed", "end_time": "t2"}]) == 1
    assert len(log.load()) == 2

    log.reset()
    assert log.load() == []


def test_result_log_missing_file_raises(tmp_path) -> None:
    with pytest.raises(ResultLogError):
        ResultLog(tmp_path / "nope.json").load()


def test_result_index_groups_by_run_and_case(tmp_path) -> None:
    log = ResultLog(tmp_path / "results.json")
    log.append(
        [
            {"run_id": 9, "case_id": 1, "status": "passed", "end_time": "t1"},
            {"run_id": 9, "case_id": 1, "status": "failed", "end_time": "t2"},
            {"run_id": 4, "case_id": 2, "status": "passed", "end_time": "t1"},
        ]
    )
    index = ResultIndex.from_log(log)

    assert index.run_ids() == [4, 9]
    assert len(index.records(9, 1)) == 2
    assert index.records(9, 2) == []
    assert 4 in index
    assert 5 not in index


def test_error_ledger_is_append_only_across_instances(tmp_path) -> None:
    path = tmp_path / "errors.txt"

    ErrorLedger(path).record(42, "Test run not found")
    ErrorLedger(path).record(42, "Test run not found")

    entries = ErrorLedger(path).entries()
    assert entries == ["Run ID 42: Test run not found", "Run ID 42: Test run not found"]


def test_error_ledger_flattens_multiline_reasons(tmp_path) -> None:
    ledger = ErrorLedger(tmp_path / "errors.txt")
    ledger.record(7, "first line\nsecond line")
    ledger.record(8, "")
    assert ledger.entries() == ["Run ID 7: first line second line", "Run ID 8: completion failed"]


def test_result_log_skips_undecodable_line(tmp_path) -> None:
    path = tmp_path / "results.json"
    good = [
        json.dumps({"run_id": 1, "case_id": 1, "status": "passed", "end_time": "2025-01-01 10:00:00"}).encode(),
        json.dumps({"run_id": 1, "case_id": 2, "status": "passed", "end_time": "2025-01-01 10:05:00"}).encode(),
    ]
    path.write_bytes(good[0] + b"\n" + b'{"run_id": 1, "case_id": 9, "status": "\xff"}\n' + good[1] + b"\n")

    records = ResultLog(path).load()

    assert [r.case_id for r in records] == [1, 2]
