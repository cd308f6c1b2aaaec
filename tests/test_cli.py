from __future__ import annotations

import json

import pytest

import main as cli


@pytest.fixture
def _paths(tmp_path, monkeypatch):
    for name in ("QASE_API_TOKEN", "QASE_PROJECT_CODE"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("PIPELINE_RESULTS_LOG", str(tmp_path / "results.json"))
    monkeypatch.setenv("PIPELINE_SELECTED_PATH", str(tmp_path / "filtered.txt"))
    monkeypatch.setenv("PIPELINE_CONFIRMED_PATH", str(tmp_path / "final.txt"))
    monkeypatch.setenv("PIPELINE_ERROR_LEDGER", str(tmp_path / "errors.txt"))
    return tmp_path


def test_select_command_prints_selected_ids(_paths, capsys) -> None:
    (_paths / "results.json").write_text(
        "\n".join(
            [
                json.dumps({"run_id": 8, "case_id": 1, "status": "passed", "end_time": "2025-03-01 09:00:00"}),
                json.dumps({"run_id": 3, "case_id": 1, "status": "failed", "end_time": "2025-03-01 09:00:00"}),
            ]
        ),
        encoding="utf-8",
    )

    exit_code = cli.main(["--env-file", str(_paths / "none.env"), "select"])

    assert exit_code == 0
    last_line = capsys.readouterr().out.strip().splitlines()[-1]
    assert json.loads(last_line) == {"selected": [8]}
    assert (_paths / "filtered.txt").read_text(encoding="utf-8") == "8"


def test_network_command_without_credentials_exits_nonzero(_paths) -> None:
    (_paths / "final.txt").write_text("8", encoding="utf-8")

    exit_code = cli.main(["--env-file", str(_paths / "none.env"), "complete"])

    assert exit_code == 1
    assert not (_paths / "errors.txt").exists()


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])
