from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from client import QaseClient
from config import PathSettings, QaseSettings, Settings
from executor import RateLimitedExecutor, RetryPolicy
from models import RunState
from pipeline import Pipeline
from utils.exceptions import ConfigurationError


class _NoWaitLimiter:
    async def acquire(self) -> None:
        return None


async def _no_sleep(delay: float) -> None:
    return None


def _settings(tmp_path, *, token: str = "secret-token", project: str = "DEMO") -> Settings:
    return Settings(
        qase=QaseSettings(api_token=token, project_code=project),
        paths=PathSettings(
            results_log=str(tmp_path / "results.json"),
            selected_path=str(tmp_path / "filtered.txt"),
            confirmed_path=str(tmp_path / "final.txt"),
            error_ledger=str(tmp_path / "errors.txt"),
        ),
    )


def _client(handler) -> QaseClient:
    executor = RateLimitedExecutor(policy=RetryPolicy(max_retries=0), rate_limiter=_NoWaitLimiter(), sleep=_no_sleep)
    return QaseClient(
        api_token="secret-token",
        project_code="DEMO",
        executor=executor,
        completion_policy=RetryPolicy(max_retries=0),
        transport=httpx.MockTransport(handler),
    )


def _write_log(path, records: List[dict]) -> None:
    path.write_text("".join(json.dumps(record) + "\n" for record in records), encoding="utf-8")


_E2E_RECORDS = [
    {"run_id": 100, "case_id": 1, "status": "passed", "end_time": "2025-03-01 10:00:00"},
    {"run_id": 100, "case_id": 2, "status": "failed", "end_time": "2025-03-01 10:30:00"},
    {"run_id": 200, "case_id": 5, "status": "passed", "end_time": "2025-03-01 09:00:00"},
    {"run_id": 200, "case_id": 5, "status": "passed", "end_time": "2025-03-01 09:30:00"},
    {"run_id": 200, "case_id": 6, "status": "passed", "end_time": "2025-03-01 09:10:00"},
]


@pytest.mark.asyncio
async def test_end_to_end_select_validate_complete(tmp_path) -> None:
    _write_log(tmp_path / "results.json", _E2E_RECORDS)
    requests: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(f"{request.method} {request.url.path}")
        if request.method == "GET" and request.url.path == "/v1/run/DEMO/200":
            return httpx.Response(200, json={"status": True, "result": {"id": 200, "status": 0, "cases": [5, 5, 6]}})
        if request.method == "POST" and request.url.path == "/v1/run/DEMO/200/complete":
            return httpx.Response(200, json={"status": True})
        return httpx.Response(404, json={"status": False, "errorMessage": "Not found"})

    async with _client(handler) as client:
        pipeline = Pipeline(_settings(tmp_path), client=client)
        report = await pipeline.run(fetch=False)

    assert report.selected == [200]
    assert report.confirmed == [200]
    assert report.summary.completed == [200]
    assert report.summary.failed == []
    assert report.states() == {200: RunState.COMPLETED}
    assert requests == ["GET /v1/run/DEMO/200", "POST /v1/run/DEMO/200/complete"]
    assert (tmp_path / "filtered.txt").read_text(encoding="utf-8") == "200"
    assert (tmp_path / "final.txt").read_text(encoding="utf-8") == "200"
    assert not (tmp_path / "errors.txt").exists()


@pytest.mark.asyncio
async def test_stage_commands_hand_off_through_files(tmp_path) -> None:
    _write_log(tmp_path / "results.json", _E2E_RECORDS + [
        {"run_id": 300, "case_id": 7, "status": "passed", "end_time": "2025-03-01 09:00:00"},
    ])

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/run/DEMO/200":
            return httpx.Response(200, json={"status": True, "result": {"status": 0, "cases": [5, 5, 6]}})
        if request.url.path == "/v1/run/DEMO/300":
            return httpx.Response(200, json={"status": True, "result": {"status": 0, "cases": [7, 7]}})
        if request.url.path == "/v1/run/DEMO/200/complete":
            return httpx.Response(200, json={"status": False, "errorMessage": "Test run not found"})
        raise AssertionError(f"unexpected request: {request.method} {request.url}")

    async with _client(handler) as client:
        pipeline = Pipeline(_settings(tmp_path), client=client)
        assert pipeline.select() == [200, 300]
        assert await pipeline.validate() == [200]
        summary = await pipeline.complete()

    assert summary.failed == [200]
    assert (tmp_path / "errors.txt").read_text(encoding="utf-8") == "Run ID 200: Test run not found\n"


@pytest.mark.asyncio
async def test_unreadable_handoff_processes_nothing(tmp_path) -> None:
    (tmp_path / "final.txt").write_text("12,,13", encoding="utf-8")

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with _client(handler) as client:
        summary = await Pipeline(_settings(tmp_path), client=client).complete()

    assert summary.total == 0


def test_select_without_log_or_credentials(tmp_path) -> None:
    pipeline = Pipeline(_settings(tmp_path, token="", project=""))

    assert pipeline.select() == []
    assert (tmp_path / "filtered.txt").read_text(encoding="utf-8") == ""


@pytest.mark.asyncio
async def test_missing_credentials_abort_before_any_request(tmp_path) -> None:
    _write_log(tmp_path / "results.json", _E2E_RECORDS)
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(200, json={"status": True})

    async with _client(handler) as client:
        pipeline = Pipeline(_settings(tmp_path, token=""), client=client)
        with pytest.raises(ConfigurationError):
            await pipeline.run(fetch=False)

    assert calls["n"] == 0
    assert not (tmp_path / "filtered.txt").exists()


@pytest.mark.asyncio
async def test_fetch_then_run(tmp_path) -> None:
    entities = [
        {"run_id": 400, "case_id": 1, "status": "passed", "end_time": "2025-03-01 09:00:00", "hash": "h1"},
        {"run_id": 400, "case_id": 2, "status": "passed", "end_time": "2025-03-01 09:01:00", "hash": "h2"},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/result/DEMO":
            limit = int(request.url.params["limit"])
            offset = int(request.url.params["offset"])
            page = entities[offset:offset + limit]
            return httpx.Response(200, json={"status": True, "result": {"total": len(entities), "count": len(page), "entities": page}})
        if request.url.path == "/v1/run/DEMO/400":
            return httpx.Response(200, json={"status": True, "result": {"status": 0, "cases": [1, 2]}})
        if request.url.path == "/v1/run/DEMO/400/complete":
            return httpx.Response(200, json={"status": True})
        raise AssertionError(f"unexpected request: {request.method} {request.url}")

    async with _client(handler) as client:
        report = await Pipeline(_settings(tmp_path), client=client).run()

    assert report.fetched == 2
    assert report.summary.completed == [400]


@pytest.mark.asyncio
async def test_complete_all_in_progress(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path == "/v1/run/DEMO":
            entities = [{"id": 1, "status": 0}, {"id": 2, "status": 1}, {"id": 3, "status": 0}]
            return httpx.Response(200, json={"status": True, "result": {"total": 3, "count": 3, "entities": entities}})
        if request.method == "POST":
            return httpx.Response(200, json={"status": True})
        raise AssertionError(f"unexpected request: {request.method} {request.url}")

    async with _client(handler) as client:
        summary = await Pipeline(_settings(tmp_path), client=client).complete_all()

    assert summary.completed == [1, 3]


@pytest.mark.asyncio
async def test_undecodable_response_fails_only_that_run(tmp_path) -> None:
    _write_log(tmp_path / "results.json", [
        {"run_id": run_id, "case_id": 1, "status": "passed", "end_time": "2025-03-01 09:00:00"}
        for run_id in (10, 11)
    ])
    corrupt = {"Content-Encoding": "gzip"}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path in ("/v1/run/DEMO/11", "/v1/run/DEMO/13/complete"):
            return httpx.Response(200, headers=corrupt, content=b"not gzip")
        if request.url.path == "/v1/run/DEMO/10":
            return httpx.Response(200, json={"status": True, "result": {"status": 0, "cases": [1]}})
        if request.url.path == "/v1/run/DEMO/12/complete":
            return httpx.Response(200, json={"status": True})
        raise AssertionError(f"unexpected request: {request.method} {request.url}")

    async with _client(handler) as client:
        pipeline = Pipeline(_settings(tmp_path), client=client)
        confirmed = await pipeline.validate([10, 11])
        summary = await pipeline.complete([12, 13])

    assert confirmed == [10]
    assert summary.completed == [12]
    assert summary.failed == [13]
    entries = (tmp_path / "errors.txt").read_text(encoding="utf-8").splitlines()
    assert len(entries) == 1
    assert entries[0].startswith("Run ID 13: ")
