"""
Qase API Client
Async JSON-over-HTTPS access to runs and results.
Every request goes through the shared RateLimitedExecutor.
API docs: https://developers.qase.io/reference
"""
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from executor import COMPLETION_POLICY, RateLimitedExecutor, RetryPolicy
from models import CompletionResponse, ResultsPage, RunDetails, RunsPage
from utils.exceptions import MalformedResponseError, TerminalRemoteError


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.qase.io/v1"


class QaseClient:
    """
    Client for the test-management service.

    Endpoints used:
    - GET  result/{project}?limit&offset      (result ingestion)
    - GET  run/{project}?limit&offset         (run listing)
    - GET  run/{project}/{id}?include=cases   (authoritative case list)
    - POST run/{project}/{id}/complete        (not idempotent)
    """

    def __init__(
        self,
        *,
        api_token: str,
        project_code: str,
        executor: RateLimitedExecutor,
        base_url: str = DEFAULT_BASE_URL,
        read_policy: Optional[RetryPolicy] = None,
        completion_policy: RetryPolicy = COMPLETION_POLICY,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.project_code = project_code
        self._executor = executor
        self._read_policy = read_policy or executor.policy
        self._completion_policy = completion_policy
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url,
            headers={"accept": "application/json", "Token": api_token},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, executor: RateLimitedExecutor) -> "QaseClient":
        """Build a client from a ``config.Settings`` instance."""
        return cls(
            api_token=settings.qase.api_token or "",
            project_code=settings.qase.project_code or "",
            executor=executor,
            base_url=settings.qase.base_url,
            read_policy=settings.retry.to_policy(),
            completion_policy=settings.completion_retry.to_policy(),
        )

    def with_executor(self, executor: RateLimitedExecutor) -> "QaseClient":
        """Same connection and credentials, different pacing."""
        return QaseClient(
            api_token="",
            project_code=self.project_code,
            executor=executor,
            read_policy=self._read_policy,
            completion_policy=self._completion_policy,
            http_client=self._http,
        )

    @property
    def completion_policy(self) -> RetryPolicy:
        return self._completion_policy

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self._owns_http:
            await self._http.aclose()

    async def get_run(self, run_id: int) -> RunDetails:
        """Fetch a run's status and its authoritative case multiset."""
        payload = await self._request_envelope(
            "GET",
            f"/run/{self.project_code}/{run_id}",
            params={"include": "cases"},
            label=f"get run {run_id}",
        )
        return self._parse(RunDetails, payload.get("result"), f"run {run_id}")

    async def complete_run(self, run_id: int, *, policy: Optional[RetryPolicy] = None) -> CompletionResponse:
        """
        Mark a run complete.

        A ``status: false`` reply is returned as-is so the caller can record
        the service's error message.
        """
        response = await self._dispatch(
            "POST",
            f"/run/{self.project_code}/{run_id}/complete",
            policy=policy or self._completion_policy,
            label=f"complete run {run_id}",
        )
        return self._parse(CompletionResponse, self._json(response, f"complete run {run_id}"), f"complete run {run_id}")

    async def list_runs(self, *, limit: int, offset: int) -> RunsPage:
        payload = await self._request_envelope(
            "GET",
            f"/run/{self.project_code}",
            params={"limit": limit, "offset": offset},
            label=f"list runs offset={offset}",
        )
        return self._parse(RunsPage, payload.get("result"), f"runs page {offset}")

    async def list_results(self, *, limit: int, offset: int) -> ResultsPage:
        payload = await self._request_envelope(
            "GET",
            f"/result/{self.project_code}",
            params={"limit": limit, "offset": offset},
            label=f"list results offset={offset}",
        )
        return self._parse(ResultsPage, payload.get("result"), f"results page {offset}")

    async def _dispatch(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        policy: Optional[RetryPolicy] = None,
        label: str,
    ) -> httpx.Response:
        async def _call() -> httpx.Response:
            return await self._http.request(method, path, params=params)

        result = await self._executor.execute(_call, policy=policy or self._read_policy, label=label)
        return result.unwrap()

    async def _request_envelope(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        label: str,
    ) -> Dict[str, Any]:
        response = await self._dispatch(method, path, params=params, label=label)
        payload = self._json(response, label)
        if not payload.get("status"):
            raise TerminalRemoteError(
                f"{label}: API response status is false",
                status_code=response.status_code,
                error_message=payload.get("errorMessage"),
            )
        return payload

    @staticmethod
    def _json(response: httpx.Response, label: str) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{label}: response is not JSON", status_code=response.status_code) from e
        if not isinstance(payload, dict):
            raise MalformedResponseError(f"{label}: expected a JSON object", status_code=response.status_code)
        return payload

    @staticmethod
    def _parse(model, data: Any, label: str):
        if data is None:
            raise MalformedResponseError(f"{label}: response has no result")
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(f"{label}: unexpected response shape", errors=e.errors()) from e
