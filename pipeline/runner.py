"""Stage driver: fetch -> select -> validate -> complete, with file hand-offs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from client import QaseClient
from config import Settings
from executor import RateLimitedExecutor
from models import RunState
from storage import ErrorLedger, ResultIndex, ResultLog, read_run_ids, write_run_ids
from utils.exceptions import LocalDataError, RemoteCallError
from .completion import CompletionOrchestrator, CompletionSummary
from .ingestion import ResultFetcher, fetch_in_progress_run_ids
from .selection import RunSelector
from .validation import RunValidator


logger = logging.getLogger(__name__)


@dataclass
class PipelineReport:
    """What each stage produced in one execution."""

    fetched: Optional[int] = None
    selected: List[int] = field(default_factory=list)
    confirmed: List[int] = field(default_factory=list)
    summary: Optional[CompletionSummary] = None
    aborted_stage: Optional[str] = None

    def states(self) -> Dict[int, RunState]:
        """Furthest state each run reached."""
        states: Dict[int, RunState] = {run_id: RunState.SELECTED for run_id in self.selected}
        for run_id in self.confirmed:
            states[run_id] = RunState.CONFIRMED
        if self.summary is not None:
            for run_id in self.summary.completed:
                states[run_id] = RunState.COMPLETED
            for run_id in self.summary.failed:
                states[run_id] = RunState.FAILED
        return states


class Pipeline:
    """
    Owns the per-execution shared objects (executor, client, ledger) and
    runs the stages against the hand-off files named in ``settings.paths``.

    The client is built on first use, after the credential pre-flight, so
    the log-only selection stage runs without credentials.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[QaseClient] = None,
        executor: Optional[RateLimitedExecutor] = None,
    ):
        self.settings = settings
        self._executor = executor
        self._client = client
        self._owns_client = client is None
        self.result_log = ResultLog(settings.paths.results_log)
        self.ledger = ErrorLedger(settings.paths.error_ledger)
        self.selector = RunSelector()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None

    @property
    def executor(self) -> RateLimitedExecutor:
        if self._executor is None:
            self._executor = RateLimitedExecutor(
                max_concurrent=self.settings.executor.max_concurrent,
                requests_per_second=self.settings.executor.requests_per_second,
                policy=self.settings.retry.to_policy(),
            )
        return self._executor

    def client(self) -> QaseClient:
        if self._client is None:
            self.settings.require_credentials()
            self._client = QaseClient.from_settings(self.settings, self.executor)
        return self._client

    async def fetch(self, *, append: bool = False) -> int:
        fetch_executor = self.executor.with_rate_limit(self.settings.fetch.requests_per_second)
        fetcher = ResultFetcher(
            self.client().with_executor(fetch_executor),
            self.result_log,
            page_size=self.settings.fetch.page_size,
        )
        return await fetcher.fetch_all(append=append)

    def load_index(self) -> ResultIndex:
        try:
            return ResultIndex.from_log(self.result_log)
        except LocalDataError as e:
            logger.error(f"Result log unusable, continuing with no records: {e}")
            return ResultIndex({})

    def select(self, index: Optional[ResultIndex] = None) -> List[int]:
        index = index if index is not None else self.load_index()
        selected = self.selector.select(index)
        write_run_ids(self.settings.paths.selected_path, selected)
        logger.info(f"Selected run IDs written to {self.settings.paths.selected_path}")
        return selected

    async def validate(
        self,
        run_ids: Optional[Iterable[int]] = None,
        index: Optional[ResultIndex] = None,
    ) -> List[int]:
        if run_ids is None:
            run_ids = self._read_handoff(self.settings.paths.selected_path)
        index = index if index is not None else self.load_index()
        confirmed = await RunValidator(self.client(), index).validate(run_ids)
        write_run_ids(self.settings.paths.confirmed_path, confirmed)
        logger.info(f"Confirmed run IDs written to {self.settings.paths.confirmed_path}")
        return confirmed

    async def complete(self, run_ids: Optional[Iterable[int]] = None) -> CompletionSummary:
        if run_ids is None:
            run_ids = self._read_handoff(self.settings.paths.confirmed_path)
        orchestrator = CompletionOrchestrator(self.client(), self.ledger)
        return await orchestrator.complete(run_ids)

    async def complete_all(self) -> CompletionSummary:
        """Complete every in-progress run, bypassing selection and validation."""
        run_ids = await fetch_in_progress_run_ids(
            self.client(),
            page_size=self.settings.fetch.page_size,
            max_consecutive_failures=self.settings.fetch.max_consecutive_failures,
        )
        if not run_ids:
            logger.info("No in-progress test runs found")
            return CompletionSummary()
        return await self.complete(run_ids)

    async def run(self, *, fetch: bool = True, append: bool = False) -> PipelineReport:
        """Run every stage in order; each stage finishes before the next starts."""
        self.settings.require_credentials()
        report = PipelineReport()

        if fetch:
            try:
                report.fetched = await self.fetch(append=append)
            except RemoteCallError as e:
                logger.error(f"Result ingestion failed, pipeline stopped: {e}")
                report.aborted_stage = "fetch"
                return report

        index = self.load_index()
        report.selected = self.select(index)
        report.confirmed = await self.validate(report.selected, index)
        report.summary = await self.complete(report.confirmed)
        return report

    @staticmethod
    def _read_handoff(path: str) -> List[int]:
        try:
            return read_run_ids(path)
        except LocalDataError as e:
            logger.error(f"Run ID hand-off unusable, nothing to process: {e}")
            return []
