"""Irreversible completion of confirmed runs, with a durable failure ledger."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from client import QaseClient
from executor import RetryPolicy
from models import RunState
from storage import ErrorLedger
from utils.exceptions import LedgerError, RemoteCallError


logger = logging.getLogger(__name__)


@dataclass
class CompletionSummary:
    """Per-batch outcome of completion calls."""

    completed: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def completed_count(self) -> int:
        return len(self.completed)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def total(self) -> int:
        return self.completed_count + self.failed_count


class CompletionOrchestrator:
    """
    Marks runs complete on the service.

    Completion is not idempotent on the service side, so calls use the
    client's conservative retry profile unless one is passed in. A failed
    run is written to the error ledger and never aborts the batch.
    """

    def __init__(
        self,
        client: QaseClient,
        ledger: ErrorLedger,
        *,
        policy: Optional[RetryPolicy] = None,
    ):
        self._client = client
        self._ledger = ledger
        self._policy = policy or client.completion_policy

    async def complete(self, run_ids: Iterable[int]) -> CompletionSummary:
        run_ids = list(dict.fromkeys(run_ids))
        summary = CompletionSummary()
        lock = asyncio.Lock()

        async def _complete_one(run_id: int) -> None:
            state = await self.complete_run(run_id)
            async with lock:
                if state is RunState.COMPLETED:
                    summary.completed.append(run_id)
                else:
                    summary.failed.append(run_id)

        await asyncio.gather(*(_complete_one(run_id) for run_id in run_ids))

        summary.completed.sort()
        summary.failed.sort()
        logger.info(f"Completion finished: {summary.completed_count} completed, {summary.failed_count} failed")
        return summary

    async def complete_run(self, run_id: int) -> RunState:
        try:
            response = await self._client.complete_run(run_id, policy=self._policy)
        except RemoteCallError as e:
            self._record_failure(run_id, str(e))
            return RunState.FAILED

        if response.status:
            logger.info(f"Run {run_id} marked complete")
            return RunState.COMPLETED

        reason = response.error_message or "API returned status false"
        self._record_failure(run_id, reason)
        return RunState.FAILED

    def _record_failure(self, run_id: int, reason: str) -> None:
        logger.error(f"Failed to mark run {run_id} complete: {reason}")
        try:
            self._ledger.record(run_id, reason)
        except LedgerError as e:
            logger.error(f"Run {run_id} failure not ledgered: {e}")
