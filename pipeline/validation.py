"""Cross-check selected runs against the service's authoritative case list."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Iterable, List

from client import QaseClient
from models import CaseOutcome
from storage import ResultIndex
from utils.exceptions import RemoteCallError


logger = logging.getLogger(__name__)


class RunValidator:
    """
    Confirms runs before completion.

    For each run the remote status must still be in progress, and for every
    case in the remote multiset the local log must hold at least as many
    records as the multiset count, with the latest of them a pass. The
    latest-pass check is recomputed here because remote state may have
    moved since selection.
    """

    def __init__(self, client: QaseClient, index: ResultIndex):
        self._client = client
        self._index = index

    async def validate(self, run_ids: Iterable[int]) -> List[int]:
        """Confirmed run IDs, ascending. Remote calls run concurrently."""
        candidates = list(dict.fromkeys(run_ids))
        confirmed: List[int] = []
        lock = asyncio.Lock()

        async def _validate_one(run_id: int) -> None:
            if await self.validate_run(run_id):
                async with lock:
                    confirmed.append(run_id)

        await asyncio.gather(*(_validate_one(run_id) for run_id in candidates))

        confirmed.sort()
        logger.info(f"Confirmed {len(confirmed)} of {len(candidates)} selected runs")
        return confirmed

    async def validate_run(self, run_id: int) -> bool:
        try:
            details = await self._client.get_run(run_id)
        except RemoteCallError as e:
            logger.warning(f"Run {run_id} dropped: could not fetch run details ({e})")
            return False

        if not details.in_progress:
            logger.info(f"Run {run_id} dropped: remote status is {details.status}, not in progress")
            return False

        return self.check_cases(run_id, details.cases)

    def check_cases(self, run_id: int, expected_cases: Iterable[int]) -> bool:
        expected = Counter(expected_cases)
        local_cases = self._index.cases(run_id)

        for case_id, expected_count in sorted(expected.items()):
            records = local_cases.get(case_id, [])
            if len(records) < expected_count:
                logger.info(
                    f"Run {run_id} rejected: case {case_id} expected {expected_count} result(s), "
                    f"found {len(records)}"
                )
                return False
            if not CaseOutcome.from_records(records).latest_is_passing:
                logger.info(f"Run {run_id} rejected: case {case_id} latest result is not a pass")
                return False

        logger.debug(f"Run {run_id} is valid against {sum(expected.values())} expected case result(s)")
        return True
