"""Result ingestion into the log, and the listing of in-progress runs."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from client import QaseClient
from storage import ResultLog
from utils.exceptions import RemoteCallError


logger = logging.getLogger(__name__)


class ResultFetcher:
    """
    Pulls every result for the project into the result log.

    A one-item probe learns the total, then all pages are fetched
    concurrently and appended as they arrive. A page that cannot be
    fetched is logged and skipped.
    """

    def __init__(self, client: QaseClient, log: ResultLog, *, page_size: int = 100):
        self._client = client
        self._log = log
        self._page_size = max(1, int(page_size))

    async def fetch_all(self, *, append: bool = False) -> int:
        """Returns the number of records written. Raises if the probe fails."""
        probe = await self._client.list_results(limit=1, offset=0)
        total = probe.total
        logger.info(f"Total results to fetch: {total}")

        if not append:
            self._log.reset()

        offsets = list(range(0, total, self._page_size))
        counts = await asyncio.gather(*(self._fetch_page(offset) for offset in offsets))
        written = sum(counts)

        logger.info(f"Fetching complete: {written} of {total} results saved to {self._log.path}")
        return written

    async def _fetch_page(self, offset: int) -> int:
        try:
            page = await self._client.list_results(limit=self._page_size, offset=offset)
        except RemoteCallError as e:
            logger.error(f"Results page at offset {offset} skipped: {e}")
            return 0
        return self._log.append(page.entities)


async def fetch_in_progress_run_ids(
    client: QaseClient,
    *,
    page_size: int = 100,
    max_consecutive_failures: int = 3,
) -> List[int]:
    """
    Page through every run and keep the in-progress ones.

    A failed page is skipped; listing stops on a short page or after
    ``max_consecutive_failures`` failed pages in a row.
    """
    run_ids: List[int] = []
    offset = 0
    consecutive_failures = 0

    while True:
        try:
            page = await client.list_runs(limit=page_size, offset=offset)
        except RemoteCallError as e:
            consecutive_failures += 1
            logger.error(f"Runs page at offset {offset} failed: {e}")
            if consecutive_failures >= max_consecutive_failures:
                logger.error(f"Too many consecutive failures ({consecutive_failures}), stopping run listing")
                break
            offset += page_size
            continue

        consecutive_failures = 0
        batch = [run.id for run in page.entities if run.in_progress]
        run_ids.extend(batch)
        logger.info(
            f"Fetched {len(page.entities)} runs (offset {offset}), "
            f"{len(batch)} in progress, {len(run_ids)} total so far"
        )

        if len(page.entities) < page_size:
            break
        offset += page_size

    run_ids = sorted(set(run_ids))
    logger.info(f"Found {len(run_ids)} in-progress runs")
    return run_ids
