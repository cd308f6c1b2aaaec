"""Log-only run eligibility: latest result for every case must be a pass."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from models import CaseOutcome, ResultRecord
from storage import ResultIndex


logger = logging.getLogger(__name__)


class RunSelector:
    """
    Decides which runs may go on to validation, from the result log alone.

    A run is selected when every record in it passed, or failing that, when
    each of its cases has at least one pass and its chronologically latest
    record is a pass. One disqualifying case rejects the whole run.
    """

    def select(self, index: ResultIndex) -> List[int]:
        """Selected run IDs, ascending."""
        selected = [run_id for run_id in index.run_ids() if self.is_eligible(run_id, index.cases(run_id))]
        logger.info(f"Selected {len(selected)} of {len(index)} runs")
        return selected

    def select_records(self, records: Iterable[ResultRecord]) -> List[int]:
        return self.select(ResultIndex.from_records(records))

    def is_eligible(self, run_id: int, cases: Dict[int, List[ResultRecord]]) -> bool:
        if not cases:
            return False

        if all(record.passed for records in cases.values() for record in records):
            return True

        for case_id in sorted(cases):
            outcome = CaseOutcome.from_records(cases[case_id])
            if not outcome.has_pass:
                logger.debug(f"Run {run_id} rejected: case {case_id} never passed")
                return False
            if not outcome.latest_is_passing:
                logger.debug(
                    f"Run {run_id} rejected: case {case_id} latest result at "
                    f"{outcome.latest_overall_time} is not a pass (last pass {outcome.latest_pass_time})"
                )
                return False

        return True
