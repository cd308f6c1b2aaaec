"""
Result Log
Append-only JSON-lines log of result records, and the in-memory index
the selection and validation stages read it through.
"""
import json
import logging
from collections import defaultdict
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, Iterator, List, Union

from pydantic import ValidationError

from models import ResultRecord
from utils.exceptions import ResultLogError


logger = logging.getLogger(__name__)


class ResultLog:
    """
    One JSON object per line, one result per object.

    Lines are only ever appended; ``reset`` starts a fresh log for a new
    ingestion. Reading skips malformed lines and keeps going.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = Lock()

    def reset(self) -> None:
        """Start an empty log."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("", encoding="utf-8")

    def append(self, entities: Iterable[dict]) -> int:
        """Append raw result entities. Returns the number of lines written."""
        written = 0
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as f:
                    for entity in entities:
                        f.write(json.dumps(entity, ensure_ascii=False))
                        f.write("\n")
                        written += 1
            except OSError as e:
                raise ResultLogError(f"Cannot append to {self.path}", {"error": str(e)}) from e
        return written

    def iter_records(self) -> Iterator[ResultRecord]:
        """Yield every well-formed record in file order."""
        try:
            f = self.path.open("rb")
        except OSError as e:
            raise ResultLogError(f"Cannot open result log {self.path}", {"error": str(e)}) from e

        skipped = 0
        with f:
            for line_no, raw in enumerate(f, start=1):
                if not raw.strip():
                    continue
                try:
                    record = ResultRecord.model_validate(json.loads(raw.decode("utf-8")))
                except (ValueError, ValidationError) as e:
                    skipped += 1
                    logger.warning(f"Skipping malformed result at {self.path}:{line_no}: {e}")
                    continue
                yield record

        if skipped:
            logger.warning(f"Skipped {skipped} malformed line(s) in {self.path}")

    def load(self) -> List[ResultRecord]:
        records = list(self.iter_records())
        logger.info(f"Loaded {len(records)} result records from {self.path}")
        return records


class ResultIndex:
    """Read-only grouping of records by run, then by case."""

    def __init__(self, runs: Dict[int, Dict[int, List[ResultRecord]]]):
        self._runs = runs

    @classmethod
    def from_records(cls, records: Iterable[ResultRecord]) -> "ResultIndex":
        runs: Dict[int, Dict[int, List[ResultRecord]]] = defaultdict(lambda: defaultdict(list))
        for record in records:
            runs[record.run_id][record.case_id].append(record)
        return cls({run_id: dict(cases) for run_id, cases in runs.items()})

    @classmethod
    def from_log(cls, log: ResultLog) -> "ResultIndex":
        return cls.from_records(log.iter_records())

    def run_ids(self) -> List[int]:
        return sorted(self._runs)

    def cases(self, run_id: int) -> Dict[int, List[ResultRecord]]:
        return self._runs.get(run_id, {})

    def records(self, run_id: int, case_id: int) -> List[ResultRecord]:
        return self.cases(run_id).get(case_id, [])

    def __contains__(self, run_id: int) -> bool:
        return run_id in self._runs

    def __len__(self) -> int:
        return len(self._runs)
