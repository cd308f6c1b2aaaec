"""Append-only ledger of runs that could not be completed."""

from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import List, Union

from utils.exceptions import LedgerError


class ErrorLedger:
    """One ``Run ID <id>: <reason>`` line per failure; never truncated."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = Lock()

    def record(self, run_id: int, reason: str) -> None:
        reason = " ".join(str(reason or "").split()) or "completion failed"
        line = f"Run ID {int(run_id)}: {reason}\n"
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(line)
            except OSError as e:
                raise LedgerError(f"Cannot append to {self.path}", {"run_id": run_id, "error": str(e)}) from e

    def entries(self) -> List[str]:
        with self._lock:
            if not self.path.exists():
                return []
            return [line for line in self.path.read_text(encoding="utf-8").splitlines() if line.strip()]
