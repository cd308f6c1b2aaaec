"""Run-ID list hand-off files: one line of comma-separated decimal integers."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Union

from utils.exceptions import RunIdCodecError


logger = logging.getLogger(__name__)

_DECIMAL = re.compile(r"^[0-9]+$")


def encode_run_ids(run_ids: Iterable[int]) -> str:
    """Encode IDs as ``1,2,3``. Order is preserved; callers sort."""
    parts: List[str] = []
    for run_id in run_ids:
        if isinstance(run_id, bool) or not isinstance(run_id, int) or run_id < 0:
            raise RunIdCodecError(f"Not a run ID: {run_id!r}")
        parts.append(str(run_id))
    return ",".join(parts)


def decode_run_ids(text: str) -> List[int]:
    """
    Parse ``1,2,3``. Blank input is an empty list.

    Empty tokens (``1,,2``) and non-decimal tokens are rejected rather
    than read as zero.
    """
    text = (text or "").strip()
    if not text:
        return []

    run_ids: List[int] = []
    for position, token in enumerate(text.split(",")):
        if not token:
            raise RunIdCodecError("Empty run ID token", {"position": position})
        if not _DECIMAL.match(token):
            raise RunIdCodecError(f"Non-numeric run ID token {token!r}", {"position": position})
        run_ids.append(int(token))
    return run_ids


def write_run_ids(path: Union[str, Path], run_ids: Iterable[int]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(encode_run_ids(run_ids), encoding="utf-8")


def read_run_ids(path: Union[str, Path]) -> List[int]:
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RunIdCodecError(f"Cannot read run IDs from {path}", {"error": str(e)}) from e
    run_ids = decode_run_ids(content)
    logger.debug(f"Read {len(run_ids)} run IDs from {path}")
    return run_ids
