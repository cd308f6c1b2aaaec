"""
Models Module
"""
from .schemas import (
    PASSED,
    RUN_STATUS_IN_PROGRESS,
    ResultStatus,
    RunState,
    ResultRecord,
    RunDetails,
    RunSummary,
    RunsPage,
    ResultsPage,
    CompletionResponse,
    CaseOutcome,
)

__all__ = [
    "PASSED",
    "RUN_STATUS_IN_PROGRESS",
    "ResultStatus",
    "RunState",
    "ResultRecord",
    "RunDetails",
    "RunSummary",
    "RunsPage",
    "ResultsPage",
    "CompletionResponse",
    "CaseOutcome",
]
