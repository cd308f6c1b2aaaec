"""Select -> validate -> complete pipeline over the result log."""

from .completion import CompletionOrchestrator, CompletionSummary
from .ingestion import ResultFetcher, fetch_in_progress_run_ids
from .runner import Pipeline, PipelineReport
from .selection import RunSelector
from .validation import RunValidator

__all__ = [
    "CompletionOrchestrator",
    "CompletionSummary",
    "Pipeline",
    "PipelineReport",
    "ResultFetcher",
    "RunSelector",
    "RunValidator",
    "fetch_in_progress_run_ids",
]
