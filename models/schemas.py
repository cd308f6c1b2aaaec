"""
Data Models / Schemas
Records, remote payloads and derived outcomes shared by every stage
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


PASSED = "passed"

# Remote run status code for "in progress"
RUN_STATUS_IN_PROGRESS = 0


class ResultStatus(str, Enum):
    """Outcome of one case execution; anything but "passed" collapses to OTHER"""
    PASSED = PASSED
    OTHER = "other"


class RunState(str, Enum):
    """One-way eligibility progression of a run within a pipeline execution"""
    UNKNOWN = "unknown"
    SELECTED = "selected"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    FAILED = "failed"


class ResultRecord(BaseModel):
    """One observed outcome of executing a test case within a run"""
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    run_id: int = Field(..., description="Run identifier")
    case_id: int = Field(..., description="Case identifier")
    status: ResultStatus = Field(..., description="passed / other")
    end_time: str = Field(default="", description="Fixed-width ISO-8601 end time")

    @field_validator("status", mode="before")
    @classmethod
    def _collapse_status(cls, value: Any) -> ResultStatus:
        if isinstance(value, ResultStatus):
            return value
        return ResultStatus.PASSED if value == PASSED else ResultStatus.OTHER

    @field_validator("end_time", mode="before")
    @classmethod
    def _end_time_text(cls, value: Any) -> str:
        # In-flight results carry a null end time; they sort before any real one
        return "" if value is None else str(value)

    @property
    def passed(self) -> bool:
        return self.status is ResultStatus.PASSED


class RunDetails(BaseModel):
    """Remote view of a run: status code and authoritative case multiset"""
    id: Optional[int] = None
    status: int
    cases: List[int] = Field(default_factory=list)

    @field_validator("cases", mode="before")
    @classmethod
    def _cases_list(cls, value: Any) -> List[int]:
        return [] if value is None else value

    @property
    def in_progress(self) -> bool:
        return self.status == RUN_STATUS_IN_PROGRESS


class RunSummary(BaseModel):
    """Run metadata as returned by the run listing"""
    model_config = ConfigDict(extra="ignore")

    id: int
    status: int

    @property
    def in_progress(self) -> bool:
        return self.status == RUN_STATUS_IN_PROGRESS


class RunsPage(BaseModel):
    """One page of the run listing"""
    total: int = 0
    count: int = 0
    entities: List[RunSummary] = Field(default_factory=list)


class ResultsPage(BaseModel):
    """One page of raw result entities, kept as plain dicts for the log"""
    total: int = 0
    count: int = 0
    entities: List[dict] = Field(default_factory=list)


class CompletionResponse(BaseModel):
    """Reply to a completion request"""
    status: bool
    error_message: Optional[str] = Field(default=None, alias="errorMessage")

    model_config = ConfigDict(populate_by_name=True)


@dataclass(frozen=True)
class CaseOutcome:
    """
    Derived view of every record for one (run, case) pair.

    Times compare as strings; the producer guarantees a fixed-width,
    zero-padded ISO-8601 format. When the latest passing record and the
    latest overall record share an end time, the passing record wins.
    """
    run_id: int
    case_id: int
    record_count: int
    has_pass: bool
    latest_pass_time: Optional[str]
    latest_overall_time: str
    latest_overall_status: ResultStatus

    @classmethod
    def from_records(cls, records: Iterable[ResultRecord]) -> "CaseOutcome":
        records = list(records)
        if not records:
            raise ValueError("CaseOutcome needs at least one record")

        first = records[0]
        latest_pass_time: Optional[str] = None
        latest_overall_time = first.end_time
        latest_overall_status = first.status

        for record in records:
            if record.passed and (latest_pass_time is None or record.end_time > latest_pass_time):
                latest_pass_time = record.end_time

            if record.end_time > latest_overall_time:
                latest_overall_time = record.end_time
                latest_overall_status = record.status
            elif record.end_time == latest_overall_time and record.passed:
                latest_overall_status = ResultStatus.PASSED

        return cls(
            run_id=first.run_id,
            case_id=first.case_id,
            record_count=len(records),
            has_pass=latest_pass_time is not None,
            latest_pass_time=latest_pass_time,
            latest_overall_time=latest_overall_time,
            latest_overall_status=latest_overall_status,
        )

    @property
    def latest_is_passing(self) -> bool:
        return (
            self.has_pass
            and self.latest_pass_time == self.latest_overall_time
            and self.latest_overall_status is ResultStatus.PASSED
        )
