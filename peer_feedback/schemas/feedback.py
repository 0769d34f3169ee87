from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase in JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---

class EvaluatorIn(BaseModel):
    """
    Identity fields are kept exactly as sent: the roster lookup needs the JSON
    integer itself, so `true`, `"1"` or `1.0` never resolve employee #1.
    """
    id: Any = None
    name: Optional[str] = None
    number: Any = None



class FeedbackSubmission(BaseModel):
    """
    Raw submission body. Every field is optional here so that absence is
    reported by the intake pipeline as MISSING_FIELDS rather than by FastAPI.
    Rating values stay untyped until the pipeline parses them.
    """
    evaluator: Optional[EvaluatorIn] = None
    ratings: Optional[Dict[str, Any]] = None
    reasons: Optional[Dict[str, Optional[str]]] = None
    timestamp: Optional[Union[str, int]] = None


# --- Responses ---

class FeedbackMetadata(CamelModel):
    total_ratings: int
    low_scores: int
    high_scores: int
    average_rating: str


class EvaluatorOut(BaseModel):
    id: int
    name: str
    number: int
    designation: str


class FeedbackRecordOut(CamelModel):
    id: str
    evaluator: EvaluatorOut
    ratings: Dict[str, int]
    reasons: Dict[str, str]
    timestamp: str
    completed_at: str
    server_timestamp: datetime
    metadata: FeedbackMetadata


class SubmissionAck(CamelModel):
    success: bool = True
    message: str = "Feedback submitted successfully"
    submission_id: str
    metadata: FeedbackMetadata


class StatsOut(CamelModel):
    total_employees: int
    total_submissions: int
    remaining_submissions: int
    completion_percentage: str
    last_updated: Optional[datetime] = None


class EmployeeSummary(BaseModel):
    id: int
    name: str
    designation: str


class SubmissionStatus(CamelModel):
    has_submitted: bool
    submitted_at: Optional[str] = None
    employee: EmployeeSummary


class EmployeeOut(BaseModel):
    id: int
    name: str
    number: int
    designation: str


class LedgerEntryOut(CamelModel):
    employee_id: int
    employee_name: str
    submitted_at: datetime


class LedgerOut(CamelModel):
    total_submissions: int
    last_updated: Optional[datetime] = None
    submissions: List[LedgerEntryOut] = []
