from fastapi import APIRouter, Depends, Request

from peer_feedback.core.config import settings
from peer_feedback.core.exceptions import NotFoundError
from peer_feedback.core.limiter import limiter
from peer_feedback.dependencies import get_feedback_service, get_ledger_service
from peer_feedback.schemas.feedback import (
    FeedbackSubmission,
    StatsOut,
    SubmissionAck,
    SubmissionStatus,
)
from peer_feedback.services.feedback_service import FeedbackService
from peer_feedback.services.ledger_service import LedgerService
from peer_feedback.services.roster import Roster, get_roster

router = APIRouter(tags=["feedback"])


@router.post("/feedback", response_model=SubmissionAck)
@limiter.limit(settings.submission_rate_limit)
def submit_feedback(
    request: Request,
    submission: FeedbackSubmission,
    service: FeedbackService = Depends(get_feedback_service),
):
    """Validate and store one evaluator's ratings of every colleague."""
    return service.submit(submission)


@router.get("/stats", response_model=StatsOut)
def get_stats(
    roster: Roster = Depends(get_roster),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.stats(total_employees=len(roster))


@router.get("/check-submission/{employee_number}", response_model=SubmissionStatus)
def check_submission(
    employee_number: str,
    service: FeedbackService = Depends(get_feedback_service),
):
    """Whether the employee with this public number has already submitted."""
    try:
        number = int(employee_number)
    except ValueError:
        raise NotFoundError("Employee not found")
    return service.check_submission(number)
