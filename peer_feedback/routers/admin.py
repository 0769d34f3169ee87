from typing import List

from fastapi import APIRouter, Depends

from peer_feedback.dependencies import get_feedback_service, get_ledger_service, require_admin
from peer_feedback.schemas.feedback import FeedbackRecordOut, LedgerOut
from peer_feedback.services.feedback_service import FeedbackService
from peer_feedback.services.ledger_service import LedgerService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)]
)


@router.get("/feedback", response_model=List[FeedbackRecordOut])
def list_feedback(service: FeedbackService = Depends(get_feedback_service)):
    """All feedback records, oldest first."""
    return service.list_all()


@router.get("/ledger", response_model=LedgerOut)
def get_ledger(ledger: LedgerService = Depends(get_ledger_service)):
    return ledger.snapshot()


@router.post("/ledger/rebuild", response_model=LedgerOut)
def rebuild_ledger(ledger: LedgerService = Depends(get_ledger_service)):
    """Recompute the submission counter and log from the feedback records."""
    return ledger.rebuild()
