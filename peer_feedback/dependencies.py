"""
Service providers for route handlers.

Routers depend on these rather than constructing services themselves, so
tests can swap the session or the roster through dependency_overrides.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from peer_feedback.database import get_db
from peer_feedback.routers.auth_deps import require_admin
from peer_feedback.services.feedback_service import FeedbackService
from peer_feedback.services.ledger_service import LedgerService
from peer_feedback.services.roster import Roster, get_roster


def get_feedback_service(
    db: Session = Depends(get_db),
    roster: Roster = Depends(get_roster),
) -> FeedbackService:
    return FeedbackService(db, roster)


def get_ledger_service(db: Session = Depends(get_db)) -> LedgerService:
    return LedgerService(db)


__all__ = [
    "get_db",
    "get_roster",
    "get_feedback_service",
    "get_ledger_service",
    "require_admin",
]
