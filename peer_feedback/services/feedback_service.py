"""
Feedback intake: validation pipeline, duplicate check, metadata and commit.

The pipeline short-circuits on the first failure, in this order:
required fields, evaluator identity, completeness (self-rating, then
coverage), rating range, reasons for extreme ratings, duplicate submission.
"""
import logging
import threading
import time
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from peer_feedback.core.config import settings
from peer_feedback.core.exceptions import (
    DuplicateSubmissionError,
    InvalidRatingValueError,
    MissingFieldsError,
    MissingReasonError,
    NameMismatchError,
    NotFoundError,
    RatingCountMismatchError,
    SelfRatingError,
    StorageError,
    UnknownEmployeeError,
)
from peer_feedback.models.feedback import FeedbackRecord
from peer_feedback.schemas.feedback import (
    EmployeeSummary,
    EvaluatorIn,
    EvaluatorOut,
    FeedbackMetadata,
    FeedbackRecordOut,
    FeedbackSubmission,
    SubmissionAck,
    SubmissionStatus,
)
from peer_feedback.services import clock
from peer_feedback.services.base import BaseService
from peer_feedback.services.ledger_service import LedgerService
from peer_feedback.services.roster import Employee, Roster

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 10
LOW_SCORE_MAX = 3
HIGH_SCORE_MIN = 9

# One writer at a time for duplicate-check + insert + ledger update
_submission_lock = threading.Lock()
_last_submission_id = 0


def _next_submission_id() -> str:
    """Epoch milliseconds, bumped when two submissions land in the same millisecond.

    Caller must hold _submission_lock.
    """
    global _last_submission_id
    now_ms = time.time_ns() // 1_000_000
    _last_submission_id = max(now_ms, _last_submission_id + 1)
    return str(_last_submission_id)


def parse_employee_key(key: Any) -> Optional[int]:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    try:
        return int(str(key).strip())
    except ValueError:
        return None


def parse_rating(value: Any) -> Optional[int]:
    """Integer value of a submitted rating, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def needs_reason(rating: int) -> bool:
    return rating <= LOW_SCORE_MAX or rating >= HIGH_SCORE_MIN


# --- Pipeline steps ---

def require_fields(submission: FeedbackSubmission) -> None:
    missing = []
    evaluator = submission.evaluator
    if evaluator is None or not evaluator.name or evaluator.number is None:
        missing.append("evaluator")
    if submission.ratings is None:
        missing.append("ratings")
    if not submission.timestamp:
        missing.append("timestamp")
    if missing:
        raise MissingFieldsError(missing)


def validate_identity(roster: Roster, evaluator: EvaluatorIn) -> Employee:
    employee = roster.find_by_number(evaluator.number)
    if employee is None:
        raise UnknownEmployeeError()
    if employee.name.lower() != evaluator.name.lower():
        raise NameMismatchError()
    return employee


def validate_completeness(roster: Roster, evaluator: Employee, ratings: Dict[str, Any]) -> Dict[str, Any]:
    """
    Evaluator must rate every other roster member exactly once and never
    themselves. Returns the ratings re-keyed by canonical employee id.
    """
    parsed_keys = {key: parse_employee_key(key) for key in ratings}

    if evaluator.id in parsed_keys.values():
        raise SelfRatingError()

    expected = roster.others(evaluator.id)
    if len(ratings) != len(expected):
        raise RatingCountMismatchError(
            f"Expected {len(expected)} ratings, received {len(ratings)}",
            details={"expected": len(expected), "received": len(ratings)}
        )

    expected_ids = set(expected)
    received_ids = [pid for pid in parsed_keys.values() if pid is not None]
    unexpected = sorted(
        (key for key, pid in parsed_keys.items() if pid is None or pid not in expected_ids),
        key=str
    )
    missing = sorted(expected_ids - set(received_ids))
    if unexpected or missing or len(set(received_ids)) != len(received_ids):
        raise RatingCountMismatchError(
            "Ratings must cover every other employee exactly once",
            details={"missing": missing, "unexpected": unexpected}
        )

    return {str(parsed_keys[key]): value for key, value in ratings.items()}


def validate_rating_values(ratings: Dict[str, Any]) -> Dict[str, int]:
    parsed: Dict[str, int] = {}
    for employee_id, value in ratings.items():
        rating = parse_rating(value)
        if rating is None or rating < MIN_RATING or rating > MAX_RATING:
            raise InvalidRatingValueError(employee_id, value)
        parsed[employee_id] = rating
    return parsed


def validate_reasons(roster: Roster, ratings: Dict[str, int], reasons: Dict[str, Optional[str]]) -> Dict[str, str]:
    """
    Every rating <= 3 or >= 9 needs a non-blank reason. Returns the trimmed,
    non-blank reasons for rated employees.
    """
    cleaned: Dict[str, str] = {}
    for key, text in reasons.items():
        employee_id = parse_employee_key(key)
        if employee_id is None or str(employee_id) not in ratings:
            continue
        if text and text.strip():
            cleaned[str(employee_id)] = text.strip()

    for employee_id, rating in ratings.items():
        if needs_reason(rating) and employee_id not in cleaned:
            employee = roster.find_by_id(int(employee_id))
            label = employee.name if employee else f"Employee #{employee_id}"
            raise MissingReasonError(employee_id, label, rating)

    return {employee_id: cleaned[employee_id] for employee_id in ratings if employee_id in cleaned}


def compute_metadata(ratings: Dict[str, int]) -> FeedbackMetadata:
    values: List[int] = list(ratings.values())
    average = sum(values) / len(values) if values else 0.0
    return FeedbackMetadata(
        total_ratings=len(values),
        low_scores=sum(1 for r in values if r <= LOW_SCORE_MAX),
        high_scores=sum(1 for r in values if r >= HIGH_SCORE_MIN),
        average_rating=f"{average:.2f}",
    )


def record_to_out(record: FeedbackRecord) -> FeedbackRecordOut:
    return FeedbackRecordOut(
        id=record.id,
        evaluator=EvaluatorOut(
            id=record.evaluator_id,
            name=record.evaluator_name,
            number=record.evaluator_number,
            designation=record.evaluator_designation,
        ),
        ratings=record.ratings,
        reasons=record.reasons or {},
        timestamp=record.client_timestamp,
        completed_at=record.completed_at,
        server_timestamp=clock.as_utc(record.server_timestamp),
        metadata=FeedbackMetadata(
            total_ratings=record.total_ratings,
            low_scores=record.low_scores,
            high_scores=record.high_scores,
            average_rating=record.average_rating,
        ),
    )


class FeedbackService(BaseService):

    def __init__(self, db: Session, roster: Roster):
        super().__init__(db)
        self.roster = roster
        self.ledger = LedgerService(db)

    def _find_by_evaluator(self, evaluator_id: int) -> Optional[FeedbackRecord]:
        try:
            return (
                self.db.query(FeedbackRecord)
                .filter(FeedbackRecord.evaluator_id == evaluator_id)
                .first()
            )
        except SQLAlchemyError as e:
            self._logger.error(f"Feedback lookup failed: {e}", exc_info=True)
            raise StorageError("Failed to read feedback data") from e

    def submit(self, submission: FeedbackSubmission) -> SubmissionAck:
        require_fields(submission)
        evaluator = validate_identity(self.roster, submission.evaluator)
        keyed = validate_completeness(self.roster, evaluator, submission.ratings)
        ratings = validate_rating_values(keyed)
        reasons = validate_reasons(self.roster, ratings, submission.reasons or {})
        metadata = compute_metadata(ratings)

        with _submission_lock:
            existing = self._find_by_evaluator(evaluator.id)
            if existing is not None:
                raise DuplicateSubmissionError(existing.completed_at)

            now = clock.utcnow()
            submission_id = _next_submission_id()
            record = FeedbackRecord(
                id=submission_id,
                evaluator_id=evaluator.id,
                evaluator_name=evaluator.name,
                evaluator_number=evaluator.number,
                evaluator_designation=evaluator.designation,
                ratings=ratings,
                reasons=reasons,
                client_timestamp=str(submission.timestamp),
                completed_at=clock.format_completed_at(now, settings.display_timezone),
                server_timestamp=now,
                total_ratings=metadata.total_ratings,
                low_scores=metadata.low_scores,
                high_scores=metadata.high_scores,
                average_rating=metadata.average_rating,
            )
            self._commit_record(record)

            # Feedback store is authoritative; a stale ledger is repaired by rebuild()
            try:
                self.ledger.record_submission(evaluator.id, evaluator.name, now)
            except StorageError as e:
                self._logger.error(
                    f"Ledger update failed after feedback {submission_id} was saved: {e.__cause__}",
                    extra={"submission_id": submission_id, "evaluator_id": evaluator.id},
                )

        self.log_info(
            f"Feedback submitted by {evaluator.name} (ID: {evaluator.id})",
            submission_id=submission_id,
            evaluator_id=evaluator.id,
        )
        return SubmissionAck(submission_id=submission_id, metadata=metadata)

    def _commit_record(self, record: FeedbackRecord) -> None:
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # Another writer got there first (e.g. a second process)
            existing = self._find_by_evaluator(record.evaluator_id)
            if existing is not None:
                raise DuplicateSubmissionError(existing.completed_at) from e
            self._logger.error(f"Integrity error saving feedback: {e}", exc_info=True)
            raise StorageError() from e
        except SQLAlchemyError as e:
            self.db.rollback()
            self._logger.error(f"Error saving feedback: {e}", exc_info=True)
            raise StorageError() from e

    def check_submission(self, employee_number: int) -> SubmissionStatus:
        employee = self.roster.find_by_number(employee_number)
        if employee is None:
            raise NotFoundError("Employee not found")

        existing = self._find_by_evaluator(employee.id)
        return SubmissionStatus(
            has_submitted=existing is not None,
            submitted_at=existing.completed_at if existing else None,
            employee=EmployeeSummary(id=employee.id, name=employee.name, designation=employee.designation),
        )

    def list_all(self) -> List[FeedbackRecordOut]:
        try:
            records = (
                self.db.query(FeedbackRecord)
                .order_by(FeedbackRecord.server_timestamp, FeedbackRecord.id)
                .all()
            )
        except SQLAlchemyError as e:
            self._logger.error(f"Error fetching feedback: {e}", exc_info=True)
            raise StorageError("Failed to fetch feedback data") from e
        return [record_to_out(r) for r in records]
