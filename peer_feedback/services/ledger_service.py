"""
Submission ledger: a running counter plus an append-only log.

The ledger is a denormalized view of feedback_records. The feedback table is
authoritative; anything here can be recomputed with rebuild().
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from peer_feedback.core.exceptions import StorageError
from peer_feedback.models.feedback import FeedbackRecord
from peer_feedback.models.ledger import SubmissionLedger, SubmissionLogEntry
from peer_feedback.schemas.feedback import LedgerEntryOut, LedgerOut, StatsOut
from peer_feedback.services import clock
from peer_feedback.services.base import BaseService

LEDGER_ROW_ID = 1


class LedgerService(BaseService):

    def _get_ledger(self) -> Optional[SubmissionLedger]:
        return self.db.get(SubmissionLedger, LEDGER_ROW_ID)

    def _get_or_create_ledger(self) -> SubmissionLedger:
        ledger = self._get_ledger()
        if ledger is None:
            ledger = SubmissionLedger(id=LEDGER_ROW_ID, total_submissions=0, last_updated=clock.utcnow())
            self.db.add(ledger)
        return ledger

    def ensure_initialized(self) -> SubmissionLedger:
        """Create the zeroed ledger row on first run."""
        try:
            ledger = self._get_or_create_ledger()
            self.db.commit()
            return ledger
        except SQLAlchemyError as e:
            self.db.rollback()
            self._logger.error(f"Ledger initialization failed: {e}", exc_info=True)
            raise StorageError("Failed to initialize submission ledger") from e

    def record_submission(self, employee_id: int, employee_name: str, submitted_at: datetime) -> None:
        """Append the ledger entry for a committed feedback record and bump the counter."""
        try:
            ledger = self._get_or_create_ledger()
            ledger.total_submissions = (ledger.total_submissions or 0) + 1
            ledger.last_updated = clock.utcnow()
            self.db.add(SubmissionLogEntry(
                employee_id=employee_id,
                employee_name=employee_name,
                submitted_at=submitted_at,
            ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError("Failed to update submission ledger") from e

    def stats(self, total_employees: int) -> StatsOut:
        try:
            ledger = self._get_ledger()
        except SQLAlchemyError as e:
            raise StorageError("Failed to fetch statistics") from e

        total = ledger.total_submissions if ledger else 0
        return StatsOut(
            total_employees=total_employees,
            total_submissions=total,
            remaining_submissions=total_employees - total,
            completion_percentage=f"{total / total_employees * 100:.1f}",
            last_updated=clock.as_utc(ledger.last_updated) if ledger else None,
        )

    def snapshot(self) -> LedgerOut:
        try:
            ledger = self._get_ledger()
            entries = self.db.query(SubmissionLogEntry).order_by(SubmissionLogEntry.id).all()
        except SQLAlchemyError as e:
            raise StorageError("Failed to read submission ledger") from e

        return LedgerOut(
            total_submissions=ledger.total_submissions if ledger else 0,
            last_updated=clock.as_utc(ledger.last_updated) if ledger else None,
            submissions=[
                LedgerEntryOut(
                    employee_id=e.employee_id,
                    employee_name=e.employee_name,
                    submitted_at=clock.as_utc(e.submitted_at),
                )
                for e in entries
            ],
        )

    def is_consistent(self) -> bool:
        ledger = self._get_ledger()
        counter = ledger.total_submissions if ledger else 0
        records = self.db.query(func.count(FeedbackRecord.id)).scalar() or 0
        entries = self.db.query(func.count(SubmissionLogEntry.id)).scalar() or 0
        return counter == records == entries

    def rebuild(self) -> LedgerOut:
        """Recompute counter and log from the feedback store, in submission order."""
        try:
            records = (
                self.db.query(FeedbackRecord)
                .order_by(FeedbackRecord.server_timestamp, FeedbackRecord.id)
                .all()
            )
            self.db.query(SubmissionLogEntry).delete()
            for record in records:
                self.db.add(SubmissionLogEntry(
                    employee_id=record.evaluator_id,
                    employee_name=record.evaluator_name,
                    submitted_at=record.server_timestamp,
                ))
            ledger = self._get_or_create_ledger()
            ledger.total_submissions = len(records)
            ledger.last_updated = clock.utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._logger.error(f"Ledger rebuild failed: {e}", exc_info=True)
            raise StorageError("Failed to rebuild submission ledger") from e

        self.log_info(f"Ledger rebuilt from {len(records)} feedback records", total_submissions=len(records))
        return self.snapshot()

    def reconcile(self) -> bool:
        """Rebuild when the ledger drifted from the feedback store. Returns True if it did."""
        try:
            consistent = self.is_consistent()
        except SQLAlchemyError as e:
            raise StorageError("Failed to read submission ledger") from e
        if consistent:
            return False
        self.log_warning("Submission ledger out of sync with feedback store; rebuilding")
        self.rebuild()
        return True
