from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from peer_feedback.database import Base


class SubmissionLedger(Base):
    """Single-row running counter. Derived from feedback_records."""
    __tablename__ = "submission_ledger"

    id = Column(Integer, primary_key=True)
    total_submissions = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SubmissionLogEntry(Base):
    """Append-only log, one row per feedback record."""
    __tablename__ = "submission_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, nullable=False, index=True)
    employee_name = Column(String, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
