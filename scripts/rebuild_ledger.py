"""
Recompute the submission ledger from the feedback records.

Run after a ledger write failed or the database was edited by hand:
    python -m scripts.rebuild_ledger
"""
import sys

from peer_feedback.core.exceptions import StorageError
from peer_feedback.database import SessionLocal, init_db
from peer_feedback.services.ledger_service import LedgerService


def rebuild_ledger(db=None) -> int:
    owns_session = db is None
    if owns_session:
        init_db()
        db = SessionLocal()
    try:
        ledger = LedgerService(db)
        before = ledger.snapshot().total_submissions
        after = ledger.rebuild().total_submissions
        print(f"Ledger rebuilt: {before} -> {after} submissions")
        return after
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    try:
        rebuild_ledger()
    except StorageError as e:
        print(f"Rebuild failed: {e.message}")
        sys.exit(1)
