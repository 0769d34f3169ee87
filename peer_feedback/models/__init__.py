# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import feedback, ledger

# Explicit class exports for cleaner imports
from .feedback import FeedbackRecord
from .ledger import SubmissionLedger, SubmissionLogEntry

__all__ = [
    "FeedbackRecord",
    "SubmissionLedger",
    "SubmissionLogEntry",
]
