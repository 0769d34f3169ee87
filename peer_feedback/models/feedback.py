from sqlalchemy import Column, Integer, String, DateTime, JSON
from peer_feedback.database import Base


class FeedbackRecord(Base):
    """
    One evaluator's complete set of peer ratings.
    Written once, never updated or deleted.
    """
    __tablename__ = "feedback_records"

    id = Column(String(32), primary_key=True)  # epoch milliseconds, as text
    evaluator_id = Column(Integer, unique=True, index=True, nullable=False)
    evaluator_name = Column(String, nullable=False)
    evaluator_number = Column(Integer, nullable=False)
    evaluator_designation = Column(String, nullable=False)

    ratings = Column(JSON, nullable=False)  # {"<employee id>": 1..10}
    reasons = Column(JSON, nullable=False, default=dict)  # {"<employee id>": "text"}

    client_timestamp = Column(String, nullable=False)
    completed_at = Column(String, nullable=False)  # localized display string
    server_timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    total_ratings = Column(Integer, nullable=False)
    low_scores = Column(Integer, nullable=False)
    high_scores = Column(Integer, nullable=False)
    average_rating = Column(String(8), nullable=False)  # "7.42"
