"""Activity log: who did what to the ledger, and when."""

from sqlalchemy import Column, DateTime, String, Text

from edupay.db.session import Base


class ActivityLogRow(Base):
    __tablename__ = "activity_logs"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    action = Column(String(30), nullable=False)  # LOGIN, PAYMENT_COLLECTED, STUDENT_ADDED, ...
    details = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
