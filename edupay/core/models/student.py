"""Student ledger entry: one row per student per academic session."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, UniqueConstraint

from edupay.core.enums import FeeStatus
from edupay.db.session import Base


class StudentRow(Base):
    """Enrolled student with prior dues, discount and cumulative paid amount. status is derived."""

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("academic_year", "roll_no", name="uq_student_session_roll_no"),
        CheckConstraint(
            "status IN ('PAID','PARTIAL','UNPAID')",
            name="chk_student_status",
        ),
        CheckConstraint("total_paid >= 0", name="chk_student_total_paid"),
    )

    id = Column(String(64), primary_key=True)
    roll_no = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    class_name = Column(String(100), nullable=False)
    academic_year = Column(String(20), nullable=False, index=True)
    parent_name = Column(String(255), nullable=False, default="")
    contact = Column(String(50), nullable=False, default="")
    gender = Column(String(10), nullable=False)
    previous_year_dues = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    total_paid = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=FeeStatus.UNPAID.value)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
