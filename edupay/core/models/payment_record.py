"""Payment record: append-only. Rows are inserted once and never updated or deleted."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text

from edupay.db.session import Base


class PaymentRecordRow(Base):
    __tablename__ = "payment_records"
    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_payment_amount_positive"),
        CheckConstraint(
            "payment_type IN ('MONTHLY','TERM','YEARLY','PART')",
            name="chk_payment_type",
        ),
        CheckConstraint(
            "method IN ('CASH','CARD','ONLINE','CHEQUE')",
            name="chk_payment_method",
        ),
    )

    id = Column(String(64), primary_key=True)
    student_id = Column(
        String(64),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=False)
    payment_type = Column(String(20), nullable=False)
    method = Column(String(20), nullable=False)
    received_by = Column(String(255), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
