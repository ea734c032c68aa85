"""Fee structure per class per academic session, with its ordered components."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from edupay.db.session import Base


class FeeStructureRow(Base):
    """Lookup key is (class_name, academic_year); total is stored denormalised as the component sum."""

    __tablename__ = "fee_structures"
    __table_args__ = (
        UniqueConstraint("class_name", "academic_year", name="uq_fee_structure_class_session"),
    )

    id = Column(String(64), primary_key=True)
    class_name = Column(String(100), nullable=False)
    academic_year = Column(String(20), nullable=False, index=True)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    components = relationship(
        "FeeComponentRow",
        back_populates="structure",
        cascade="all, delete-orphan",
        order_by="FeeComponentRow.position",
        lazy="selectin",
    )


class FeeComponentRow(Base):
    __tablename__ = "fee_structure_components"

    id = Column(Integer, primary_key=True, autoincrement=True)
    structure_id = Column(
        String(64),
        ForeignKey("fee_structures.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)

    structure = relationship("FeeStructureRow", back_populates="components")
