import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from edupay.db.session import Base


class User(Base):
    """Dashboard operator. role is one of ADMIN, STAFF, ACCOUNTS."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: f"u-{uuid.uuid4().hex}")
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(20), nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
