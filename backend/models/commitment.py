import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Date, DateTime
from database import Base


class Commitment(Base):
    __tablename__ = "commitments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    text = Column(Text, nullable=False)
    due_date = Column(Date, nullable=True)
    status = Column(String(20), default="active")  # active/completed/broken
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    broken_at = Column(DateTime(timezone=True), nullable=True)
