import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Float, JSON
from database import Base


class Target(Base):
    __tablename__ = "targets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    text = Column(Text, nullable=False)
    start_date = Column(Date, nullable=True)
    deadline = Column(Date, nullable=False)
    priority = Column(Integer, nullable=True)
    completion_mode = Column(String(20), default="manual")  # manual/focus_minutes
    tags = Column(JSON, nullable=True)
    target_minutes = Column(Integer, nullable=True)
    progress_minutes = Column(Float, default=0.0)
    status = Column(String(20), default="active")  # active/due/completed
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)
