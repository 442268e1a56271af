import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Float, JSON
from database import Base


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    deadline = Column(Date, nullable=True)
    active_days = Column(JSON, nullable=True)  # weekday indices, empty/null = every day
    completion_criteria_type = Column(String(20), default="manual")  # manual/task_count/duration_minutes
    completion_criteria_value = Column(Integer, nullable=True)
    progress_value = Column(Float, default=0.0)
    priority = Column(Integer, nullable=True)
    status = Column(String(20), default="active")  # active/due/completed
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)
