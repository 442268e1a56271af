import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Float
from database import Base


class PomodoroHistory(Base):
    __tablename__ = "pomodoro_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    # Weak reference: no foreign key, history outlives deleted tasks
    task_id = Column(String(36), nullable=True, index=True)
    duration_minutes = Column(Float, nullable=False, default=0.0)
    ended_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
