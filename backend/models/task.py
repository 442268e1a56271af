import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, JSON, ForeignKey
from database import Base


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    text = Column(Text, nullable=False)
    total_poms = Column(Integer, nullable=False, default=1)  # -1 = stopwatch (open-ended)
    completed_poms = Column(Integer, nullable=False, default=0)
    comments = Column(JSON, default=list)
    due_date = Column(Date, nullable=True, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True)
    tags = Column(JSON, default=list)
    priority = Column(Integer, nullable=True)  # 1 (highest) .. 4 (lowest)
    custom_focus_duration = Column(Integer, nullable=True)  # minutes
    custom_break_duration = Column(Integer, nullable=True)  # minutes
    task_order = Column(Integer, nullable=True)

    # Recurrence: templates have is_recurring=True, instances point back via template_id
    is_recurring = Column(Boolean, default=False)
    recurring_days = Column(JSON, nullable=True)  # weekday indices, Sunday = 0
    recurring_end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True)
    stop_on_project_completion = Column(Boolean, default=True)
    template_id = Column(String(36), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
