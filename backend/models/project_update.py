import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey
from database import Base


class ProjectUpdate(Base):
    __tablename__ = "project_updates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(String(36), nullable=True)
    update_date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
