from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime
from database import Base


class Settings(Base):
    __tablename__ = "settings"

    user_id = Column(String(64), primary_key=True)
    focus_duration = Column(Integer, default=25)  # minutes
    break_duration = Column(Integer, default=5)  # minutes
    session_per_cycle = Column(Integer, default=4)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
