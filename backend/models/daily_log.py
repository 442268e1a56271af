import uuid

from sqlalchemy import Column, Integer, String, Date, Float, UniqueConstraint
from database import Base


class DailyLog(Base):
    __tablename__ = "daily_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    date = Column(Date, nullable=False)
    completed_sessions = Column(Integer, default=0)
    total_focus_minutes = Column(Float, default=0.0)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_log_user_date"),
    )
