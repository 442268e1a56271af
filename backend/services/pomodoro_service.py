"""
pomodoro_service.py — Focus timer backend
Timer settings, focus-session logging (history append, pomodoro accounting,
daily log upsert, progress refresh), history queries and consistency stats.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from database import commit_or_rollback
from errors import NotFoundError, ValidationError
from models.daily_log import DailyLog
from models.pomodoro_history import PomodoroHistory
from models.settings import Settings
from services.lifecycle import as_aware, local_date, local_today, to_utc
from services.progress_service import ProgressService, is_stopwatch, is_task_complete, safe_minutes
from services.task_service import TaskService

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {"focus_duration": 25, "break_duration": 5, "session_per_cycle": 4}
MAX_SESSION_MINUTES = 24 * 60
EPOCH = date(1970, 1, 1)


def day_bounds(start: date, end: date, now) -> tuple[datetime, datetime]:
    """UTC instants covering local days start..end inclusive."""
    tz = as_aware(now).tzinfo
    lower = datetime.combine(start, time.min, tzinfo=tz)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz)
    return to_utc(lower), to_utc(upper)


class PomodoroService:
    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    @staticmethod
    def get_settings(db: Session, user_id: str) -> Settings:
        settings = db.query(Settings).filter_by(user_id=user_id).first()
        return settings or Settings(user_id=user_id, **DEFAULT_SETTINGS)

    @staticmethod
    def update_settings(db: Session, user_id: str, data: dict, now) -> Settings:
        for key in DEFAULT_SETTINGS:
            value = data.get(key)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value <= 0):
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} must be a positive whole number.")

        settings = db.query(Settings).filter_by(user_id=user_id).first()
        if not settings:
            settings = Settings(user_id=user_id, **DEFAULT_SETTINGS)
            db.add(settings)
        for key in DEFAULT_SETTINGS:
            if data.get(key) is not None:
                setattr(settings, key, data[key])
        settings.updated_at = to_utc(now)

        commit_or_rollback(db, "settings")
        db.refresh(settings)
        return settings

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    @staticmethod
    def log_session(db: Session, user_id: str, data: dict, now) -> dict:
        """Record one finished focus interval and everything that follows from it."""
        minutes = safe_minutes(data.get("duration_minutes"))
        if minutes <= 0:
            raise ValidationError("Session duration must be a positive number of minutes.")
        if minutes > MAX_SESSION_MINUTES:
            raise ValidationError("Session duration cannot exceed a day.")

        task = None
        if data.get("task_id"):
            task = TaskService.get_by_id(db, user_id, data["task_id"])
            if not task:
                raise NotFoundError("Task not found")

        ended_at = to_utc(data.get("ended_at") or now)
        entry = PomodoroHistory(
            user_id=user_id,
            task_id=task.id if task else None,
            duration_minutes=float(minutes),
            ended_at=ended_at,
        )
        db.add(entry)

        if task is not None:
            if not is_stopwatch(task):
                task.completed_poms = (task.completed_poms or 0) + 1
            comment = (data.get("comment") or "").strip()
            if comment:
                task.comments = [*(task.comments or []), comment]
            TaskService.stamp_completion(task, now)

        log_date = local_date(ended_at, now)
        daily = db.query(DailyLog).filter_by(user_id=user_id, date=log_date).first()
        if not daily:
            daily = DailyLog(user_id=user_id, date=log_date, completed_sessions=0, total_focus_minutes=0.0)
            db.add(daily)
        daily.completed_sessions = (daily.completed_sessions or 0) + 1
        daily.total_focus_minutes = (daily.total_focus_minutes or 0.0) + float(minutes)

        commit_or_rollback(db, "focus session")
        db.refresh(entry)

        refreshed = {"project": None, "targets": []}
        if task is not None:
            refreshed = ProgressService.refresh_for_task(db, user_id, task, now)
        return {"entry": entry, "task": task, "daily_log": daily, **refreshed}

    @staticmethod
    def get_history(
        db: Session, user_id: str, now, start: date | None = None, end: date | None = None,
        task_ids: list[str] | None = None,
    ) -> list[PomodoroHistory]:
        query = db.query(PomodoroHistory).filter(PomodoroHistory.user_id == user_id)
        if start or end:
            lower, upper = day_bounds(start or EPOCH, end or local_today(now), now)
            query = query.filter(PomodoroHistory.ended_at >= lower, PomodoroHistory.ended_at < upper)
        if task_ids is not None:
            if not task_ids:
                return []
            query = query.filter(PomodoroHistory.task_id.in_(task_ids))
        return query.order_by(PomodoroHistory.ended_at.asc()).all()

    @staticmethod
    def get_daily_logs(db: Session, user_id: str, start: date, end: date) -> list[DailyLog]:
        if end < start:
            raise ValidationError("End date cannot be before start date.")
        return db.query(DailyLog).filter(
            DailyLog.user_id == user_id,
            DailyLog.date >= start,
            DailyLog.date <= end,
        ).order_by(DailyLog.date.asc()).all()

    @staticmethod
    def get_consistency(db: Session, user_id: str, days: int, now) -> list[dict]:
        """Share of tasks completed per due date over the last `days` days, oldest first."""
        if days <= 0:
            raise ValidationError("Days must be positive.")
        today = local_today(now)
        start = today - timedelta(days=days - 1)

        tasks = TaskService.get_range(db, user_id, start, today)
        totals, done = defaultdict(int), defaultdict(int)
        for task in tasks:
            totals[task.due_date] += 1
            if is_task_complete(task):
                done[task.due_date] += 1

        result = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            total = totals.get(day, 0)
            result.append({
                "date": day,
                "total": total,
                "completed": done.get(day, 0),
                "percentage": round(done.get(day, 0) / total * 100) if total else 0,
            })
        return result
