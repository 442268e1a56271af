"""
analytics_service.py — Focus statistics
Category (tag) breakdowns, time spent per project and the weekly progress
summary. Read-only: nothing here writes to the store.
"""

import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from models.daily_log import DailyLog
from models.project import Project
from services.lifecycle import CRITERIA_DURATION, local_date, local_today
from services.pomodoro_service import PomodoroService
from services.project_service import ProjectService
from services.progress_service import (
    UNTAGGED,
    ProgressService,
    category_breakdown,
    index_tasks,
    is_task_complete,
    safe_minutes,
)
from services.task_service import TaskService

logger = logging.getLogger(__name__)

WEEK_DAYS = 7
TOP_TAGS = 5


def format_minutes(minutes: float) -> str:
    """Human-readable duration, e.g. 150 -> "2h 30m"."""
    minutes = safe_minutes(minutes)
    if minutes < 1:
        return "0m"
    hours = int(minutes // 60)
    rest = round(minutes % 60)
    if rest == 60:
        hours, rest = hours + 1, 0
    if hours and rest:
        return f"{hours}h {rest}m"
    if hours:
        return f"{hours}h"
    return f"{rest}m"


class AnalyticsService:
    @staticmethod
    def category_breakdown(db: Session, user_id: str, now, start: date | None = None, end: date | None = None) -> list[dict]:
        tasks, _ = ProgressService.load_snapshot(db, user_id)
        history = PomodoroService.get_history(db, user_id, now, start=start, end=end)
        buckets = category_breakdown(history, tasks)
        return [{"tag": tag, "minutes": minutes} for tag, minutes in buckets.items()]

    @staticmethod
    def project_time(
        db: Session, user_id: str, now, start: date | None = None, end: date | None = None,
        status: str | None = None,
    ) -> list[dict]:
        """Focus minutes per project within the range; duration projects also report their target."""
        projects = ProjectService.get_all(db, user_id, now, status)
        tasks, _ = ProgressService.load_snapshot(db, user_id)
        history = PomodoroService.get_history(db, user_id, now, start=start, end=end)

        task_index = index_tasks(tasks)
        spent: dict[str, float] = {}
        for entry in history:
            task = task_index.get(entry.task_id) if entry.task_id else None
            if task is None or not task.project_id:
                continue
            spent[task.project_id] = spent.get(task.project_id, 0.0) + safe_minutes(entry.duration_minutes)

        return [
            {
                "project_id": p.id,
                "name": p.name,
                "status": p.status,
                "minutes": spent.get(p.id, 0.0),
                "target_minutes": p.completion_criteria_value if p.completion_criteria_type == CRITERIA_DURATION else None,
            }
            for p in projects
        ]

    @staticmethod
    def weekly_summary(db: Session, user_id: str, now) -> dict:
        """Aggregates for the last seven local days, today included."""
        end = local_today(now)
        start = end - timedelta(days=WEEK_DAYS - 1)

        logs = db.query(DailyLog).filter(
            DailyLog.user_id == user_id, DailyLog.date >= start, DailyLog.date <= end
        ).order_by(DailyLog.date.asc()).all()
        total_minutes = sum(safe_minutes(log.total_focus_minutes) for log in logs)

        most_productive = None
        if logs:
            best = max(logs, key=lambda log: safe_minutes(log.total_focus_minutes))
            if safe_minutes(best.total_focus_minutes) > 0:
                most_productive = {
                    "weekday": best.date.strftime("%A"),
                    "date": best.date,
                    "minutes": safe_minutes(best.total_focus_minutes),
                }

        week_tasks = TaskService.get_range(db, user_id, start, end)
        completed_count = sum(1 for t in week_tasks if is_task_complete(t))
        rate = round(completed_count / len(week_tasks) * 100) if week_tasks else 0

        completed_projects = [
            p.name for p in db.query(Project).filter(
                Project.user_id == user_id, Project.completed_at.isnot(None)
            ).all()
            if start <= local_date(p.completed_at, now) <= end
        ]

        tags = [
            {"name": tag.capitalize(), "minutes": minutes, "time": format_minutes(minutes)}
            for tag, minutes in AnalyticsService._tag_minutes(db, user_id, now, start, end)
        ][:TOP_TAGS]

        return {
            "start_date": start,
            "end_date": end,
            "total_focus_minutes": total_minutes,
            "total_focus_time": format_minutes(total_minutes),
            "completed_tasks": completed_count,
            "total_tasks": len(week_tasks),
            "task_completion_rate": rate,
            "most_productive_day": most_productive,
            "completed_projects": completed_projects,
            "top_tags": tags,
            "incomplete_tasks": [t.text for t in week_tasks if not is_task_complete(t)],
        }

    @staticmethod
    def _tag_minutes(db: Session, user_id: str, now, start: date, end: date) -> list[tuple[str, float]]:
        rows = AnalyticsService.category_breakdown(db, user_id, now, start, end)
        return [(r["tag"], r["minutes"]) for r in rows if r["tag"] != UNTAGGED and r["minutes"] > 0]
