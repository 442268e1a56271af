"""
task_service.py — Task management
Handles CRUD for daily tasks, their ordering within a day, postpone/duplicate
to tomorrow, and completion stamping when all pomodoros are done.
"""

import logging
from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import commit_or_rollback
from errors import NotFoundError, ValidationError
from models.task import Task
from models.project import Project
from services.lifecycle import local_today, to_utc
from services.progress_service import ProgressService, is_stopwatch

logger = logging.getLogger(__name__)

STOPWATCH_POMS = -1
MOVE_ACTIONS = ("postpone", "duplicate")

EDITABLE_FIELDS = (
    "text", "total_poms", "completed_poms", "comments", "due_date", "project_id", "tags",
    "priority", "custom_focus_duration", "custom_break_duration", "task_order",
)


def clean_tags(tags) -> list[str]:
    if tags is None:
        return []
    if not isinstance(tags, (list, tuple)):
        raise ValidationError("Tags must be a list of strings.")
    return [str(t).strip() for t in tags if t is not None and str(t).strip()]


def validate_task_fields(data: dict, partial: bool = False):
    """Raise ValidationError before anything is written."""
    if not partial or "text" in data:
        if not (data.get("text") or "").strip():
            raise ValidationError("Task text cannot be empty.")

    if not partial or "total_poms" in data:
        poms = data.get("total_poms", 1)
        if isinstance(poms, bool) or not isinstance(poms, int):
            raise ValidationError("Pomodoro count must be a whole number.")
        if poms != STOPWATCH_POMS and poms < 1:
            raise ValidationError(f"Pomodoro count must be positive (or {STOPWATCH_POMS} for a stopwatch task).")

    if "completed_poms" in data:
        done = data["completed_poms"]
        if isinstance(done, bool) or not isinstance(done, int):
            raise ValidationError("Completed pomodoros must be a whole number.")
        if done < 0:
            raise ValidationError("Completed pomodoros cannot be negative.")

    if partial and "due_date" in data and data["due_date"] is None:
        raise ValidationError("Tasks need a due date.")

    priority = data.get("priority")
    if priority is not None and priority not in (1, 2, 3, 4):
        raise ValidationError("Priority must be between 1 (highest) and 4 (lowest).")

    for key in ("custom_focus_duration", "custom_break_duration"):
        value = data.get(key)
        if value is not None and value <= 0:
            raise ValidationError("Custom durations must be positive minutes.")


class TaskService:
    @staticmethod
    def _next_order(db: Session, user_id: str, due_date: date) -> int:
        max_order = db.query(func.max(Task.task_order)).filter(
            Task.user_id == user_id,
            Task.due_date == due_date,
            Task.is_recurring == False,  # noqa: E712
        ).scalar()
        return (max_order if max_order is not None else -1) + 1

    @staticmethod
    def _check_project(db: Session, user_id: str, project_id: str | None):
        if project_id and not db.query(Project).filter_by(id=project_id, user_id=user_id).first():
            raise NotFoundError("Project not found")

    @staticmethod
    def create(db: Session, user_id: str, data: dict, now) -> Task:
        """Create a task; it goes to the end of its day's order."""
        validate_task_fields(data)
        TaskService._check_project(db, user_id, data.get("project_id"))

        due_date = data.get("due_date") or local_today(now)
        task = Task(
            user_id=user_id,
            text=data["text"].strip(),
            total_poms=data.get("total_poms", 1),
            completed_poms=0,
            comments=[],
            due_date=due_date,
            project_id=data.get("project_id"),
            tags=clean_tags(data.get("tags")),
            priority=data.get("priority"),
            custom_focus_duration=data.get("custom_focus_duration"),
            custom_break_duration=data.get("custom_break_duration"),
            task_order=TaskService._next_order(db, user_id, due_date),
            is_recurring=False,
            created_at=to_utc(now),
        )
        db.add(task)
        commit_or_rollback(db, "task")
        db.refresh(task)
        return task

    @staticmethod
    def get_all(db: Session, user_id: str, now) -> list[Task]:
        """Upcoming tasks (due today or later), in day order."""
        return db.query(Task).filter(
            Task.user_id == user_id,
            Task.is_recurring == False,  # noqa: E712
            Task.due_date >= local_today(now),
        ).order_by(
            Task.due_date.asc(),
            Task.task_order.asc().nullsfirst(),
            Task.created_at.asc(),
        ).all()

    @staticmethod
    def get_range(db: Session, user_id: str, start: date, end: date) -> list[Task]:
        return db.query(Task).filter(
            Task.user_id == user_id,
            Task.is_recurring == False,  # noqa: E712
            Task.due_date >= start,
            Task.due_date <= end,
        ).order_by(Task.due_date.asc(), Task.task_order.asc().nullsfirst()).all()

    @staticmethod
    def get_by_id(db: Session, user_id: str, task_id: str) -> Task | None:
        return db.query(Task).filter_by(id=task_id, user_id=user_id, is_recurring=False).first()

    @staticmethod
    def _get_or_404(db: Session, user_id: str, task_id: str) -> Task:
        task = TaskService.get_by_id(db, user_id, task_id)
        if not task:
            raise NotFoundError("Task not found")
        return task

    @staticmethod
    def stamp_completion(task: Task, now):
        """Pomodoro tasks complete when completed_poms reaches total_poms."""
        if is_stopwatch(task):
            return
        if task.completed_poms >= task.total_poms and task.completed_at is None:
            task.completed_at = to_utc(now)
        elif task.completed_poms < task.total_poms and task.completed_at is not None:
            task.completed_at = None

    @staticmethod
    def update(db: Session, user_id: str, task_id: str, data: dict, now) -> Task:
        """Update task and refresh any progress it feeds."""
        task = TaskService._get_or_404(db, user_id, task_id)
        validate_task_fields(data, partial=True)
        if "project_id" in data:
            TaskService._check_project(db, user_id, data["project_id"])

        old_project_id = task.project_id
        for key, value in data.items():
            if key not in EDITABLE_FIELDS:
                continue
            if key == "tags":
                value = clean_tags(value)
            elif key == "text":
                value = value.strip()
            setattr(task, key, value)

        TaskService.stamp_completion(task, now)
        commit_or_rollback(db, "task")
        db.refresh(task)

        ProgressService.refresh_for_task(db, user_id, task, now)
        if old_project_id and old_project_id != task.project_id:
            old_project = db.query(Project).filter_by(id=old_project_id, user_id=user_id).first()
            if old_project:
                ProgressService.refresh_projects(db, user_id, [old_project], now)
        return task

    @staticmethod
    def complete(db: Session, user_id: str, task_id: str, now) -> Task:
        """Finish a stopwatch task. Pomodoro tasks complete by logging their sessions."""
        task = TaskService._get_or_404(db, user_id, task_id)
        if not is_stopwatch(task):
            raise ValidationError("Pomodoro tasks complete when all their sessions are logged.")
        if task.completed_at is None:
            task.completed_at = to_utc(now)
            commit_or_rollback(db, "task")
            ProgressService.refresh_for_task(db, user_id, task, now)
        return task

    @staticmethod
    def mark_incomplete(db: Session, user_id: str, task_id: str, now) -> Task:
        """Reopen a task, place it at the end of its day and refresh the progress it fed."""
        task = TaskService._get_or_404(db, user_id, task_id)
        task.completed_at = None
        task.task_order = TaskService._next_order(db, user_id, task.due_date)
        commit_or_rollback(db, "task")
        db.refresh(task)
        ProgressService.refresh_for_task(db, user_id, task, now)
        return task

    @staticmethod
    def move(db: Session, user_id: str, task_id: str, action: str, now) -> Task:
        """Postpone a task to tomorrow, or duplicate it for tomorrow with fresh progress."""
        if action not in MOVE_ACTIONS:
            raise ValidationError(f"Unknown move action '{action}'. Use one of: {', '.join(MOVE_ACTIONS)}.")

        original = TaskService._get_or_404(db, user_id, task_id)
        tomorrow = local_today(now) + timedelta(days=1)
        order = TaskService._next_order(db, user_id, tomorrow)

        if action == "postpone":
            original.due_date = tomorrow
            original.task_order = order
            commit_or_rollback(db, "task")
            db.refresh(original)
            return original

        copy = Task(
            user_id=user_id,
            text=original.text,
            total_poms=original.total_poms,
            completed_poms=0,
            comments=[],
            due_date=tomorrow,
            project_id=original.project_id,
            tags=list(original.tags or []),
            priority=original.priority,
            custom_focus_duration=original.custom_focus_duration,
            custom_break_duration=original.custom_break_duration,
            task_order=order,
            is_recurring=False,
            created_at=to_utc(now),
        )
        db.add(copy)
        commit_or_rollback(db, "task")
        db.refresh(copy)
        return copy

    @staticmethod
    def reorder(db: Session, user_id: str, orders: list[dict]) -> list[Task]:
        tasks = []
        for item in orders:
            task = TaskService._get_or_404(db, user_id, item["id"])
            task.task_order = item["task_order"]
            tasks.append(task)
        commit_or_rollback(db, "task order")
        return tasks

    @staticmethod
    def delete(db: Session, user_id: str, task_id: str, now) -> bool:
        """Delete a task. Its pomodoro history is kept, but no longer aggregates."""
        task = TaskService._get_or_404(db, user_id, task_id)
        project_id = task.project_id
        db.delete(task)
        commit_or_rollback(db, "task deletion")

        if project_id:
            project = db.query(Project).filter_by(id=project_id, user_id=user_id).first()
            if project:
                ProgressService.refresh_projects(db, user_id, [project], now)
        return True
