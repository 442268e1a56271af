"""
automation_service.py — Recurring tasks
Templates are task rows flagged is_recurring. Generating a day creates one
instance per eligible template, linked back through template_id so repeated
runs never duplicate work.
"""

import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from database import commit_or_rollback
from errors import NotFoundError, ValidationError
from models.project import Project
from models.task import Task
from services.lifecycle import (
    derive_project_status,
    is_project_active_on,
    is_recurrence_day,
    local_today,
    to_utc,
)
from services.task_service import EDITABLE_FIELDS, TaskService, clean_tags, validate_task_fields

logger = logging.getLogger(__name__)

MAX_SYNC_DAYS = 62
RECURRENCE_FIELDS = ("recurring_days", "recurring_end_date", "stop_on_project_completion")


def validate_recurrence(data: dict):
    days = data.get("recurring_days") or []
    if any(isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6 for d in days):
        raise ValidationError("Recurring days must be weekday numbers 0 (Sunday) to 6 (Saturday).")
    if len(set(days)) != len(days):
        raise ValidationError("Recurring days cannot repeat.")


class AutomationService:
    @staticmethod
    def create_template(db: Session, user_id: str, data: dict, now) -> Task:
        validate_task_fields(data)
        validate_recurrence(data)
        TaskService._check_project(db, user_id, data.get("project_id"))

        template = Task(
            user_id=user_id,
            text=data["text"].strip(),
            total_poms=data.get("total_poms", 1),
            completed_poms=0,
            comments=[],
            due_date=data.get("due_date") or local_today(now),  # first day it may run
            project_id=data.get("project_id"),
            tags=clean_tags(data.get("tags")),
            priority=data.get("priority"),
            custom_focus_duration=data.get("custom_focus_duration"),
            custom_break_duration=data.get("custom_break_duration"),
            is_recurring=True,
            recurring_days=sorted(data.get("recurring_days") or []),
            recurring_end_date=data.get("recurring_end_date"),
            is_active=True,
            stop_on_project_completion=data.get("stop_on_project_completion", True),
            created_at=to_utc(now),
        )
        db.add(template)
        commit_or_rollback(db, "recurring task")
        db.refresh(template)
        return template

    @staticmethod
    def get_templates(db: Session, user_id: str) -> list[Task]:
        return db.query(Task).filter_by(user_id=user_id, is_recurring=True).order_by(Task.created_at.asc()).all()

    @staticmethod
    def _get_or_404(db: Session, user_id: str, template_id: str) -> Task:
        template = db.query(Task).filter_by(id=template_id, user_id=user_id, is_recurring=True).first()
        if not template:
            raise NotFoundError("Recurring task not found")
        return template

    @staticmethod
    def update_template(db: Session, user_id: str, template_id: str, data: dict) -> Task:
        """Changes apply to instances generated from now on; existing ones are untouched."""
        template = AutomationService._get_or_404(db, user_id, template_id)
        validate_task_fields(data, partial=True)
        validate_recurrence(data)
        if "project_id" in data:
            TaskService._check_project(db, user_id, data["project_id"])

        for key, value in data.items():
            if key in ("completed_poms", "task_order"):
                continue
            if key == "tags":
                value = clean_tags(value)
            elif key == "text":
                value = value.strip()
            elif key == "recurring_days":
                value = sorted(value or [])
            if key in EDITABLE_FIELDS or key in RECURRENCE_FIELDS:
                setattr(template, key, value)

        commit_or_rollback(db, "recurring task")
        db.refresh(template)
        return template

    @staticmethod
    def set_active(db: Session, user_id: str, template_id: str, active: bool) -> Task:
        template = AutomationService._get_or_404(db, user_id, template_id)
        template.is_active = active
        commit_or_rollback(db, "recurring task")
        db.refresh(template)
        return template

    @staticmethod
    def delete_template(db: Session, user_id: str, template_id: str, now) -> bool:
        """Delete a template and its future instances that have not been started."""
        template = AutomationService._get_or_404(db, user_id, template_id)
        db.query(Task).filter(
            Task.user_id == user_id,
            Task.template_id == template.id,
            Task.due_date > local_today(now),
            Task.completed_poms == 0,
            Task.completed_at.is_(None),
        ).delete(synchronize_session=False)
        db.delete(template)
        commit_or_rollback(db, "recurring task deletion")
        return True

    # ------------------------------------------------------------------
    # Instance generation
    # ------------------------------------------------------------------
    @staticmethod
    def _eligible(template: Task, day: date, projects: dict, now) -> bool:
        if template.due_date and day < template.due_date:
            return False
        project = projects.get(template.project_id) if template.project_id else None
        project_status = derive_project_status(project, now) if project is not None else None
        if not is_recurrence_day(template, day, project_status):
            return False
        return project is None or is_project_active_on(project, day)

    @staticmethod
    def _instantiate(template: Task, day: date, order: int, now) -> Task:
        return Task(
            user_id=template.user_id,
            text=template.text,
            total_poms=template.total_poms,
            completed_poms=0,
            comments=[],
            due_date=day,
            project_id=template.project_id,
            tags=list(template.tags or []),
            priority=template.priority,
            custom_focus_duration=template.custom_focus_duration,
            custom_break_duration=template.custom_break_duration,
            task_order=order,
            is_recurring=False,
            template_id=template.id,
            created_at=to_utc(now),
        )

    @staticmethod
    def generate_for_day(db: Session, user_id: str, day: date, now) -> list[Task]:
        """Create the day's instances for every eligible template. Safe to call repeatedly."""
        templates = db.query(Task).filter_by(user_id=user_id, is_recurring=True, is_active=True).all()
        if not templates:
            return []

        projects = {p.id: p for p in db.query(Project).filter_by(user_id=user_id).all()}
        existing = {
            row.template_id for row in db.query(Task.template_id).filter(
                Task.user_id == user_id,
                Task.due_date == day,
                Task.template_id.in_([t.id for t in templates]),
            )
        }

        created = []
        order = TaskService._next_order(db, user_id, day)
        for template in templates:
            if template.id in existing or not AutomationService._eligible(template, day, projects, now):
                continue
            instance = AutomationService._instantiate(template, day, order, now)
            db.add(instance)
            created.append(instance)
            order += 1

        if created:
            commit_or_rollback(db, "recurring task instances")
            logger.info(f"Generated {len(created)} recurring task(s) for {day.isoformat()}")
        return created

    @staticmethod
    def sync(db: Session, user_id: str, start: date, end: date, now) -> list[Task]:
        if end < start:
            raise ValidationError("End date cannot be before start date.")
        if (end - start).days >= MAX_SYNC_DAYS:
            raise ValidationError(f"Recurring tasks can be generated for at most {MAX_SYNC_DAYS} days at once.")

        created = []
        day = start
        while day <= end:
            created.extend(AutomationService.generate_for_day(db, user_id, day, now))
            day += timedelta(days=1)
        return created
