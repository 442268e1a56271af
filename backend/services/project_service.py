"""
project_service.py — Projects & activity log
CRUD for projects with completion criteria (manual / task count / focus
minutes), lock enforcement, manual completion toggling, rescheduling of
overdue projects and the per-project update log.
"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from database import commit_or_rollback
from errors import LockedError, NotFoundError, ValidationError
from models.project import Project
from models.project_update import ProjectUpdate
from models.task import Task
from services.lifecycle import (
    CRITERIA_MANUAL,
    PROJECT_CRITERIA,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_DUE,
    derive_project_status,
    evaluate_project,
    local_today,
    to_utc,
)
from services.progress_service import ProgressService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "name", "description", "start_date", "deadline", "active_days",
    "completion_criteria_type", "completion_criteria_value", "priority",
)


def validate_project(data: dict):
    if not (data.get("name") or "").strip():
        raise ValidationError("Project name cannot be empty.")

    criteria = data.get("completion_criteria_type") or CRITERIA_MANUAL
    if criteria not in PROJECT_CRITERIA:
        raise ValidationError(f"Unknown completion criteria '{criteria}'.")
    if criteria != CRITERIA_MANUAL:
        value = data.get("completion_criteria_value")
        if not value or value <= 0:
            raise ValidationError("Automatic completion criteria need a positive target value.")

    start, deadline = data.get("start_date"), data.get("deadline")
    if start and deadline and deadline < start:
        raise ValidationError("Deadline cannot be before the start date.")

    days = data.get("active_days") or []
    if any(not isinstance(d, int) or not 0 <= d <= 6 for d in days):
        raise ValidationError("Active days must be weekday numbers 0 (Sunday) to 6 (Saturday).")


class ProjectService:
    @staticmethod
    def create(db: Session, user_id: str, data: dict, now) -> Project:
        validate_project(data)
        criteria = data.get("completion_criteria_type") or CRITERIA_MANUAL
        project = Project(
            user_id=user_id,
            name=data["name"].strip(),
            description=data.get("description"),
            start_date=data.get("start_date") or local_today(now),
            deadline=data.get("deadline"),
            active_days=data.get("active_days") or [],
            completion_criteria_type=criteria,
            completion_criteria_value=None if criteria == CRITERIA_MANUAL else data["completion_criteria_value"],
            progress_value=0.0,
            priority=data.get("priority"),
            status=STATUS_ACTIVE,
            created_at=to_utc(now),
        )
        db.add(project)
        commit_or_rollback(db, "project")
        db.refresh(project)
        return project

    @staticmethod
    def get_all(db: Session, user_id: str, now, status: str | None = None) -> list[Project]:
        """All projects with progress and status refreshed, optionally filtered by status."""
        projects = db.query(Project).filter_by(user_id=user_id).order_by(Project.created_at.desc()).all()
        ProgressService.refresh_projects(db, user_id, projects, now)
        if status:
            projects = [p for p in projects if p.status == status]
        return projects

    @staticmethod
    def get_by_id(db: Session, user_id: str, project_id: str) -> Project | None:
        return db.query(Project).filter_by(id=project_id, user_id=user_id).first()

    @staticmethod
    def _get_or_404(db: Session, user_id: str, project_id: str) -> Project:
        project = ProjectService.get_by_id(db, user_id, project_id)
        if not project:
            raise NotFoundError("Project not found")
        return project

    @staticmethod
    def update(db: Session, user_id: str, project_id: str, data: dict, now) -> Project:
        project = ProjectService._get_or_404(db, user_id, project_id)
        state = evaluate_project(project, now)
        if not state.can_edit:
            raise LockedError(state.reason)

        changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
        merged = {k: getattr(project, k) for k in EDITABLE_FIELDS}
        merged.update(changes)
        validate_project(merged)

        for key, value in changes.items():
            setattr(project, key, value.strip() if key == "name" else value)
        if (project.completion_criteria_type or CRITERIA_MANUAL) == CRITERIA_MANUAL:
            project.completion_criteria_value = None

        commit_or_rollback(db, "project")
        ProgressService.refresh_projects(db, user_id, [project], now)
        db.refresh(project)
        return project

    @staticmethod
    def set_completion(db: Session, user_id: str, project_id: str, completed: bool, now) -> Project:
        """Check or uncheck a manual project. Not subject to the edit lock."""
        project = ProjectService._get_or_404(db, user_id, project_id)
        if (project.completion_criteria_type or CRITERIA_MANUAL) != CRITERIA_MANUAL:
            raise LockedError("Projects with automatic completion criteria complete on their own.")

        if completed:
            if project.completed_at is None:
                project.completed_at = to_utc(now)
        else:
            project.completed_at = None
        project.status = derive_project_status(project, now)

        commit_or_rollback(db, "project")
        db.refresh(project)
        return project

    @staticmethod
    def delete(db: Session, user_id: str, project_id: str) -> bool:
        """Delete a project; its tasks stay, unlinked."""
        project = ProjectService._get_or_404(db, user_id, project_id)
        db.query(Task).filter_by(user_id=user_id, project_id=project_id).update(
            {Task.project_id: None}, synchronize_session=False
        )
        db.query(ProjectUpdate).filter_by(user_id=user_id, project_id=project_id).delete(
            synchronize_session=False
        )
        db.delete(project)
        commit_or_rollback(db, "project deletion")
        return True

    @staticmethod
    def reschedule(db: Session, user_id: str, project_id: str, new_deadline: date, now) -> Project:
        """Keep the overdue project as history and start an active copy with a new deadline."""
        project = ProjectService._get_or_404(db, user_id, project_id)
        if derive_project_status(project, now) != STATUS_DUE:
            raise LockedError("Only overdue projects can be rescheduled.")
        today = local_today(now)
        if new_deadline < today:
            raise ValidationError("The new deadline cannot be in the past.")

        copy = Project(
            user_id=user_id,
            name=f"{project.name} (rescheduled)",
            description=project.description,
            start_date=today,
            deadline=new_deadline,
            active_days=list(project.active_days or []),
            completion_criteria_type=project.completion_criteria_type,
            completion_criteria_value=project.completion_criteria_value,
            progress_value=0.0,
            priority=project.priority,
            status=STATUS_ACTIVE,
            created_at=to_utc(now),
        )
        db.add(copy)
        commit_or_rollback(db, "project")
        db.refresh(copy)
        logger.info(f"Project {project.id} rescheduled as {copy.id}")
        return copy

    # ------------------------------------------------------------------
    # Project updates (activity log)
    # ------------------------------------------------------------------
    @staticmethod
    def add_update(db: Session, user_id: str, project_id: str, data: dict, now) -> ProjectUpdate:
        ProjectService._get_or_404(db, user_id, project_id)
        description = (data.get("description") or "").strip()
        if not description:
            raise ValidationError("Update description cannot be empty.")

        update = ProjectUpdate(
            user_id=user_id,
            project_id=project_id,
            task_id=data.get("task_id"),
            update_date=data.get("update_date") or local_today(now),
            description=description,
            created_at=to_utc(now),
        )
        db.add(update)
        commit_or_rollback(db, "project update")
        db.refresh(update)
        return update

    @staticmethod
    def get_updates(db: Session, user_id: str, project_id: str) -> list[ProjectUpdate]:
        ProjectService._get_or_404(db, user_id, project_id)
        return db.query(ProjectUpdate).filter_by(user_id=user_id, project_id=project_id).order_by(
            ProjectUpdate.update_date.desc(), ProjectUpdate.created_at.desc()
        ).all()

    @staticmethod
    def delete_update(db: Session, user_id: str, project_id: str, update_id: str) -> bool:
        update = db.query(ProjectUpdate).filter_by(id=update_id, user_id=user_id, project_id=project_id).first()
        if not update:
            raise NotFoundError("Project update not found")
        db.delete(update)
        commit_or_rollback(db, "project update deletion")
        return True
