"""
progress_service.py — Progress Aggregator
Derives project progress_value and target progress_minutes from the pomodoro
history and task snapshots. The module-level functions are pure and never
mutate their inputs; ProgressService writes the derived values back onto rows.
"""

import logging
import math
from collections import defaultdict

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from database import commit_or_rollback
from models.task import Task
from models.project import Project
from models.target import Target
from models.pomodoro_history import PomodoroHistory
from services.lifecycle import (
    CRITERIA_MANUAL,
    CRITERIA_TASK_COUNT,
    CRITERIA_DURATION,
    MODE_FOCUS_MINUTES,
    STATUS_COMPLETED,
    derive_project_status,
    derive_target_status,
    local_date,
    to_utc,
)

logger = logging.getLogger(__name__)

UNTAGGED = "untagged"


class ProgressResult(BaseModel):
    value: float = 0.0
    entry_ids: list[str] = Field(default_factory=list)  # contributing history entries


def normalize_tag(tag) -> str:
    return str(tag).strip().lower()


def normalized_tags(tags) -> set[str]:
    return {normalize_tag(t) for t in (tags or []) if t is not None and str(t).strip()}


def safe_minutes(value) -> float:
    """Missing, malformed or negative durations count as zero."""
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(minutes) or minutes < 0:
        return 0.0
    return minutes


def is_stopwatch(task) -> bool:
    return (task.total_poms or 0) < 0


def is_task_complete(task) -> bool:
    if is_stopwatch(task):
        return task.completed_at is not None
    return (task.completed_poms or 0) >= (task.total_poms or 0)


def index_tasks(tasks) -> dict:
    return {t.id: t for t in tasks if not t.is_recurring}


def count_completed_tasks(project_id: str, tasks) -> int:
    done = {
        t.id for t in tasks
        if not t.is_recurring and t.project_id == project_id and is_task_complete(t)
    }
    return len(done)


def _sum_entries(history, task_index: dict, matches) -> ProgressResult:
    total = 0.0
    entry_ids = []
    for entry in history:
        task = task_index.get(entry.task_id) if entry.task_id else None
        if task is None or not matches(task):
            continue
        total += safe_minutes(entry.duration_minutes)
        entry_ids.append(entry.id)
    return ProgressResult(value=total, entry_ids=entry_ids)


def sum_project_minutes(project_id: str, history, tasks) -> ProgressResult:
    return _sum_entries(history, index_tasks(tasks), lambda t: t.project_id == project_id)


def sum_tagged_minutes(tags, history, tasks) -> ProgressResult:
    """Each entry counts once, however many of its task's tags match."""
    wanted = normalized_tags(tags)
    if not wanted:
        return ProgressResult()
    return _sum_entries(history, index_tasks(tasks), lambda t: bool(normalized_tags(t.tags) & wanted))


def compute_project_progress(project, tasks, history) -> ProgressResult:
    criteria = project.completion_criteria_type or CRITERIA_MANUAL
    if criteria == CRITERIA_TASK_COUNT:
        return ProgressResult(value=count_completed_tasks(project.id, tasks))
    if criteria == CRITERIA_DURATION:
        return sum_project_minutes(project.id, history, tasks)
    return ProgressResult()


def entries_between(history, start, end, now) -> list:
    """Entries that ended within the local days start..end; open bounds are unlimited."""
    if now is None or (start is None and end is None):
        return list(history)
    window = []
    for entry in history:
        if entry.ended_at is None:
            continue
        day = local_date(entry.ended_at, now)
        if (start is None or day >= start) and (end is None or day <= end):
            window.append(entry)
    return window


def compute_target_progress(target, tasks, history, now=None) -> ProgressResult:
    """Focus minutes count from the start date through the deadline; `now` resolves local days."""
    if target.completion_mode == MODE_FOCUS_MINUTES:
        window = entries_between(history, getattr(target, "start_date", None), target.deadline, now)
        return sum_tagged_minutes(target.tags, window, tasks)
    return ProgressResult()


def category_breakdown(history, tasks) -> dict[str, float]:
    """Minutes per normalized tag. An entry counts toward every tag its task carries."""
    task_index = index_tasks(tasks)
    buckets: dict[str, float] = defaultdict(float)
    for entry in history:
        minutes = safe_minutes(entry.duration_minutes)
        task = task_index.get(entry.task_id) if entry.task_id else None
        tags = normalized_tags(task.tags) if task is not None else set()
        if not tags:
            buckets[UNTAGGED] += minutes
            continue
        for tag in tags:
            buckets[tag] += minutes
    return dict(sorted(buckets.items(), key=lambda kv: (-kv[1], kv[0])))


class ProgressService:
    @staticmethod
    def load_snapshot(db: Session, user_id: str) -> tuple[list[Task], list[PomodoroHistory]]:
        tasks = db.query(Task).filter(Task.user_id == user_id).all()
        history = db.query(PomodoroHistory).filter(PomodoroHistory.user_id == user_id).all()
        return tasks, history

    @staticmethod
    def apply_project_progress(project: Project, tasks, history, now) -> bool:
        """Write derived progress/status onto the row. Returns True if anything changed."""
        changed = False
        result = compute_project_progress(project, tasks, history)
        automatic = (project.completion_criteria_type or CRITERIA_MANUAL) != CRITERIA_MANUAL

        if automatic and project.progress_value != result.value:
            project.progress_value = result.value
            changed = True

        status = derive_project_status(project, now, progress=result.value if automatic else None)
        if status == STATUS_COMPLETED and project.completed_at is None:
            project.completed_at = to_utc(now)
            logger.info(f"Project {project.id} reached its completion criteria")
            changed = True
        if project.status != status:
            project.status = status
            changed = True
        return changed

    @staticmethod
    def apply_target_progress(target: Target, tasks, history, now) -> bool:
        changed = False
        result = compute_target_progress(target, tasks, history, now)
        automatic = target.completion_mode == MODE_FOCUS_MINUTES

        if automatic and target.progress_minutes != result.value:
            target.progress_minutes = result.value
            changed = True

        status = derive_target_status(target, now, progress=result.value if automatic else None)
        if status == STATUS_COMPLETED and target.completed_at is None:
            target.completed_at = to_utc(now)
            logger.info(f"Target {target.id} reached {target.target_minutes} focus minutes")
            changed = True
        if target.status != status:
            target.status = status
            changed = True
        return changed

    @staticmethod
    def refresh_projects(db: Session, user_id: str, projects: list[Project], now) -> list[Project]:
        tasks, history = ProgressService.load_snapshot(db, user_id)
        changed = [ProgressService.apply_project_progress(p, tasks, history, now) for p in projects]
        if any(changed):
            commit_or_rollback(db, "project progress")
        return projects

    @staticmethod
    def refresh_targets(db: Session, user_id: str, targets: list[Target], now) -> list[Target]:
        tasks, history = ProgressService.load_snapshot(db, user_id)
        changed = [ProgressService.apply_target_progress(t, tasks, history, now) for t in targets]
        if any(changed):
            commit_or_rollback(db, "target progress")
        return targets

    @staticmethod
    def refresh_for_task(db: Session, user_id: str, task: Task, now) -> dict:
        """Refresh the task's project and every focus-minutes target sharing one of its tags."""
        tasks, history = ProgressService.load_snapshot(db, user_id)
        project = None
        if task.project_id:
            project = db.query(Project).filter_by(id=task.project_id, user_id=user_id).first()

        task_tags = normalized_tags(task.tags)
        targets = []
        if task_tags:
            candidates = db.query(Target).filter_by(user_id=user_id, completion_mode=MODE_FOCUS_MINUTES).all()
            targets = [t for t in candidates if normalized_tags(t.tags) & task_tags]

        changed = False
        if project is not None:
            changed = ProgressService.apply_project_progress(project, tasks, history, now) or changed
        for target in targets:
            changed = ProgressService.apply_target_progress(target, tasks, history, now) or changed
        if changed:
            commit_or_rollback(db, "progress")

        return {"project": project, "targets": targets}
