"""
lifecycle.py — Lifecycle Rule Evaluator
Pure functions of (entity snapshot, now) that derive the displayed status of
projects, targets, goals and commitments and the actions currently permitted
on them, plus the recurring-task eligibility predicate.
Nothing in here reads the wall clock or touches the database.
"""

import math
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel


STATUS_ACTIVE = "active"
STATUS_DUE = "due"
STATUS_COMPLETED = "completed"
STATUS_BROKEN = "broken"

CRITERIA_MANUAL = "manual"
CRITERIA_TASK_COUNT = "task_count"
CRITERIA_DURATION = "duration_minutes"
PROJECT_CRITERIA = (CRITERIA_MANUAL, CRITERIA_TASK_COUNT, CRITERIA_DURATION)

MODE_MANUAL = "manual"
MODE_FOCUS_MINUTES = "focus_minutes"
TARGET_MODES = (MODE_MANUAL, MODE_FOCUS_MINUTES)

EDIT_LOCK_DAYS = 2
GRACE_PERIOD = timedelta(hours=2)
UNLOCK_PERIOD = timedelta(days=30)


class LifecycleState(BaseModel):
    status: str
    can_edit: bool
    can_delete: bool = True
    can_complete: bool = False
    can_reopen: bool = False
    can_break: bool = False
    reason: Optional[str] = None


# ------------------------------------------------------------------
# Time helpers
# ------------------------------------------------------------------
def as_aware(value: datetime, tz=None) -> datetime:
    """Attach UTC to naive timestamps (the store keeps UTC) and optionally convert."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz) if tz is not None else value


def to_utc(now: datetime) -> datetime:
    return as_aware(now).astimezone(timezone.utc)


def local_today(now: datetime) -> date:
    return as_aware(now).date()


def local_date(value: datetime, now: datetime) -> date:
    """Calendar date of `value` in the timezone of `now`."""
    return as_aware(value, as_aware(now).tzinfo).date()


def _as_date(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def weekday_index(day: date) -> int:
    """Weekday with Sunday = 0 .. Saturday = 6."""
    return day.isoweekday() % 7


def is_older_than_or_equal_to_two_days(created_at: datetime | None, now: datetime) -> bool:
    """True once the creation day is two or more local calendar days behind today."""
    if created_at is None:
        return False
    diff_days = (local_today(now) - local_date(created_at, now)).days
    return diff_days >= EDIT_LOCK_DAYS


def is_past_deadline(deadline, now: datetime) -> bool:
    deadline = _as_date(deadline)
    return deadline is not None and local_today(now) > deadline


# ------------------------------------------------------------------
# Status derivation
# ------------------------------------------------------------------
def _derive_status(completed_at, automatic: bool, progress, goal_value, deadline, now) -> str:
    if completed_at is not None:
        return STATUS_COMPLETED
    if automatic and goal_value and (progress or 0) >= goal_value:
        return STATUS_COMPLETED
    return STATUS_DUE if is_past_deadline(deadline, now) else STATUS_ACTIVE


def derive_project_status(project, now: datetime, progress: float | None = None) -> str:
    automatic = (project.completion_criteria_type or CRITERIA_MANUAL) != CRITERIA_MANUAL
    value = progress if progress is not None else project.progress_value
    return _derive_status(
        project.completed_at, automatic, value,
        project.completion_criteria_value, project.deadline, now,
    )


def derive_target_status(target, now: datetime, progress: float | None = None) -> str:
    automatic = (target.completion_mode or MODE_MANUAL) == MODE_FOCUS_MINUTES
    value = progress if progress is not None else target.progress_minutes
    return _derive_status(
        target.completed_at, automatic, value,
        target.target_minutes, target.deadline, now,
    )


def _trackable_state(kind: str, status: str, created_at, manual: bool, now: datetime) -> LifecycleState:
    completed = status == STATUS_COMPLETED
    old = is_older_than_or_equal_to_two_days(created_at, now)

    reason = None
    if completed:
        reason = f"Completed {kind}s are locked for edits."
    elif old:
        reason = f"{kind.capitalize()}s are locked for edits {EDIT_LOCK_DAYS} days after creation."

    return LifecycleState(
        status=status,
        can_edit=not (completed or old),
        can_delete=True,
        can_complete=manual and not completed,
        can_reopen=manual and completed,
        reason=reason,
    )


def evaluate_project(project, now: datetime, progress: float | None = None) -> LifecycleState:
    status = derive_project_status(project, now, progress)
    manual = (project.completion_criteria_type or CRITERIA_MANUAL) == CRITERIA_MANUAL
    return _trackable_state("project", status, project.created_at, manual, now)


def evaluate_target(target, now: datetime, progress: float | None = None) -> LifecycleState:
    status = derive_target_status(target, now, progress)
    manual = (target.completion_mode or MODE_MANUAL) == MODE_MANUAL
    return _trackable_state("target", status, target.created_at, manual, now)


def evaluate_goal(goal, now: datetime) -> LifecycleState:
    status = STATUS_COMPLETED if goal.completed_at is not None else STATUS_ACTIVE
    return _trackable_state("goal", status, goal.created_at, True, now)


# ------------------------------------------------------------------
# Commitments: grace lock, then break / 30-day completion unlock
# ------------------------------------------------------------------
def evaluate_commitment(commitment, now: datetime) -> LifecycleState:
    status = commitment.status or STATUS_ACTIVE
    terminal = status in (STATUS_COMPLETED, STATUS_BROKEN)
    created_at = commitment.created_at or now
    age = as_aware(now) - as_aware(created_at)

    in_grace = age <= GRACE_PERIOD
    can_break = not terminal and not in_grace
    can_complete = can_break and commitment.due_date is None and age > UNLOCK_PERIOD

    if in_grace:
        reason = "Editable for the first 2 hours."
    elif terminal:
        reason = f"Commitment is {status}."
    elif commitment.due_date is not None:
        reason = "Locked. Commitments with a due date can only be marked broken."
    elif not can_complete:
        days_left = max(1, math.ceil((UNLOCK_PERIOD - age) / timedelta(days=1)))
        reason = f"Locked for reflection. Completion unlocks in {days_left} day(s)."
    else:
        reason = "Locked. Ready to be completed or marked broken."

    return LifecycleState(
        status=status,
        can_edit=in_grace,
        can_delete=in_grace,
        can_complete=can_complete,
        can_break=can_break,
        reason=reason,
    )


# ------------------------------------------------------------------
# Scheduling predicates
# ------------------------------------------------------------------
def is_recurrence_day(template, day: date, project_status: str | None = None) -> bool:
    """Whether a recurring-task template should spawn an instance on `day`."""
    if template.is_active is False:
        return False

    days = template.recurring_days or []
    if days and weekday_index(day) not in days:
        return False

    end_date = _as_date(template.recurring_end_date)
    if end_date is not None and day > end_date:
        return False

    stop_with_project = template.stop_on_project_completion is not False
    if template.project_id and stop_with_project and project_status == STATUS_COMPLETED:
        return False

    return True


def is_project_active_on(project, day: date) -> bool:
    """Projects run on their active weekdays (all days when unset) from start_date on."""
    start = _as_date(project.start_date)
    if start is not None and day < start:
        return False
    days = project.active_days or []
    return not days or weekday_index(day) in days
