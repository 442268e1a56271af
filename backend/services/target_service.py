"""
target_service.py — Deadline targets
Targets are deadline-bound; in focus_minutes mode they complete on their own
once tagged focus time reaches target_minutes.
"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from database import commit_or_rollback
from errors import LockedError, NotFoundError, ValidationError
from models.target import Target
from services.lifecycle import (
    MODE_FOCUS_MINUTES,
    MODE_MANUAL,
    STATUS_ACTIVE,
    STATUS_DUE,
    TARGET_MODES,
    derive_target_status,
    evaluate_target,
    local_today,
    to_utc,
)
from services.progress_service import ProgressService
from services.task_service import clean_tags

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("text", "start_date", "deadline", "priority", "completion_mode", "tags", "target_minutes")


def validate_target(data: dict):
    if not (data.get("text") or "").strip():
        raise ValidationError("Target text cannot be empty.")
    if not data.get("deadline"):
        raise ValidationError("Targets need a deadline.")
    if data.get("start_date") and data["deadline"] < data["start_date"]:
        raise ValidationError("Deadline cannot be before the start date.")

    mode = data.get("completion_mode") or MODE_MANUAL
    if mode not in TARGET_MODES:
        raise ValidationError(f"Unknown completion mode '{mode}'.")
    if mode == MODE_FOCUS_MINUTES:
        if not clean_tags(data.get("tags")):
            raise ValidationError("Focus-minute targets need at least one tag.")
        if not data.get("target_minutes") or data["target_minutes"] <= 0:
            raise ValidationError("Focus-minute targets need a positive number of minutes.")


class TargetService:
    @staticmethod
    def create(db: Session, user_id: str, data: dict, now) -> Target:
        validate_target(data)
        mode = data.get("completion_mode") or MODE_MANUAL
        target = Target(
            user_id=user_id,
            text=data["text"].strip(),
            start_date=data.get("start_date") or local_today(now),
            deadline=data["deadline"],
            priority=data.get("priority"),
            completion_mode=mode,
            tags=clean_tags(data.get("tags")),
            target_minutes=data.get("target_minutes") if mode == MODE_FOCUS_MINUTES else None,
            progress_minutes=0.0,
            status=STATUS_ACTIVE,
            created_at=to_utc(now),
        )
        db.add(target)
        commit_or_rollback(db, "target")
        # Focus time logged before the target existed counts too.
        ProgressService.refresh_targets(db, user_id, [target], now)
        db.refresh(target)
        return target

    @staticmethod
    def get_all(db: Session, user_id: str, now, status: str | None = None) -> list[Target]:
        targets = db.query(Target).filter_by(user_id=user_id).order_by(Target.deadline.asc()).all()
        ProgressService.refresh_targets(db, user_id, targets, now)
        if status:
            targets = [t for t in targets if t.status == status]
        return targets

    @staticmethod
    def get_by_id(db: Session, user_id: str, target_id: str) -> Target | None:
        return db.query(Target).filter_by(id=target_id, user_id=user_id).first()

    @staticmethod
    def _get_or_404(db: Session, user_id: str, target_id: str) -> Target:
        target = TargetService.get_by_id(db, user_id, target_id)
        if not target:
            raise NotFoundError("Target not found")
        return target

    @staticmethod
    def update(db: Session, user_id: str, target_id: str, data: dict, now) -> Target:
        target = TargetService._get_or_404(db, user_id, target_id)
        state = evaluate_target(target, now)
        if not state.can_edit:
            raise LockedError(state.reason)

        changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
        merged = {k: getattr(target, k) for k in EDITABLE_FIELDS}
        merged.update(changes)
        validate_target(merged)

        for key, value in changes.items():
            if key == "tags":
                value = clean_tags(value)
            elif key == "text":
                value = value.strip()
            setattr(target, key, value)
        if target.completion_mode == MODE_MANUAL:
            target.target_minutes = None

        commit_or_rollback(db, "target")
        ProgressService.refresh_targets(db, user_id, [target], now)
        db.refresh(target)
        return target

    @staticmethod
    def set_completion(db: Session, user_id: str, target_id: str, completed: bool, now) -> Target:
        target = TargetService._get_or_404(db, user_id, target_id)
        if target.completion_mode != MODE_MANUAL:
            raise LockedError("Focus-minute targets complete on their own.")

        if completed:
            if target.completed_at is None:
                target.completed_at = to_utc(now)
        else:
            target.completed_at = None
        target.status = derive_target_status(target, now)

        commit_or_rollback(db, "target")
        db.refresh(target)
        return target

    @staticmethod
    def delete(db: Session, user_id: str, target_id: str) -> bool:
        target = TargetService._get_or_404(db, user_id, target_id)
        db.delete(target)
        commit_or_rollback(db, "target deletion")
        return True

    @staticmethod
    def reschedule(db: Session, user_id: str, target_id: str, new_deadline: date, now) -> Target:
        """Keep the overdue target and start an active copy with the new deadline."""
        target = TargetService._get_or_404(db, user_id, target_id)
        if derive_target_status(target, now) != STATUS_DUE:
            raise LockedError("Only overdue targets can be rescheduled.")
        if not new_deadline:
            raise ValidationError("Targets need a deadline.")
        today = local_today(now)
        if new_deadline < today:
            raise ValidationError("The new deadline cannot be in the past.")

        copy = Target(
            user_id=user_id,
            text=target.text,
            start_date=today,
            deadline=new_deadline,
            priority=target.priority,
            completion_mode=target.completion_mode,
            tags=list(target.tags or []),
            target_minutes=target.target_minutes,
            progress_minutes=0.0,
            status=STATUS_ACTIVE,
            created_at=to_utc(now),
        )
        db.add(copy)
        commit_or_rollback(db, "target")
        db.refresh(copy)
        ProgressService.refresh_targets(db, user_id, [copy], now)
        logger.info(f"Target {target.id} rescheduled as {copy.id}")
        return copy
