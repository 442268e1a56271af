"""
commitment_service.py — Commitments
A commitment is editable only during its short grace period. Afterwards it can
be marked broken, and once the reflection period has passed (and it has no due
date) it can be completed. Broken commitments can be restarted as a fresh copy.
"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from database import commit_or_rollback
from errors import LockedError, NotFoundError, ValidationError
from models.commitment import Commitment
from services.lifecycle import (
    STATUS_ACTIVE,
    STATUS_BROKEN,
    STATUS_COMPLETED,
    evaluate_commitment,
    local_today,
    to_utc,
)

logger = logging.getLogger(__name__)


def _check_due_date(due_date: date | None, now):
    if due_date is not None and due_date < local_today(now):
        raise ValidationError("Due date cannot be in the past.")


class CommitmentService:
    @staticmethod
    def create(db: Session, user_id: str, data: dict, now) -> Commitment:
        text = (data.get("text") or "").strip()
        if not text:
            raise ValidationError("Commitment text cannot be empty.")
        _check_due_date(data.get("due_date"), now)

        commitment = Commitment(
            user_id=user_id,
            text=text,
            due_date=data.get("due_date"),
            status=STATUS_ACTIVE,
            created_at=to_utc(now),
        )
        db.add(commitment)
        commit_or_rollback(db, "commitment")
        db.refresh(commitment)
        return commitment

    @staticmethod
    def get_all(db: Session, user_id: str, status: str | None = None) -> list[Commitment]:
        query = db.query(Commitment).filter_by(user_id=user_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Commitment.created_at.desc()).all()

    @staticmethod
    def get_by_id(db: Session, user_id: str, commitment_id: str) -> Commitment | None:
        return db.query(Commitment).filter_by(id=commitment_id, user_id=user_id).first()

    @staticmethod
    def _get_or_404(db: Session, user_id: str, commitment_id: str) -> Commitment:
        commitment = CommitmentService.get_by_id(db, user_id, commitment_id)
        if not commitment:
            raise NotFoundError("Commitment not found")
        return commitment

    @staticmethod
    def update(db: Session, user_id: str, commitment_id: str, data: dict, now) -> Commitment:
        commitment = CommitmentService._get_or_404(db, user_id, commitment_id)
        state = evaluate_commitment(commitment, now)
        if not state.can_edit:
            raise LockedError(state.reason)

        if "text" in data:
            text = (data["text"] or "").strip()
            if not text:
                raise ValidationError("Commitment text cannot be empty.")
            commitment.text = text
        if "due_date" in data:
            _check_due_date(data["due_date"], now)
            commitment.due_date = data["due_date"]

        commit_or_rollback(db, "commitment")
        db.refresh(commitment)
        return commitment

    @staticmethod
    def delete(db: Session, user_id: str, commitment_id: str, now) -> bool:
        commitment = CommitmentService._get_or_404(db, user_id, commitment_id)
        state = evaluate_commitment(commitment, now)
        if not state.can_delete:
            raise LockedError(state.reason)
        db.delete(commitment)
        commit_or_rollback(db, "commitment deletion")
        return True

    @staticmethod
    def complete(db: Session, user_id: str, commitment_id: str, now) -> Commitment:
        commitment = CommitmentService._get_or_404(db, user_id, commitment_id)
        state = evaluate_commitment(commitment, now)
        if not state.can_complete:
            raise LockedError(state.reason)

        commitment.status = STATUS_COMPLETED
        commitment.completed_at = to_utc(now)
        commit_or_rollback(db, "commitment")
        db.refresh(commitment)
        logger.info(f"Commitment {commitment.id} completed")
        return commitment

    @staticmethod
    def mark_broken(db: Session, user_id: str, commitment_id: str, now) -> Commitment:
        commitment = CommitmentService._get_or_404(db, user_id, commitment_id)
        state = evaluate_commitment(commitment, now)
        if not state.can_break:
            raise LockedError(state.reason)

        commitment.status = STATUS_BROKEN
        commitment.broken_at = to_utc(now)
        commit_or_rollback(db, "commitment")
        db.refresh(commitment)
        logger.info(f"Commitment {commitment.id} marked broken")
        return commitment

    @staticmethod
    def reschedule(db: Session, user_id: str, commitment_id: str, now, due_date: date | None = None) -> Commitment:
        """Start over on a broken commitment; the broken one stays as a record."""
        commitment = CommitmentService._get_or_404(db, user_id, commitment_id)
        if commitment.status != STATUS_BROKEN:
            raise LockedError("Only broken commitments can be rescheduled.")
        _check_due_date(due_date, now)

        copy = Commitment(
            user_id=user_id,
            text=commitment.text,
            due_date=due_date,
            status=STATUS_ACTIVE,
            created_at=to_utc(now),
        )
        db.add(copy)
        commit_or_rollback(db, "commitment")
        db.refresh(copy)
        return copy
