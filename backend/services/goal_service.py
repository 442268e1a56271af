"""
goal_service.py — Long-term goals
Goals have no deadline and no automatic completion; they are checked off by hand.
"""

from sqlalchemy.orm import Session

from database import commit_or_rollback
from errors import LockedError, NotFoundError, ValidationError
from models.goal import Goal
from services.lifecycle import evaluate_goal, to_utc


class GoalService:
    @staticmethod
    def create(db: Session, user_id: str, data: dict, now) -> Goal:
        text = (data.get("text") or "").strip()
        if not text:
            raise ValidationError("Goal text cannot be empty.")
        goal = Goal(user_id=user_id, text=text, created_at=to_utc(now))
        db.add(goal)
        commit_or_rollback(db, "goal")
        db.refresh(goal)
        return goal

    @staticmethod
    def get_all(db: Session, user_id: str, completed: bool | None = None) -> list[Goal]:
        query = db.query(Goal).filter_by(user_id=user_id)
        if completed is True:
            query = query.filter(Goal.completed_at.isnot(None))
        elif completed is False:
            query = query.filter(Goal.completed_at.is_(None))
        return query.order_by(Goal.created_at.desc()).all()

    @staticmethod
    def get_by_id(db: Session, user_id: str, goal_id: str) -> Goal | None:
        return db.query(Goal).filter_by(id=goal_id, user_id=user_id).first()

    @staticmethod
    def _get_or_404(db: Session, user_id: str, goal_id: str) -> Goal:
        goal = GoalService.get_by_id(db, user_id, goal_id)
        if not goal:
            raise NotFoundError("Goal not found")
        return goal

    @staticmethod
    def update(db: Session, user_id: str, goal_id: str, data: dict, now) -> Goal:
        goal = GoalService._get_or_404(db, user_id, goal_id)
        state = evaluate_goal(goal, now)
        if not state.can_edit:
            raise LockedError(state.reason)

        if "text" in data:
            text = (data["text"] or "").strip()
            if not text:
                raise ValidationError("Goal text cannot be empty.")
            goal.text = text
        commit_or_rollback(db, "goal")
        db.refresh(goal)
        return goal

    @staticmethod
    def set_completion(db: Session, user_id: str, goal_id: str, completed: bool, now) -> Goal:
        goal = GoalService._get_or_404(db, user_id, goal_id)
        if completed:
            if goal.completed_at is None:
                goal.completed_at = to_utc(now)
        else:
            goal.completed_at = None
        commit_or_rollback(db, "goal")
        db.refresh(goal)
        return goal

    @staticmethod
    def delete(db: Session, user_id: str, goal_id: str) -> bool:
        goal = GoalService._get_or_404(db, user_id, goal_id)
        db.delete(goal)
        commit_or_rollback(db, "goal deletion")
        return True
