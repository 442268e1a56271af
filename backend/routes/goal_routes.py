import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from auth import get_current_user
from clock import get_now
from database import get_db
from errors import FocusFlowError
from services.goal_service import GoalService
from services.lifecycle import LifecycleState, evaluate_goal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/goals", tags=["Goals"])


class GoalCreate(BaseModel):
    text: str


class GoalUpdate(BaseModel):
    text: Optional[str] = None


class CompletionToggle(BaseModel):
    completed: bool


class GoalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    lifecycle: Optional[LifecycleState] = None


def goal_out(goal, now) -> GoalOut:
    return GoalOut.model_validate(goal).model_copy(update={"lifecycle": evaluate_goal(goal, now)})


@router.get("", response_model=List[GoalOut])
async def list_goals(
    completed: Optional[bool] = None,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return [goal_out(g, now) for g in GoalService.get_all(db, user_id, completed)]
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to list goals")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=GoalOut, status_code=201)
async def create_goal(
    goal_data: GoalCreate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return goal_out(GoalService.create(db, user_id, goal_data.model_dump(), now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to create goal")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{goal_id}", response_model=GoalOut)
async def update_goal(
    goal_id: str,
    goal_data: GoalUpdate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        data = goal_data.model_dump(exclude_unset=True)
        return goal_out(GoalService.update(db, user_id, goal_id, data, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to update goal")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{goal_id}/completion", response_model=GoalOut)
async def set_goal_completion(
    goal_id: str,
    body: CompletionToggle,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return goal_out(GoalService.set_completion(db, user_id, goal_id, body.completed, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to toggle goal completion")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{goal_id}")
async def delete_goal(goal_id: str, user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        GoalService.delete(db, user_id, goal_id)
        return {"status": "success"}
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to delete goal")
        raise HTTPException(status_code=500, detail=str(e))
