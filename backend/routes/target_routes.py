import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from auth import get_current_user
from clock import get_now
from database import get_db
from errors import FocusFlowError
from services.lifecycle import LifecycleState, evaluate_target
from services.target_service import TargetService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/targets", tags=["Targets"])


class TargetCreate(BaseModel):
    text: str
    deadline: date
    start_date: Optional[date] = None
    priority: Optional[int] = None
    completion_mode: str = "manual"
    tags: List[str] = []
    target_minutes: Optional[int] = None


class TargetUpdate(BaseModel):
    text: Optional[str] = None
    deadline: Optional[date] = None
    start_date: Optional[date] = None
    priority: Optional[int] = None
    completion_mode: Optional[str] = None
    tags: Optional[List[str]] = None
    target_minutes: Optional[int] = None


class CompletionToggle(BaseModel):
    completed: bool


class RescheduleRequest(BaseModel):
    deadline: date


class TargetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    start_date: Optional[date] = None
    deadline: date
    priority: Optional[int] = None
    completion_mode: str
    tags: Optional[List[str]] = None
    target_minutes: Optional[int] = None
    progress_minutes: float = 0.0
    status: str
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    lifecycle: Optional[LifecycleState] = None


def target_out(target, now) -> TargetOut:
    return TargetOut.model_validate(target).model_copy(update={"lifecycle": evaluate_target(target, now)})


@router.get("", response_model=List[TargetOut])
async def list_targets(
    status: Optional[str] = None,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return [target_out(t, now) for t in TargetService.get_all(db, user_id, now, status)]
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to list targets")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=TargetOut, status_code=201)
async def create_target(
    target_data: TargetCreate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return target_out(TargetService.create(db, user_id, target_data.model_dump(), now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to create target")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{target_id}", response_model=TargetOut)
async def update_target(
    target_id: str,
    target_data: TargetUpdate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        data = target_data.model_dump(exclude_unset=True)
        return target_out(TargetService.update(db, user_id, target_id, data, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to update target")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{target_id}/completion", response_model=TargetOut)
async def set_target_completion(
    target_id: str,
    body: CompletionToggle,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return target_out(TargetService.set_completion(db, user_id, target_id, body.completed, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to toggle target completion")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{target_id}/reschedule", response_model=TargetOut, status_code=201)
async def reschedule_target(
    target_id: str,
    body: RescheduleRequest,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return target_out(TargetService.reschedule(db, user_id, target_id, body.deadline, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to reschedule target")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{target_id}")
async def delete_target(target_id: str, user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        TargetService.delete(db, user_id, target_id)
        return {"status": "success"}
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to delete target")
        raise HTTPException(status_code=500, detail=str(e))
