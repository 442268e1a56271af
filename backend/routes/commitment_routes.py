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
from services.commitment_service import CommitmentService
from services.lifecycle import LifecycleState, evaluate_commitment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/commitments", tags=["Commitments"])


class CommitmentCreate(BaseModel):
    text: str
    due_date: Optional[date] = None


class CommitmentUpdate(BaseModel):
    text: Optional[str] = None
    due_date: Optional[date] = None


class RescheduleRequest(BaseModel):
    due_date: Optional[date] = None


class CommitmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    due_date: Optional[date] = None
    status: str
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    broken_at: Optional[datetime] = None
    lifecycle: Optional[LifecycleState] = None


def commitment_out(commitment, now) -> CommitmentOut:
    state = evaluate_commitment(commitment, now)
    return CommitmentOut.model_validate(commitment).model_copy(update={"lifecycle": state})


@router.get("", response_model=List[CommitmentOut])
async def list_commitments(
    status: Optional[str] = None,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return [commitment_out(c, now) for c in CommitmentService.get_all(db, user_id, status)]
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to list commitments")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=CommitmentOut, status_code=201)
async def create_commitment(
    body: CommitmentCreate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return commitment_out(CommitmentService.create(db, user_id, body.model_dump(), now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to create commitment")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{commitment_id}", response_model=CommitmentOut)
async def update_commitment(
    commitment_id: str,
    body: CommitmentUpdate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        data = body.model_dump(exclude_unset=True)
        return commitment_out(CommitmentService.update(db, user_id, commitment_id, data, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to update commitment")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{commitment_id}/complete", response_model=CommitmentOut)
async def complete_commitment(
    commitment_id: str,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return commitment_out(CommitmentService.complete(db, user_id, commitment_id, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to complete commitment")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{commitment_id}/break", response_model=CommitmentOut)
async def break_commitment(
    commitment_id: str,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return commitment_out(CommitmentService.mark_broken(db, user_id, commitment_id, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to break commitment")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{commitment_id}/reschedule", response_model=CommitmentOut, status_code=201)
async def reschedule_commitment(
    commitment_id: str,
    body: RescheduleRequest,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        copy = CommitmentService.reschedule(db, user_id, commitment_id, now, body.due_date)
        return commitment_out(copy, now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to reschedule commitment")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{commitment_id}")
async def delete_commitment(
    commitment_id: str,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        CommitmentService.delete(db, user_id, commitment_id, now)
        return {"status": "success"}
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to delete commitment")
        raise HTTPException(status_code=500, detail=str(e))
