import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from auth import get_current_user
from clock import get_now
from database import get_db
from errors import FocusFlowError
from routes.project_routes import project_out
from routes.target_routes import target_out
from routes.task_routes import task_out
from services.lifecycle import local_today
from services.pomodoro_service import PomodoroService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/pomodoro", tags=["Pomodoro"])


class SettingsUpdate(BaseModel):
    focus_duration: Optional[int] = None
    break_duration: Optional[int] = None
    session_per_cycle: Optional[int] = None


class SettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    focus_duration: int
    break_duration: int
    session_per_cycle: int


class SessionCreate(BaseModel):
    duration_minutes: float
    task_id: Optional[str] = None
    ended_at: Optional[datetime] = None
    comment: Optional[str] = None


class HistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: Optional[str] = None
    duration_minutes: float
    ended_at: datetime


class DailyLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    completed_sessions: int
    total_focus_minutes: float


@router.get("/settings", response_model=SettingsOut)
async def get_settings(user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    return PomodoroService.get_settings(db, user_id)


@router.put("/settings", response_model=SettingsOut)
async def update_settings(
    body: SettingsUpdate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return PomodoroService.update_settings(db, user_id, body.model_dump(exclude_unset=True), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to update settings")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/sessions", status_code=201)
async def log_session(
    body: SessionCreate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Record a finished focus interval; returns what it changed."""
    try:
        result = PomodoroService.log_session(db, user_id, body.model_dump(), now)
        return {
            "entry": HistoryOut.model_validate(result["entry"]),
            "task": task_out(result["task"]) if result["task"] is not None else None,
            "daily_log": DailyLogOut.model_validate(result["daily_log"]),
            "project": project_out(result["project"], now) if result["project"] is not None else None,
            "targets": [target_out(t, now) for t in result["targets"]],
        }
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to log focus session")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/history", response_model=List[HistoryOut])
async def get_history(
    start: Optional[date] = None,
    end: Optional[date] = None,
    task_ids: Optional[List[str]] = Query(None),
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return PomodoroService.get_history(db, user_id, now, start=start, end=end, task_ids=task_ids)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to fetch history")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/daily-logs", response_model=List[DailyLogOut])
async def get_daily_logs(
    start: date,
    end: Optional[date] = None,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return PomodoroService.get_daily_logs(db, user_id, start, end or local_today(now))
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to fetch daily logs")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/consistency")
async def get_consistency(
    days: int = 30,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return PomodoroService.get_consistency(db, user_id, days, now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to compute consistency")
        raise HTTPException(status_code=500, detail=str(e))
