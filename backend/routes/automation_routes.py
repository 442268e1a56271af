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
from routes.task_routes import TaskOut, task_out
from services.automation_service import AutomationService
from services.lifecycle import local_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/automations", tags=["Automations"])


class TemplateCreate(BaseModel):
    text: str
    total_poms: int = 1
    due_date: Optional[date] = None  # first day the template may run
    project_id: Optional[str] = None
    tags: List[str] = []
    priority: Optional[int] = None
    custom_focus_duration: Optional[int] = None
    custom_break_duration: Optional[int] = None
    recurring_days: List[int] = []
    recurring_end_date: Optional[date] = None
    stop_on_project_completion: bool = True


class TemplateUpdate(BaseModel):
    text: Optional[str] = None
    total_poms: Optional[int] = None
    due_date: Optional[date] = None
    project_id: Optional[str] = None
    tags: Optional[List[str]] = None
    priority: Optional[int] = None
    custom_focus_duration: Optional[int] = None
    custom_break_duration: Optional[int] = None
    recurring_days: Optional[List[int]] = None
    recurring_end_date: Optional[date] = None
    stop_on_project_completion: Optional[bool] = None


class ActiveToggle(BaseModel):
    is_active: bool


class SyncRequest(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None


class TemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    total_poms: int
    due_date: Optional[date] = None
    project_id: Optional[str] = None
    tags: Optional[List[str]] = None
    priority: Optional[int] = None
    custom_focus_duration: Optional[int] = None
    custom_break_duration: Optional[int] = None
    recurring_days: Optional[List[int]] = None
    recurring_end_date: Optional[date] = None
    is_active: bool = True
    stop_on_project_completion: bool = True
    created_at: Optional[datetime] = None


@router.get("", response_model=List[TemplateOut])
async def list_templates(user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return AutomationService.get_templates(db, user_id)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to list recurring tasks")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=TemplateOut, status_code=201)
async def create_template(
    body: TemplateCreate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return AutomationService.create_template(db, user_id, body.model_dump(), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to create recurring task")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/sync", response_model=List[TaskOut])
async def sync_recurring_tasks(
    body: SyncRequest,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Generate instances for start..end (defaults to today)."""
    try:
        start = body.start or local_today(now)
        end = body.end or start
        return [task_out(t) for t in AutomationService.sync(db, user_id, start, end, now)]
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to generate recurring tasks")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{template_id}", response_model=TemplateOut)
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return AutomationService.update_template(db, user_id, template_id, body.model_dump(exclude_unset=True))
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to update recurring task")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{template_id}/active", response_model=TemplateOut)
async def set_template_active(
    template_id: str,
    body: ActiveToggle,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return AutomationService.set_active(db, user_id, template_id, body.is_active)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to toggle recurring task")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{template_id}")
async def delete_template(
    template_id: str,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        AutomationService.delete_template(db, user_id, template_id, now)
        return {"status": "success"}
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to delete recurring task")
        raise HTTPException(status_code=500, detail=str(e))
