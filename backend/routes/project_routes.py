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
from services.lifecycle import LifecycleState, evaluate_project
from services.project_service import ProjectService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/projects", tags=["Projects"])


class ProjectCreate(BaseModel):
    name: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    active_days: List[int] = []
    completion_criteria_type: str = "manual"
    completion_criteria_value: Optional[int] = None
    priority: Optional[int] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    active_days: Optional[List[int]] = None
    completion_criteria_type: Optional[str] = None
    completion_criteria_value: Optional[int] = None
    priority: Optional[int] = None


class CompletionToggle(BaseModel):
    completed: bool


class RescheduleRequest(BaseModel):
    deadline: date


class UpdateCreate(BaseModel):
    description: str
    update_date: Optional[date] = None
    task_id: Optional[str] = None


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    active_days: Optional[List[int]] = None
    completion_criteria_type: str
    completion_criteria_value: Optional[int] = None
    progress_value: float = 0.0
    priority: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    lifecycle: Optional[LifecycleState] = None


class ProjectUpdateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    task_id: Optional[str] = None
    update_date: date
    description: str
    created_at: Optional[datetime] = None


def project_out(project, now) -> ProjectOut:
    return ProjectOut.model_validate(project).model_copy(update={"lifecycle": evaluate_project(project, now)})


@router.get("", response_model=List[ProjectOut])
async def list_projects(
    status: Optional[str] = None,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return [project_out(p, now) for p in ProjectService.get_all(db, user_id, now, status)]
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to list projects")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=ProjectOut, status_code=201)
async def create_project(
    project_data: ProjectCreate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return project_out(ProjectService.create(db, user_id, project_data.model_dump(), now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to create project")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(
    project_id: str,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    project = ProjectService.get_by_id(db, user_id, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project_out(project, now)


@router.put("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        data = project_data.model_dump(exclude_unset=True)
        return project_out(ProjectService.update(db, user_id, project_id, data, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to update project")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{project_id}/completion", response_model=ProjectOut)
async def set_project_completion(
    project_id: str,
    body: CompletionToggle,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return project_out(ProjectService.set_completion(db, user_id, project_id, body.completed, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to toggle project completion")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{project_id}/reschedule", response_model=ProjectOut, status_code=201)
async def reschedule_project(
    project_id: str,
    body: RescheduleRequest,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return project_out(ProjectService.reschedule(db, user_id, project_id, body.deadline, now), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to reschedule project")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{project_id}")
async def delete_project(project_id: str, user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        ProjectService.delete(db, user_id, project_id)
        return {"status": "success"}
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to delete project")
        raise HTTPException(status_code=500, detail=str(e))


# ── Project updates (activity log) ────────────────────────────────
@router.get("/{project_id}/updates", response_model=List[ProjectUpdateOut])
async def list_project_updates(project_id: str, user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return ProjectService.get_updates(db, user_id, project_id)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to list project updates")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{project_id}/updates", response_model=ProjectUpdateOut, status_code=201)
async def add_project_update(
    project_id: str,
    body: UpdateCreate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return ProjectService.add_update(db, user_id, project_id, body.model_dump(), now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to add project update")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{project_id}/updates/{update_id}")
async def delete_project_update(
    project_id: str,
    update_id: str,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        ProjectService.delete_update(db, user_id, project_id, update_id)
        return {"status": "success"}
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to delete project update")
        raise HTTPException(status_code=500, detail=str(e))
