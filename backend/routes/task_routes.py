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
from services.progress_service import is_task_complete
from services.task_service import TaskService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tasks", tags=["Tasks"])


class TaskCreate(BaseModel):
    text: str
    total_poms: int = 1
    due_date: Optional[date] = None
    project_id: Optional[str] = None
    tags: List[str] = []
    priority: Optional[int] = None
    custom_focus_duration: Optional[int] = None
    custom_break_duration: Optional[int] = None


class TaskUpdate(BaseModel):
    text: Optional[str] = None
    total_poms: Optional[int] = None
    completed_poms: Optional[int] = None
    comments: Optional[List[str]] = None
    due_date: Optional[date] = None
    project_id: Optional[str] = None
    tags: Optional[List[str]] = None
    priority: Optional[int] = None
    custom_focus_duration: Optional[int] = None
    custom_break_duration: Optional[int] = None
    task_order: Optional[int] = None


class TaskMove(BaseModel):
    action: str  # postpone | duplicate


class TaskOrder(BaseModel):
    id: str
    task_order: int


class TaskReorder(BaseModel):
    orders: List[TaskOrder]


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    total_poms: int
    completed_poms: int
    comments: Optional[List[str]] = None
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    project_id: Optional[str] = None
    tags: Optional[List[str]] = None
    priority: Optional[int] = None
    custom_focus_duration: Optional[int] = None
    custom_break_duration: Optional[int] = None
    task_order: Optional[int] = None
    template_id: Optional[str] = None
    created_at: Optional[datetime] = None
    is_complete: bool = False


def task_out(task) -> TaskOut:
    return TaskOut.model_validate(task).model_copy(update={"is_complete": is_task_complete(task)})


@router.get("", response_model=List[TaskOut])
async def list_tasks(
    start: Optional[date] = None,
    end: Optional[date] = None,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Upcoming tasks, or every task due within start..end when both are given."""
    try:
        if start and end:
            tasks = TaskService.get_range(db, user_id, start, end)
        else:
            tasks = TaskService.get_all(db, user_id, now)
        return [task_out(t) for t in tasks]
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to list tasks")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=TaskOut, status_code=201)
async def create_task(
    task_data: TaskCreate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return task_out(TaskService.create(db, user_id, task_data.model_dump(), now))
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to create task")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/reorder", response_model=List[TaskOut])
async def reorder_tasks(
    body: TaskReorder,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        tasks = TaskService.reorder(db, user_id, [o.model_dump() for o in body.orders])
        return [task_out(t) for t in tasks]
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to reorder tasks")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(task_id: str, user_id: str = Depends(get_current_user), db: Session = Depends(get_db)):
    task = TaskService.get_by_id(db, user_id, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task_out(task)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        data = task_data.model_dump(exclude_unset=True)
        return task_out(TaskService.update(db, user_id, task_id, data, now))
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to update task")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{task_id}/complete", response_model=TaskOut)
async def complete_task(
    task_id: str,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return task_out(TaskService.complete(db, user_id, task_id, now))
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to complete task")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{task_id}/incomplete", response_model=TaskOut)
async def mark_task_incomplete(
    task_id: str,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return task_out(TaskService.mark_incomplete(db, user_id, task_id, now))
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to reopen task")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{task_id}/move", response_model=TaskOut)
async def move_task(
    task_id: str,
    body: TaskMove,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return task_out(TaskService.move(db, user_id, task_id, body.action, now))
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to move task")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        TaskService.delete(db, user_id, task_id, now)
        return {"status": "success"}
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to delete task")
        raise HTTPException(status_code=500, detail=str(e))
