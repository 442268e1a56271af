import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from auth import get_current_user
from clock import get_now
from database import get_db
from errors import FocusFlowError
from services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


@router.get("/categories")
async def category_breakdown(
    start: Optional[date] = None,
    end: Optional[date] = None,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Focus minutes per tag; an entry counts toward every tag of its task."""
    try:
        return AnalyticsService.category_breakdown(db, user_id, now, start, end)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to build category breakdown")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/projects")
async def project_time(
    start: Optional[date] = None,
    end: Optional[date] = None,
    status: Optional[str] = "active",
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return AnalyticsService.project_time(db, user_id, now, start, end, status)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to build project time analysis")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/weekly-summary")
async def weekly_summary(
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        return AnalyticsService.weekly_summary(db, user_id, now)
    except FocusFlowError:
        raise
    except Exception as e:
        logger.exception("Failed to build weekly summary")
        raise HTTPException(status_code=500, detail=str(e))
