# ---------- routes/ai_routes.py ----------
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from auth import get_current_user
from clock import get_now
from database import get_db
from services.ai_service import AIService, get_ai_service

router = APIRouter(prefix="/api/v1/ai", tags=["AI"])


# ── Pydantic schemas ──────────────────────────────────────────────
class InsightRequest(BaseModel):
    chart_title: str
    chart_data: Any
    question: Optional[str] = None


class AIResponse(BaseModel):
    text: str


# ── Routes ────────────────────────────────────────────────────────
@router.post("/coach-summary", response_model=AIResponse)
async def coach_summary(
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    ai: AIService = Depends(get_ai_service),
):
    """Weekly coaching summary built from the user's focus data."""
    return AIResponse(text=await ai.coaching_summary(db, user_id, now))


@router.post("/insight", response_model=AIResponse)
async def chart_insight(
    body: InsightRequest,
    user_id: str = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    return AIResponse(text=await ai.insight(body.chart_title, body.chart_data, body.question))
