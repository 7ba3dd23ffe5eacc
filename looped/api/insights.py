from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from looped.core.auth import get_current_user_id
from looped.core.errors import ValidationError
from looped.features.insights.service import insights_service

router = APIRouter(prefix="/v1/insights", tags=["insights"])


@router.get("/weekly")
def weekly_insights(
    now: Optional[str] = Query(None, description="Fixed timestamp for deterministic testing (ISO format)"),
    user_id: str = Depends(get_current_user_id),
):
    now_dt = None
    if now:
        try:
            now_dt = datetime.fromisoformat(now.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("Invalid ISO timestamp format for 'now' parameter")
    return {"data": insights_service.weekly_insights(user_id=user_id, now=now_dt)}


@router.get("/progress")
def progress_summary(user_id: str = Depends(get_current_user_id)):
    return {"data": insights_service.progress_summary(user_id=user_id)}
