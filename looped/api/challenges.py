"""
Challenges API: today's challenge, lifecycle transitions, custom challenges.
"""

from dataclasses import asdict
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from looped.core.auth import get_current_user_id
from looped.core.dates import parse_day
from looped.core.errors import ValidationError
from looped.features.challenges.catalog import list_catalog
from looped.features.challenges.service import challenge_service

router = APIRouter(prefix="/v1/challenges", tags=["challenges"])


class CompleteRequest(BaseModel):
    feedback: Optional[Literal["too_easy", "just_right", "too_hard"]] = None
    notes: Optional[str] = Field(None, max_length=2000)


class CustomChallengeRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    category: str
    minutes: int = Field(..., ge=1, le=1440)


def _parse_now(now: Optional[str]) -> Optional[datetime]:
    if not now:
        return None
    try:
        return datetime.fromisoformat(now.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("Invalid ISO timestamp format for 'now' parameter")


@router.get("/today")
def get_today_challenge(
    today: Optional[str] = Query(None, description="Local date override (YYYY-MM-DD) for deterministic testing"),
    user_id: str = Depends(get_current_user_id),
):
    """Return today's challenge, assigning one from the catalog if needed."""
    result = challenge_service.get_today_challenge(
        user_id=user_id,
        today=parse_day(today) if today else None,
    )
    return {"data": result.to_dict()}


@router.get("/day-number")
def get_day_number(user_id: str = Depends(get_current_user_id)):
    return {"data": {"day_number": challenge_service.get_current_day_number(user_id)}}


@router.get("/history")
def list_history(
    limit: int = Query(30, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
):
    items = challenge_service.list_history(user_id=user_id, limit=limit)
    return {"data": [c.to_dict() for c in items], "count": len(items)}


@router.get("/in-progress")
def list_in_progress(user_id: str = Depends(get_current_user_id)):
    items = challenge_service.list_in_progress(user_id=user_id)
    return {"data": [c.to_dict() for c in items], "count": len(items)}


@router.get("/catalog")
def get_catalog(category: Optional[str] = Query(None)):
    """Browse catalog templates (read-only, no auth)."""
    entries = list_catalog(category)
    return {"data": [asdict(entry) for entry in entries], "count": len(entries)}


@router.post("/custom", status_code=201)
def create_custom_challenge(
    body: CustomChallengeRequest,
    today: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
):
    challenge = challenge_service.create_custom_challenge(
        user_id=user_id,
        title=body.title,
        description=body.description,
        category=body.category,
        minutes=body.minutes,
        today=parse_day(today) if today else None,
    )
    return {"data": challenge.to_dict()}


@router.get("/{user_challenge_id}")
def get_challenge(user_challenge_id: str, user_id: str = Depends(get_current_user_id)):
    challenge = challenge_service.get_challenge(user_id=user_id, user_challenge_id=user_challenge_id)
    return {"data": challenge.to_dict()}


@router.post("/{user_challenge_id}/complete")
def complete_challenge(
    user_challenge_id: str,
    body: Optional[CompleteRequest] = None,
    now: Optional[str] = Query(None, description="Fixed timestamp for deterministic testing (ISO format)"),
    user_id: str = Depends(get_current_user_id),
):
    body = body or CompleteRequest()
    result = challenge_service.complete_challenge(
        user_id=user_id,
        user_challenge_id=user_challenge_id,
        feedback=body.feedback,
        notes=body.notes,
        now=_parse_now(now),
    )
    return {"data": result.to_dict()}


@router.post("/{user_challenge_id}/start")
def start_challenge(user_challenge_id: str, user_id: str = Depends(get_current_user_id)):
    challenge = challenge_service.start_challenge(user_id=user_id, user_challenge_id=user_challenge_id)
    return {"data": challenge.to_dict()}


@router.post("/{user_challenge_id}/snooze")
def snooze_challenge(user_challenge_id: str, user_id: str = Depends(get_current_user_id)):
    challenge = challenge_service.snooze_challenge(user_id=user_id, user_challenge_id=user_challenge_id)
    return {"data": challenge.to_dict()}


@router.post("/{user_challenge_id}/skip")
def skip_challenge(user_challenge_id: str, user_id: str = Depends(get_current_user_id)):
    challenge = challenge_service.skip_challenge(user_id=user_id, user_challenge_id=user_challenge_id)
    return {"data": challenge.to_dict()}


@router.delete("/{user_challenge_id}")
def delete_challenge(user_challenge_id: str, user_id: str = Depends(get_current_user_id)):
    challenge_service.delete_challenge(user_id=user_id, user_challenge_id=user_challenge_id)
    return {"data": {"deleted": True, "id": user_challenge_id}}
