from fastapi import APIRouter, Depends

from looped.core.auth import get_current_user_id
from looped.features.streaks.service import streak_service

router = APIRouter(prefix="/v1/streaks", tags=["streaks"])


@router.get("/current")
def get_current_streak(user_id: str = Depends(get_current_user_id)):
    """Return the current streak state for the caller."""
    return {"data": streak_service.get_streak(user_id).to_dict()}


@router.post("/reset")
def reset_progress(user_id: str = Depends(get_current_user_id)):
    return {"data": streak_service.reset_progress(user_id).to_dict()}
