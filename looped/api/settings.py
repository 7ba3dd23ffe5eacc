from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from looped.core.auth import get_current_user_id
from looped.features.settings.service import trainer_settings_service

router = APIRouter(prefix="/v1/settings", tags=["settings"])


class OnboardingRequest(BaseModel):
    time_budget: int = Field(15, ge=1, le=1440)
    focus_areas: List[str] = Field(default_factory=list)
    goals: Optional[str] = Field(None, max_length=2000)
    constraints: Optional[str] = Field(None, max_length=2000)
    difficulty_preference: int = Field(2, ge=1, le=5)
    timezone: Optional[str] = None


class SettingsUpdate(BaseModel):
    time_budget: Optional[int] = Field(None, ge=1, le=1440)
    focus_areas: Optional[List[str]] = None
    goals: Optional[str] = Field(None, max_length=2000)
    constraints: Optional[str] = Field(None, max_length=2000)
    difficulty_preference: Optional[int] = Field(None, ge=1, le=5)
    timezone: Optional[str] = None


@router.get("")
def get_settings(user_id: str = Depends(get_current_user_id)):
    return {"data": trainer_settings_service.get_settings(user_id).to_dict()}


@router.post("/onboarding")
def complete_onboarding(body: OnboardingRequest, user_id: str = Depends(get_current_user_id)):
    """Store onboarding answers and mark onboarding complete."""
    result = trainer_settings_service.complete_onboarding(user_id, **body.model_dump())
    return {"data": result.to_dict()}


@router.patch("")
def update_settings(body: SettingsUpdate, user_id: str = Depends(get_current_user_id)):
    changes = body.model_dump(exclude_unset=True)
    return {"data": trainer_settings_service.update_settings(user_id, **changes).to_dict()}
