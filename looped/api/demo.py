from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from looped.features.demo.service import demo_service

router = APIRouter(prefix="/v1/demo", tags=["demo"])


class DemoRequest(BaseModel):
    categories: List[str] = Field(default_factory=list)
    timeMinutes: int = Field(..., ge=1, le=1440)
    constraints: List[str] = Field(default_factory=list)
    kidMode: bool = False
    goal: Optional[str] = Field(None, max_length=500)


@router.post("/challenge")
def demo_challenge(body: DemoRequest):
    """Pick a Day 1 challenge for an anonymous visitor (no auth, no writes)."""
    challenge = demo_service.pick(
        categories=body.categories,
        time_minutes=body.timeMinutes,
        constraints=body.constraints,
        kid_mode=body.kidMode,
        goal=body.goal,
    )
    return {"challenge": challenge}
