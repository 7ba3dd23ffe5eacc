"""
Trainer chat API.

Each turn may call the upstream model, so the route is rate limited per user.
Upstream failures answer 502 with a friendly, retryable message.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from looped.core.auth import get_current_user_id
from looped.core.errors import RateLimitError
from looped.core.logging import log_event
from looped.features.trainer import transcript
from looped.features.trainer.service import trainer_service

router = APIRouter(prefix="/v1/trainer", tags=["trainer"])


class ChatRequest(BaseModel):
    message: str = Field("", max_length=4000)
    action: Literal["general", "create_challenge", "greeting", "schedule_challenge"] = "general"
    category: Optional[str] = None
    time_minutes: Optional[float] = None
    goal: Optional[str] = Field(None, max_length=500)


def _enforce_rate_limit(request: Request, user_id: str) -> None:
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return
    if not limiter.allow(f"trainer:{user_id}"):
        log_event("warning", "trainer.rate_limited", user_id=user_id, error_code="rate_limited")
        raise RateLimitError("Too many trainer messages, slow down a little")


@router.post("/chat")
def chat(body: ChatRequest, request: Request, user_id: str = Depends(get_current_user_id)):
    _enforce_rate_limit(request, user_id)
    reply = trainer_service.chat(
        user_id=user_id,
        message=body.message,
        action=body.action,
        category=body.category,
        time_minutes=body.time_minutes,
        goal=body.goal,
    )
    if not reply.success:
        return JSONResponse(status_code=502, content=reply.to_dict())
    return reply.to_dict()


@router.get("/messages")
def list_messages(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
):
    messages = transcript.recent_messages(user_id, limit)
    return {"data": [m.to_dict() for m in messages], "count": len(messages)}
