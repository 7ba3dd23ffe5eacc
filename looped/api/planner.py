from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from looped.core.auth import get_current_user_id
from looped.core.dates import parse_day
from looped.features.planner.service import planner_service

router = APIRouter(prefix="/v1/planner", tags=["planner"])


class BlockCreate(BaseModel):
    date: str
    title: str = Field(..., max_length=200)
    start: str = Field(..., description="HH:MM")
    end: str = Field(..., description="HH:MM")
    notes: Optional[str] = Field(None, max_length=2000)


@router.get("/{day}")
def list_blocks(day: str, user_id: str = Depends(get_current_user_id)):
    blocks = planner_service.list_blocks(user_id=user_id, day=parse_day(day))
    return {
        "data": [b.to_dict() for b in blocks],
        "total_minutes": planner_service.total_minutes(blocks),
    }


@router.post("", status_code=201)
def add_block(body: BlockCreate, user_id: str = Depends(get_current_user_id)):
    block = planner_service.add_block(
        user_id=user_id,
        day=parse_day(body.date),
        title=body.title,
        start=body.start,
        end=body.end,
        notes=body.notes,
    )
    return {"data": block.to_dict()}


@router.delete("/blocks/{block_id}")
def delete_block(block_id: str, user_id: str = Depends(get_current_user_id)):
    planner_service.delete_block(user_id=user_id, block_id=block_id)
    return {"data": {"deleted": True, "id": block_id}}
