from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from looped.core.auth import get_current_user_id
from looped.core.dates import parse_day
from looped.features.journal.service import journal_service, MAX_ENTRY_LENGTH

router = APIRouter(prefix="/v1/journal", tags=["journal"])


class JournalBody(BaseModel):
    content: str = Field("", max_length=MAX_ENTRY_LENGTH)


@router.get("/{day}")
def get_entry(day: str, user_id: str = Depends(get_current_user_id)):
    return {"data": journal_service.get_entry(user_id=user_id, day=parse_day(day)).to_dict()}


@router.put("/{day}")
def save_entry(day: str, body: JournalBody, user_id: str = Depends(get_current_user_id)):
    entry = journal_service.save_entry(user_id=user_id, day=parse_day(day), content=body.content)
    return {"data": entry.to_dict()}
