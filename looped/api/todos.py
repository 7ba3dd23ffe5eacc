from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from looped.core.auth import get_current_user_id
from looped.core.dates import parse_day
from looped.features.todos.service import todo_service

router = APIRouter(prefix="/v1/todos", tags=["todos"])


class TodoCreate(BaseModel):
    title: str = Field(..., max_length=200)
    due_date: str
    notes: Optional[str] = Field(None, max_length=2000)


@router.get("")
def list_todos(
    start: str = Query(..., description="First day (YYYY-MM-DD), inclusive"),
    end: str = Query(..., description="Last day (YYYY-MM-DD), exclusive"),
    user_id: str = Depends(get_current_user_id),
):
    items = todo_service.list_todos(user_id=user_id, start=parse_day(start), end=parse_day(end))
    return {"data": [t.to_dict() for t in items], "count": len(items)}


@router.post("", status_code=201)
def add_todo(body: TodoCreate, user_id: str = Depends(get_current_user_id)):
    todo = todo_service.add_todo(
        user_id=user_id,
        title=body.title,
        due_date=parse_day(body.due_date),
        notes=body.notes,
    )
    return {"data": todo.to_dict()}


@router.post("/{todo_id}/toggle")
def toggle_todo(todo_id: str, user_id: str = Depends(get_current_user_id)):
    return {"data": todo_service.toggle_todo(user_id=user_id, todo_id=todo_id).to_dict()}


@router.delete("/{todo_id}")
def delete_todo(todo_id: str, user_id: str = Depends(get_current_user_id)):
    todo_service.delete_todo(user_id=user_id, todo_id=todo_id)
    return {"data": {"deleted": True, "id": todo_id}}
