from datetime import date
from typing import List, Optional
import uuid

from sqlalchemy import select, insert, update, delete

from looped.core.auth import ensure_owner
from looped.core.database import get_db_session, todos
from looped.core.dates import as_utc, utc_now
from looped.core.errors import NotFoundError, ValidationError
from looped.core.logging import log_event
from looped.models.planning import Todo

MAX_TITLE_LENGTH = 200


def _to_todo(row) -> Todo:
    return Todo(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        notes=row.notes,
        due_date=row.due_date,
        is_done=bool(row.is_done),
        completed_at=as_utc(row.completed_at),
        created_at=as_utc(row.created_at),
    )


class TodoService:
    def add_todo(self, *, user_id: str, title: str, due_date: date, notes: Optional[str] = None) -> Todo:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(f"Title must be {MAX_TITLE_LENGTH} characters or fewer")

        todo = Todo(
            id=uuid.uuid4().hex,
            user_id=user_id,
            title=title,
            notes=(notes or "").strip() or None,
            due_date=due_date,
            created_at=utc_now(),
        )
        with get_db_session() as session:
            session.execute(
                insert(todos).values(
                    id=todo.id,
                    user_id=user_id,
                    title=todo.title,
                    notes=todo.notes,
                    due_date=due_date,
                    is_done=False,
                    created_at=todo.created_at,
                )
            )
        log_event("info", "todo.created", user_id=user_id, event_type="todo.created")
        return todo

    def list_todos(self, *, user_id: str, start: date, end: date) -> List[Todo]:
        """To-dos due in the half-open range [start, end)."""
        if end <= start:
            raise ValidationError("end must be after start")
        query = (
            select(todos)
            .where(todos.c.user_id == user_id, todos.c.due_date >= start, todos.c.due_date < end)
            .order_by(todos.c.due_date, todos.c.created_at, todos.c.id)
        )
        with get_db_session() as session:
            return [_to_todo(row) for row in session.execute(query)]

    def toggle_todo(self, *, user_id: str, todo_id: str) -> Todo:
        todo = self._get_owned(user_id, todo_id)
        done = not todo.is_done
        completed_at = utc_now() if done else None
        with get_db_session() as session:
            session.execute(
                update(todos).where(todos.c.id == todo_id).values(is_done=done, completed_at=completed_at)
            )
        todo.is_done = done
        todo.completed_at = completed_at
        return todo

    def delete_todo(self, *, user_id: str, todo_id: str) -> None:
        self._get_owned(user_id, todo_id)
        with get_db_session() as session:
            session.execute(delete(todos).where(todos.c.id == todo_id, todos.c.user_id == user_id))
        log_event("info", "todo.deleted", user_id=user_id, event_type="todo.deleted")

    def _get_owned(self, user_id: str, todo_id: str) -> Todo:
        with get_db_session() as session:
            row = session.execute(select(todos).where(todos.c.id == todo_id)).first()
        if row is None:
            raise NotFoundError("To-do not found")
        ensure_owner(row.user_id, user_id, "to-do")
        return _to_todo(row)


# Singleton service used by routes
todo_service = TodoService()
