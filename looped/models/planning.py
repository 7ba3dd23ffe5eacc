from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass
class JournalEntry:
    user_id: str
    entry_date: date
    content: str = ""
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "entry_date": self.entry_date.isoformat(),
            "content": self.content,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class Todo:
    id: str
    user_id: str
    title: str
    due_date: date
    notes: Optional[str] = None
    is_done: bool = False
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "notes": self.notes,
            "due_date": self.due_date.isoformat(),
            "is_done": self.is_done,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass
class PlannerBlock:
    """A time block on one day, stored as minutes since local midnight."""

    id: str
    user_id: str
    p_date: date
    title: str
    start_minutes: int
    end_minutes: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.p_date.isoformat(),
            "title": self.title,
            "start_time": format_hhmm(self.start_minutes),
            "end_time": format_hhmm(self.end_minutes),
            "duration_minutes": self.duration_minutes,
            "notes": self.notes,
        }
