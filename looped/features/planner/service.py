import re
from datetime import date
from typing import List, Optional
import uuid

from sqlalchemy import select, insert, delete

from looped.core.auth import ensure_owner
from looped.core.database import get_db_session, planner_entries
from looped.core.dates import as_utc, utc_now
from looped.core.errors import NotFoundError, ValidationError
from looped.core.logging import log_event
from looped.models.planning import PlannerBlock

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_hhmm(value: str) -> int:
    """'09:30' -> 570 minutes since midnight. '24:00' is accepted as end of day."""
    match = _HHMM_RE.match((value or "").strip())
    if not match:
        raise ValidationError(f"Invalid time {value!r} (expected HH:MM)")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes):
        raise ValidationError(f"Invalid time {value!r} (expected HH:MM)")
    return hours * 60 + minutes


def _to_block(row) -> PlannerBlock:
    return PlannerBlock(
        id=row.id,
        user_id=row.user_id,
        p_date=row.p_date,
        title=row.title,
        start_minutes=row.start_minutes,
        end_minutes=row.end_minutes,
        notes=row.notes,
        created_at=as_utc(row.created_at),
    )


class PlannerService:
    def add_block(
        self,
        *,
        user_id: str,
        day: date,
        title: str,
        start: str,
        end: str,
        notes: Optional[str] = None,
    ) -> PlannerBlock:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        start_minutes = parse_hhmm(start)
        end_minutes = parse_hhmm(end)
        if end_minutes <= start_minutes:
            raise ValidationError("End time must be after start time")

        block = PlannerBlock(
            id=uuid.uuid4().hex,
            user_id=user_id,
            p_date=day,
            title=title,
            start_minutes=start_minutes,
            end_minutes=end_minutes,
            notes=(notes or "").strip() or None,
            created_at=utc_now(),
        )
        with get_db_session() as session:
            session.execute(
                insert(planner_entries).values(
                    id=block.id,
                    user_id=user_id,
                    p_date=day,
                    title=block.title,
                    start_minutes=start_minutes,
                    end_minutes=end_minutes,
                    notes=block.notes,
                    created_at=block.created_at,
                )
            )
        log_event("info", "planner.block_added", user_id=user_id, event_type="planner.block_added")
        return block

    def list_blocks(self, *, user_id: str, day: date) -> List[PlannerBlock]:
        query = (
            select(planner_entries)
            .where(planner_entries.c.user_id == user_id, planner_entries.c.p_date == day)
            .order_by(planner_entries.c.start_minutes, planner_entries.c.end_minutes, planner_entries.c.id)
        )
        with get_db_session() as session:
            return [_to_block(row) for row in session.execute(query)]

    def delete_block(self, *, user_id: str, block_id: str) -> None:
        with get_db_session() as session:
            row = session.execute(select(planner_entries).where(planner_entries.c.id == block_id)).first()
            if row is None:
                raise NotFoundError("Planner block not found")
            ensure_owner(row.user_id, user_id, "planner block")
            session.execute(delete(planner_entries).where(planner_entries.c.id == block_id))

    @staticmethod
    def total_minutes(blocks: List[PlannerBlock]) -> int:
        return sum(block.duration_minutes for block in blocks)


# Singleton service used by routes
planner_service = PlannerService()
