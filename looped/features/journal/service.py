from datetime import date

from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from looped.core.database import get_db_session, journal_entries
from looped.core.dates import as_utc, utc_now
from looped.core.errors import ValidationError
from looped.core.logging import log_event
from looped.models.planning import JournalEntry

MAX_ENTRY_LENGTH = 20000


class JournalService:
    """One free-text entry per user per local calendar day."""

    def get_entry(self, *, user_id: str, day: date) -> JournalEntry:
        query = select(journal_entries).where(
            journal_entries.c.user_id == user_id,
            journal_entries.c.entry_date == day,
        )
        with get_db_session() as session:
            row = session.execute(query).first()
        if row is None:
            return JournalEntry(user_id=user_id, entry_date=day)
        return JournalEntry(
            user_id=user_id,
            entry_date=row.entry_date,
            content=row.content,
            updated_at=as_utc(row.updated_at),
        )

    def save_entry(self, *, user_id: str, day: date, content: str) -> JournalEntry:
        content = content or ""
        if len(content) > MAX_ENTRY_LENGTH:
            raise ValidationError(f"Journal entry must be {MAX_ENTRY_LENGTH} characters or fewer")

        now = utc_now()
        stmt = (
            update(journal_entries)
            .where(journal_entries.c.user_id == user_id, journal_entries.c.entry_date == day)
            .values(content=content, updated_at=now)
        )
        with get_db_session() as session:
            updated = session.execute(stmt).rowcount == 1
        if not updated:
            try:
                with get_db_session() as session:
                    session.execute(
                        insert(journal_entries).values(
                            user_id=user_id, entry_date=day, content=content, updated_at=now
                        )
                    )
            except IntegrityError:
                with get_db_session() as session:
                    session.execute(stmt)

        log_event("info", "journal.saved", user_id=user_id, event_type="journal.saved", extra={"day": day.isoformat()})
        return JournalEntry(user_id=user_id, entry_date=day, content=content, updated_at=now)


# Singleton service used by routes
journal_service = JournalService()
