from typing import List

from sqlalchemy import select, insert

from looped.core.database import get_db_session, trainer_messages
from looped.core.dates import as_utc, utc_now
from looped.models.trainer import TrainerMessage


def append_message(user_id: str, message_type: str, content: str) -> TrainerMessage:
    message = TrainerMessage(user_id=user_id, message_type=message_type, content=content, created_at=utc_now())
    with get_db_session() as session:
        session.execute(
            insert(trainer_messages).values(
                user_id=user_id,
                message_type=message_type,
                content=content,
                created_at=message.created_at,
            )
        )
    return message


def recent_messages(user_id: str, limit: int = 8) -> List[TrainerMessage]:
    """Last `limit` messages, oldest first."""
    query = (
        select(trainer_messages)
        .where(trainer_messages.c.user_id == user_id)
        .order_by(trainer_messages.c.created_at.desc(), trainer_messages.c.id.desc())
        .limit(limit)
    )
    with get_db_session() as session:
        rows = session.execute(query).all()
    return [
        TrainerMessage(
            user_id=row.user_id,
            message_type=row.message_type,
            content=row.content,
            created_at=as_utc(row.created_at),
        )
        for row in reversed(rows)
    ]
