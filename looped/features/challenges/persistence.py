"""
Persistence for per-user challenge assignments.

Rows are read joined to the catalog so each UserChallenge comes back with its
content already resolved into the catalog or custom variant.
"""

from datetime import date, datetime
from typing import Iterable, List, Optional
import uuid

from sqlalchemy import select, insert, update, delete, func, and_, or_

from looped.core.database import get_db_session, challenges, user_challenges
from looped.core.dates import as_utc, utc_now
from looped.features.challenges.catalog import row_to_catalog
from looped.models.challenge import (
    CatalogChallenge,
    CatalogContent,
    CustomContent,
    DEFAULT_CATEGORY,
    UserChallenge,
)

_CATALOG_COLUMNS = [col.label(f"c_{col.name}") for col in challenges.c]


def _joined_select():
    return select(user_challenges, *_CATALOG_COLUMNS).select_from(
        user_challenges.outerjoin(challenges, user_challenges.c.challenge_id == challenges.c.id)
    )


def new_id() -> str:
    return uuid.uuid4().hex


class ChallengePersistence:
    """Reads and conditional writes against `user_challenges`."""

    @staticmethod
    def to_user_challenge(row) -> UserChallenge:
        m = row._mapping
        if not m["is_custom"] and m["c_id"] is not None:
            content = CatalogContent(
                challenge=CatalogChallenge(
                    id=m["c_id"],
                    category=m["c_category"],
                    day_number=m["c_day_number"],
                    title=m["c_title"],
                    description=m["c_description"],
                    difficulty=m["c_difficulty"],
                    estimated_minutes=m["c_estimated_minutes"],
                    benefit=m["c_benefit"],
                )
            )
        else:
            # Custom content, or a catalog row that has since been removed
            content = CustomContent(
                title=m["custom_title"] or "Custom Challenge",
                description=m["custom_description"] or "",
                category=m["custom_category"] or DEFAULT_CATEGORY,
                minutes=m["custom_time_minutes"] or 5,
            )
        return UserChallenge(
            id=m["id"],
            user_id=m["user_id"],
            content=content,
            status=m["status"],
            created_by=m["created_by"],
            scheduled_date=m["scheduled_date"],
            assignment_key=m["assignment_key"],
            completion_date=as_utc(m["completion_date"]),
            feedback=m["feedback"],
            notes=m["notes"],
            trainer_response=m["trainer_response"],
            created_at=as_utc(m["created_at"]),
        )

    @staticmethod
    def get(user_challenge_id: str) -> Optional[UserChallenge]:
        query = _joined_select().where(user_challenges.c.id == user_challenge_id)
        with get_db_session() as session:
            row = session.execute(query).first()
        return ChallengePersistence.to_user_challenge(row) if row else None

    @staticmethod
    def find_by_assignment_key(user_id: str, assignment_key: str) -> Optional[UserChallenge]:
        query = _joined_select().where(
            user_challenges.c.user_id == user_id,
            user_challenges.c.assignment_key == assignment_key,
        )
        with get_db_session() as session:
            row = session.execute(query).first()
        return ChallengePersistence.to_user_challenge(row) if row else None

    @staticmethod
    def find_pending_for_day(
        user_id: str, day: date, day_start: datetime, day_end: datetime
    ) -> Optional[UserChallenge]:
        """
        Most recently created pending challenge scheduled for `day` or
        created within the half-open [day_start, day_end) interval.
        """
        query = (
            _joined_select()
            .where(
                user_challenges.c.user_id == user_id,
                user_challenges.c.status == "pending",
                or_(
                    user_challenges.c.scheduled_date == day,
                    and_(
                        user_challenges.c.created_at >= day_start,
                        user_challenges.c.created_at < day_end,
                    ),
                ),
            )
            .order_by(user_challenges.c.created_at.desc(), user_challenges.c.id.desc())
            .limit(1)
        )
        with get_db_session() as session:
            row = session.execute(query).first()
        return ChallengePersistence.to_user_challenge(row) if row else None

    @staticmethod
    def count_with_status(user_id: str, status: str) -> int:
        query = select(func.count()).select_from(user_challenges).where(
            user_challenges.c.user_id == user_id,
            user_challenges.c.status == status,
        )
        with get_db_session() as session:
            return int(session.execute(query).scalar() or 0)

    @staticmethod
    def count_all(user_id: str) -> int:
        query = select(func.count()).select_from(user_challenges).where(user_challenges.c.user_id == user_id)
        with get_db_session() as session:
            return int(session.execute(query).scalar() or 0)

    @staticmethod
    def catalog_candidates(category: str, day_number: int) -> List[CatalogChallenge]:
        query = select(challenges).where(
            challenges.c.category == category,
            challenges.c.day_number == day_number,
        )
        with get_db_session() as session:
            return [row_to_catalog(row) for row in session.execute(query)]

    @staticmethod
    def insert(
        *,
        user_id: str,
        status: str = "pending",
        created_by: str = "system",
        challenge_id: Optional[str] = None,
        custom: Optional[CustomContent] = None,
        scheduled_date: Optional[date] = None,
        assignment_key: Optional[str] = None,
        trainer_response: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        """
        Insert one assignment row.

        Raises:
            IntegrityError: when (user_id, assignment_key) already exists
        """
        row_id = new_id()
        values = {
            "id": row_id,
            "user_id": user_id,
            "challenge_id": challenge_id,
            "is_custom": custom is not None,
            "custom_title": custom.title if custom else None,
            "custom_description": custom.description if custom else None,
            "custom_category": custom.category if custom else None,
            "custom_time_minutes": custom.minutes if custom else None,
            "status": status,
            "created_by": created_by,
            "scheduled_date": scheduled_date,
            "assignment_key": assignment_key,
            "trainer_response": trainer_response,
            "created_at": created_at or utc_now(),
        }
        with get_db_session() as session:
            session.execute(insert(user_challenges).values(**values))
        return row_id

    @staticmethod
    def transition(
        user_challenge_id: str,
        user_id: str,
        from_statuses: Iterable[str],
        values: dict,
    ) -> bool:
        """
        Conditionally update a row that is still in one of `from_statuses`.

        Returns:
            True if exactly one row changed, False if the status had moved on
        """
        stmt = (
            update(user_challenges)
            .where(
                user_challenges.c.id == user_challenge_id,
                user_challenges.c.user_id == user_id,
                user_challenges.c.status.in_(list(from_statuses)),
            )
            .values(**values)
        )
        with get_db_session() as session:
            result = session.execute(stmt)
            return result.rowcount == 1

    @staticmethod
    def delete(user_challenge_id: str, user_id: str, from_statuses: Iterable[str]) -> bool:
        stmt = delete(user_challenges).where(
            user_challenges.c.id == user_challenge_id,
            user_challenges.c.user_id == user_id,
            user_challenges.c.status.in_(list(from_statuses)),
        )
        with get_db_session() as session:
            result = session.execute(stmt)
            return result.rowcount == 1

    @staticmethod
    def list_for_user(
        user_id: str,
        statuses: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> List[UserChallenge]:
        query = _joined_select().where(user_challenges.c.user_id == user_id)
        if statuses is not None:
            query = query.where(user_challenges.c.status.in_(list(statuses)))
        if since is not None:
            query = query.where(user_challenges.c.created_at >= since)
        query = query.order_by(user_challenges.c.created_at.desc(), user_challenges.c.id.desc())
        if limit is not None:
            query = query.limit(limit)
        with get_db_session() as session:
            return [ChallengePersistence.to_user_challenge(row) for row in session.execute(query)]
