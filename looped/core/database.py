"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (StaticPool for in-memory SQLite)
- Table definitions for the challenge store
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import (
    create_engine,
    MetaData,
    Table,
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Boolean,
    JSON,
    Text,
    Index,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    text,
)
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
import logging
import os

from looped.core.config import settings

logger = logging.getLogger("looped")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

DEFAULT_SQLITE_URL = "sqlite:///looped.db"

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available. Outside production a
    local SQLite file is used when nothing is configured.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    url = settings.DATABASE_URL
    if url and url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if not url and settings.ENV.lower() != "production":
        return DEFAULT_SQLITE_URL
    return url


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if url.startswith("sqlite"):
        engine_kwargs = {"connect_args": {"check_same_thread": False}, "echo": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            engine_kwargs["poolclass"] = StaticPool
        _engine = create_engine(url, **engine_kwargs)
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            pool_pre_ping=True,
            echo=False,  # Set to True for SQL query logging
        )

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    logger.info(f"[db] engine initialised for {_engine.url.get_backend_name()}")
    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)


def reset_database():
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This is destructive! Only use in tests.
    """
    drop_all_tables()
    create_all_tables()


# Catalog of challenge templates (read-mostly)
challenges = Table(
    'challenges',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('category', String(32), nullable=False),
    Column('day_number', Integer, nullable=False),
    Column('title', Text, nullable=False),
    Column('description', Text, nullable=False),
    Column('benefit', Text, nullable=True),
    Column('difficulty', Integer, nullable=False, server_default='1'),
    Column('estimated_minutes', Integer, nullable=False),
    CheckConstraint('difficulty BETWEEN 1 AND 5', name='ck_challenges_difficulty'),
    UniqueConstraint('category', 'day_number', 'title', name='uq_challenges_category_day_title'),
    Index('idx_challenges_category_day', 'category', 'day_number'),
)

# Per-user challenge instances (catalog reference or custom content)
user_challenges = Table(
    'user_challenges',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('user_id', String(100), nullable=False),
    Column('challenge_id', String(64), ForeignKey('challenges.id', ondelete='SET NULL'), nullable=True),
    Column('is_custom', Boolean, nullable=False, server_default=text('false')),
    Column('custom_title', Text, nullable=True),
    Column('custom_description', Text, nullable=True),
    Column('custom_category', String(32), nullable=True),
    Column('custom_time_minutes', Integer, nullable=True),
    Column('status', String(20), nullable=False, server_default='pending'),
    Column('created_by', String(20), nullable=False, server_default='system'),
    Column('scheduled_date', Date, nullable=True),
    Column('assignment_key', String(64), nullable=True),
    Column('completion_date', DateTime(timezone=True), nullable=True),
    Column('feedback', String(20), nullable=True),
    Column('notes', Text, nullable=True),
    Column('trainer_response', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    # NULL assignment keys (custom challenges) never collide
    UniqueConstraint('user_id', 'assignment_key', name='uq_user_challenges_user_assignment'),
    Index('idx_user_challenges_user_status', 'user_id', 'status'),
    Index('idx_user_challenges_user_created', 'user_id', 'created_at'),
    Index('idx_user_challenges_user_scheduled', 'user_id', 'scheduled_date'),
)

# One streak row per user
streaks = Table(
    'streaks',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('current_streak', Integer, nullable=False, server_default='0'),
    Column('longest_streak', Integer, nullable=False, server_default='0'),
    Column('last_completion_date', Date, nullable=True),
    Column('streak_start_date', Date, nullable=True),
    Column('updated_at', DateTime(timezone=True), nullable=False),
    CheckConstraint('current_streak >= 0', name='ck_streaks_current_non_negative'),
    CheckConstraint('longest_streak >= current_streak', name='ck_streaks_longest_gte_current'),
)

trainer_settings = Table(
    'trainer_settings',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('time_budget', Integer, nullable=False, server_default='15'),
    Column('focus_areas', JSON, nullable=False),
    Column('goals', Text, nullable=True),
    Column('constraints', Text, nullable=True),
    Column('difficulty_preference', Integer, nullable=False, server_default='2'),
    Column('onboarding_completed', Boolean, nullable=False, server_default=text('false')),
    Column('timezone', String(64), nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('updated_at', DateTime(timezone=True), nullable=False),
    CheckConstraint('difficulty_preference BETWEEN 1 AND 5', name='ck_trainer_settings_difficulty'),
)

# Trainer conversation transcript
trainer_messages = Table(
    'trainer_messages',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('message_type', String(20), nullable=False),
    Column('content', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_trainer_messages_user_created', 'user_id', 'created_at'),
)

journal_entries = Table(
    'journal_entries',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('entry_date', Date, nullable=False),
    Column('content', Text, nullable=False, server_default=''),
    Column('updated_at', DateTime(timezone=True), nullable=False),
    UniqueConstraint('user_id', 'entry_date', name='uq_journal_entries_user_date'),
)

todos = Table(
    'todos',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('user_id', String(100), nullable=False),
    Column('title', Text, nullable=False),
    Column('notes', Text, nullable=True),
    Column('due_date', Date, nullable=False),
    Column('is_done', Boolean, nullable=False, server_default=text('false')),
    Column('completed_at', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_todos_user_due', 'user_id', 'due_date'),
)

planner_entries = Table(
    'planner_entries',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('user_id', String(100), nullable=False),
    Column('p_date', Date, nullable=False),
    Column('title', Text, nullable=False),
    Column('start_minutes', Integer, nullable=False),
    Column('end_minutes', Integer, nullable=False),
    Column('notes', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    CheckConstraint('end_minutes > start_minutes', name='ck_planner_entries_range'),
    Index('idx_planner_entries_user_date', 'user_id', 'p_date'),
)

REQUIRED_TABLES = [t.name for t in metadata.sorted_tables]
