"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests. Mocks Redis, Telegram and Celery.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CELERY_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("ASSIGNMENT_LOCK_ENABLED", "false")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")
os.environ.setdefault("TELEGRAM_CHAT_ID", "")

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from reelflow.db import Base, make_engine, make_session_factory
from reelflow.services.content_repository import ContentRepository
from reelflow.services.team_directory import TeamDirectory
from reelflow.services.workflow_service import WorkflowService
from reelflow.services.workflow_types import (
    ContentItem,
    Person,
    ProductionStage,
    ReviewStatus,
    Role,
    WorkflowPolicy,
)

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
async def db():
    """In-memory SQLite database for tests."""
    engine = make_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = make_session_factory(engine)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def notifier():
    """Records notify() calls instead of sending anything."""
    return MagicMock()


@pytest.fixture
def policy():
    return WorkflowPolicy()


@pytest.fixture
def service(db, notifier, policy):
    return WorkflowService(
        ContentRepository(db), TeamDirectory(db), notifier, policy=policy, clock=lambda: NOW,
    )


@pytest.fixture
async def team(db):
    """One member per role, persisted."""
    directory = TeamDirectory(db)
    members = {}
    for role in (Role.script_writer, Role.videographer, Role.editor, Role.posting_manager, Role.admin):
        members[role] = await directory.create_person(
            email=f"{role.value.lower()}@example.com",
            role=role,
            full_name=role.value.replace("_", " ").title(),
        )
    return members


def make_person(pid: int, role: Role, *, trusted: bool = False, active: bool = True, minutes: int = 0) -> Person:
    return Person(
        id=pid,
        email=f"p{pid}@example.com",
        role=role,
        full_name=f"Person {pid}",
        is_trusted_writer=trusted,
        is_active=active,
        created_at=NOW + timedelta(minutes=minutes),
    )


def make_item(
    *,
    status: ReviewStatus = ReviewStatus.approved,
    stage: ProductionStage | None = ProductionStage.planning,
    author_id: int = 1,
    **changes,
) -> ContentItem:
    return ContentItem(id=10, author_id=author_id, status=status, production_stage=stage, **changes)


ADMIN = make_person(100, Role.admin)
WRITER = make_person(1, Role.script_writer)
VIDEOGRAPHER = make_person(2, Role.videographer)
EDITOR = make_person(3, Role.editor)
POSTER = make_person(4, Role.posting_manager)
