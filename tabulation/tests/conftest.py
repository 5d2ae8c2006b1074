"""
Shared fixtures: in-memory store, seeded event and HTTP client.
"""
from decimal import Decimal
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tabulation.orm import (
    Administrator,
    Award,
    AwardType,
    Base,
    Contest,
    Criterion,
    Division,
    Event,
    Judge,
    JudgeAssignment,
    JudgeRole,
    Participant,
    ScoringType,
    Tabulator,
)
from tabulation.realtime.in_memory_adapter import InMemoryAdapter
from tabulation.services.row_store import RowStore
from tabulation.services.session_service import hash_password
from tabulation.tests.helpers import PASSWORD

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def broadcaster():
    return InMemoryAdapter()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session, broadcaster) -> RowStore:
    return RowStore(db_session, broadcaster)


@pytest.fixture(scope="session")
def password_hash() -> str:
    # bcrypt is slow; hash once for every seeded account
    return hash_password(PASSWORD)


@pytest_asyncio.fixture
async def seed(db_session, password_hash) -> SimpleNamespace:
    """
    One active event with:
    - "Talent" percentage contest: criteria Poise (40, category Talent)
      and Q&A (60); participants 1, 2 (division A) and 3 (division B)
    - "Sprint" points contest: criteria Speed (max 30) and Form (max 20);
      participant 4
    - judges A and B plus a chairman, all assigned to Talent; judge A
      is also assigned to Sprint
    - a criteria award on Poise and a special award
    Plus an inactive second event with its own judge.
    """
    event = Event(name="Summer Pageant", code="SP2026", year=2026, is_active=True)
    other_event = Event(name="Winter Pageant", code="WP2026", year=2026, is_active=False)
    db_session.add_all([event, other_event])
    await db_session.flush()

    talent = Contest(event_id=event.id, name="Talent", contest_code="TAL", scoring_type=ScoringType.PERCENTAGE)
    sprint = Contest(event_id=event.id, name="Sprint", contest_code="SPR", scoring_type=ScoringType.POINTS)
    db_session.add_all([talent, sprint])
    await db_session.flush()

    poise = Criterion(contest_id=talent.id, name="Poise", percentage=Decimal("40"), category="Talent")
    qa = Criterion(contest_id=talent.id, name="Q&A", percentage=Decimal("60"))
    speed = Criterion(contest_id=sprint.id, name="Speed", percentage=Decimal("30"))
    form = Criterion(contest_id=sprint.id, name="Form", percentage=Decimal("20"))
    division_a = Division(event_id=event.id, name="Juniors")
    division_b = Division(event_id=event.id, name="Seniors")
    db_session.add_all([poise, qa, speed, form, division_a, division_b])
    await db_session.flush()

    p1 = Participant(contest_id=talent.id, division_id=division_a.id, full_name="Ana Cruz", contestant_number="1")
    p2 = Participant(contest_id=talent.id, division_id=division_a.id, full_name="Bea Lim", contestant_number="2")
    p3 = Participant(contest_id=talent.id, division_id=division_b.id, full_name="Cara Diaz", contestant_number="3")
    p4 = Participant(contest_id=sprint.id, division_id=division_a.id, full_name="Dina Reyes", contestant_number="4")
    db_session.add_all([p1, p2, p3, p4])

    judge_a = Judge(event_id=event.id, full_name="Judge A", username="judge_a",
                    password_hash=password_hash, role=JudgeRole.JUDGE)
    judge_b = Judge(event_id=event.id, full_name="Judge B", username="judge_b",
                    password_hash=password_hash, role=JudgeRole.JUDGE)
    chairman = Judge(event_id=event.id, full_name="Chair", username="chair",
                     password_hash=password_hash, role=JudgeRole.CHAIRMAN)
    outsider = Judge(event_id=other_event.id, full_name="Judge W", username="judge_w",
                     password_hash=password_hash, role=JudgeRole.JUDGE)
    tabulator = Tabulator(event_id=event.id, full_name="Tab", username="tab", password_hash=password_hash)
    admin = Administrator(full_name="Admin", username="admin", password_hash=password_hash)
    db_session.add_all([judge_a, judge_b, chairman, outsider, tabulator, admin])
    await db_session.flush()

    db_session.add_all([
        JudgeAssignment(judge_id=judge_a.id, contest_id=talent.id),
        JudgeAssignment(judge_id=judge_b.id, contest_id=talent.id),
        JudgeAssignment(judge_id=chairman.id, contest_id=talent.id),
        JudgeAssignment(judge_id=judge_a.id, contest_id=sprint.id),
    ])

    best_talent = Award(event_id=event.id, name="Best in Talent", award_type=AwardType.CRITERIA,
                        criteria_ids=[poise.id])
    congeniality = Award(event_id=event.id, contest_id=talent.id, name="Miss Congeniality",
                         award_type=AwardType.SPECIAL)
    db_session.add_all([best_talent, congeniality])
    await db_session.commit()

    return SimpleNamespace(
        event_id=event.id,
        other_event_id=other_event.id,
        talent_id=talent.id,
        sprint_id=sprint.id,
        poise_id=poise.id,
        qa_id=qa.id,
        speed_id=speed.id,
        form_id=form.id,
        division_a_id=division_a.id,
        division_b_id=division_b.id,
        p1_id=p1.id,
        p2_id=p2.id,
        p3_id=p3.id,
        p4_id=p4.id,
        judge_a_id=judge_a.id,
        judge_b_id=judge_b.id,
        chairman_id=chairman.id,
        outsider_id=outsider.id,
        tabulator_id=tabulator.id,
        admin_id=admin.id,
        best_talent_id=best_talent.id,
        congeniality_id=congeniality.id,
    )


@pytest_asyncio.fixture
async def client(session_factory, broadcaster, seed) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with every request bound to the test database."""
    from tabulation.database import get_store
    from tabulation.main import app
    from tabulation.routes.auth import limiter

    async def override_get_store():
        async with session_factory() as session:
            yield RowStore(session, broadcaster)

    app.dependency_overrides[get_store] = override_get_store
    limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()

