"""
Pytest fixtures: an in-memory SQLite database per test, a service-level
session, and an HTTP client against the app with the session overridden.
"""
import uuid
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from exam_portal.app import app
from exam_portal.db import Base, get_async_session
from exam_portal.models.user_model import User
from exam_portal.models import test_model, progress_model, result_model  # noqa: F401  (register tables)


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def session_maker():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


async def _make_admin(session: AsyncSession, email: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email,
        hashed_password="not-used",
        is_active=True,
        is_superuser=False,
        is_verified=True,
        full_name="Admin",
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin(db_session) -> User:
    return await _make_admin(db_session, "grader@example.com")


@pytest_asyncio.fixture
async def other_admin(db_session) -> User:
    return await _make_admin(db_session, "other-grader@example.com")


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:

    async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _auth_headers(client: AsyncClient, email: str) -> dict:
    password = "S3cret-pass!"
    res = await client.post("/auth/register", json={"email": email, "password": password, "full_name": "Admin"})
    assert res.status_code == 201, res.text
    res = await client.post("/auth/jwt/login", data={"username": email, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest_asyncio.fixture
async def admin_headers(client) -> dict:
    return await _auth_headers(client, "owner@example.com")


@pytest_asyncio.fixture
async def other_admin_headers(client) -> dict:
    return await _auth_headers(client, "intruder@example.com")


@pytest.fixture
def scenario_test_data() -> dict[str, Any]:
    """One section: two 1-point mcqs (keys 0 and 1) and a 5-point descriptive question."""
    return {
        "title": "Scenario",
        "description": "two mcqs and an essay",
        "duration": 30,
        "sections": [
            {
                "title": "Part A",
                "questions": [
                    {"question_type": "mcq", "question_text": "Pick A", "options": ["A", "B"], "correct_answer": 0},
                    {"question_type": "mcq", "question_text": "Pick B", "options": ["A", "B"], "correct_answer": 1},
                    {"question_type": "descriptive", "question_text": "Explain", "points": 5, "model_answer": "Because"},
                ],
            }
        ],
    }


@pytest.fixture
def mixed_test_data() -> dict[str, Any]:
    """Two sections covering every question type plus a coding question."""
    return {
        "title": "Mixed",
        "duration": 60,
        "sections": [
            {
                "title": "Objective",
                "questions": [
                    {"question_type": "mcq", "question_text": "2+2?", "options": ["3", "4"], "correct_answer": 1, "points": 2},
                    {"question_type": "true-false", "question_text": "Sky is blue", "correct_answer": 0},
                    {"question_type": "fill-blank", "question_text": "Primary ___", "acceptable_answers": ["Color", "Colour"]},
                ],
            },
            {
                "title": "Subjective",
                "questions": [
                    {"question_type": "descriptive", "question_text": "Why?", "points": 4},
                ],
                "coding_questions": [
                    {
                        "title": "Echo",
                        "description": "print input",
                        "language": "python",
                        "allowed_languages": ["python", "javascript"],
                        "test_cases": [
                            {"input": "1", "expected_output": "1", "weight": 2},
                            {"input": "2", "expected_output": "2", "weight": 3},
                        ],
                    }
                ],
            },
        ],
    }
