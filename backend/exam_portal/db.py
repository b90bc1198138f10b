from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from fastapi import Depends
from dotenv import load_dotenv
import os
from sqlalchemy.orm import DeclarativeBase

load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./exam_portal.db")
SCHEMA_SEARCH_PATH = os.getenv("SCHEMA_SEARCH_PATH")
SQL_ECHO = os.getenv("SQL_ECHO", "").lower() in ("1", "true", "yes")

# JSONB on PostgreSQL, plain JSON everywhere else (sqlite in dev/tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


def _connect_args(url: str) -> dict:
    # search_path is an asyncpg server setting; other drivers reject it
    if SCHEMA_SEARCH_PATH and url.startswith("postgresql+asyncpg"):
        return {"server_settings": {"search_path": SCHEMA_SEARCH_PATH}}
    return {}


engine = create_async_engine(
    DATABASE_URL,
    connect_args=_connect_args(DATABASE_URL),
    echo=SQL_ECHO,
)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():

    from exam_portal.models import user_model, test_model, progress_model, result_model

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    from exam_portal.models.user_model import User
    from fastapi_users.db import SQLAlchemyUserDatabase
    yield SQLAlchemyUserDatabase(session, User)
