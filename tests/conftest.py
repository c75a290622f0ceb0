from typing import AsyncGenerator, Dict

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from registrar.core.enums import EntityType
from registrar.db.session import create_tables
from registrar.records import service as records
from registrar.store.service import SQLAlchemyEntityStore


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, future=True, poolclass=StaticPool)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest.fixture()
def store(db_session: AsyncSession) -> SQLAlchemyEntityStore:
    return SQLAlchemyEntityStore(db_session)


async def _create(store: SQLAlchemyEntityStore, entity_type: EntityType, payload: dict) -> str:
    result = await records.create_record(store, entity_type, payload)
    assert result.ok, result.errors
    return result.identity


@pytest.fixture()
async def graph(store: SQLAlchemyEntityStore) -> Dict[str, str]:
    """Nursing course, IT course, one student, subject T125 and enrollment 61."""
    nursing = await _create(store, EntityType.COURSE, {"Course_ID": 101, "Name": "Nursing", "Department": "Nursing"})
    it = await _create(
        store, EntityType.COURSE, {"Course_ID": 102, "Name": "Information Technology", "Department": "Technology"}
    )
    student = await _create(
        store,
        EntityType.STUDENT,
        {"Student_ID": 1, "Last_Name": "Aranas", "First_Name": "Bennedict", "Middle_Initial": "S", "City": "Malaybalay"},
    )
    subject = await _create(
        store,
        EntityType.SUBJECT,
        {"Subject_Code": "T125", "Name": "Intro To Computing", "Units": 3, "FK_Course_ID": it},
    )
    enrollment = await _create(
        store,
        EntityType.ENROLLMENT,
        {"Enrollment_ID": 61, "Year_Level": 1, "FK_Course_ID": nursing, "FK_Student_ID": student},
    )
    return {
        "nursing": nursing,
        "it": it,
        "student": student,
        "subject": subject,
        "enrollment": enrollment,
    }
