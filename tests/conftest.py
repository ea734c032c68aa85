import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["GEMINI_API_KEY"] = ""

from typing import AsyncGenerator, Dict, List

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from edupay.auth.models import User
from edupay.auth.security import create_access_token
from edupay.core.domain import ActivityLog, Actor, PaymentRecord, Student
from edupay.core.exceptions import PersistenceError
from edupay.core.store import LedgerPersistence, LedgerSnapshot, LedgerStore
from edupay.db.persistence import SqlLedgerPersistence
from edupay.db.seed import seed_demo_data
from edupay.db.session import Base, get_db
from edupay.main import app

from factories import class10_structure, make_payment, make_student


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"



class FakePersistence(LedgerPersistence):
    """In-memory persistence that records writes and can be told to fail."""

    def __init__(self, snapshot: LedgerSnapshot = None) -> None:
        self.snapshot = snapshot or LedgerSnapshot()
        self.fail = False
        self.writes: List[tuple] = []

    async def load(self) -> LedgerSnapshot:
        return self.snapshot

    async def _record(self, *write) -> None:
        if self.fail:
            raise PersistenceError("database unavailable")
        self.writes.append(write)

    async def save_payment(self, student: Student, payment: PaymentRecord, activity: ActivityLog) -> None:
        await self._record("payment", student, payment, activity)

    async def save_students(self, students, activity) -> None:
        await self._record("students", list(students), activity)

    async def save_structure(self, structure, students, activity) -> None:
        await self._record("structure", structure, list(students), activity)

    async def delete_structure(self, structure_id, students, activity) -> None:
        await self._record("delete_structure", structure_id, list(students), activity)

    async def save_activity(self, activity) -> None:
        await self._record("activity", activity)


@pytest.fixture()
def actor() -> Actor:
    return Actor(user_id="u-test", name="Test Clerk")


@pytest.fixture()
def fake_persistence() -> FakePersistence:
    return FakePersistence(
        LedgerSnapshot(
            students=[make_student(status="PARTIAL")],
            structures=[class10_structure()],
            # Opening receipt matching st1.total_paid
            payments=[make_payment(10000, payment_id="pay-opening")],
        )
    )


@pytest.fixture()
async def store(fake_persistence: FakePersistence) -> LedgerStore:
    ledger = LedgerStore(fake_persistence)
    await ledger.hydrate()
    return ledger


# --- Database-backed fixtures ---
@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory SQLite database per test; StaticPool keeps one shared connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture()
async def ledger(session_factory: async_sessionmaker) -> LedgerStore:
    """Ledger hydrated from the seeded demo database."""
    await seed_demo_data(session_factory)
    store = LedgerStore(SqlLedgerPersistence(session_factory))
    await store.hydrate()
    return store


@pytest.fixture()
async def client(session_factory: async_sessionmaker, ledger: LedgerStore) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app, with the test ledger and database installed."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.ledger = ledger
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.ledger = None


async def _headers_for(session_factory: async_sessionmaker, email: str) -> Dict[str, str]:
    async with session_factory() as db:
        user = (await db.execute(select(User).where(User.email == email))).scalar_one()
    token = create_access_token(subject={"user_id": user.id, "role": user.role, "name": user.name})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
async def admin_headers(session_factory, ledger) -> Dict[str, str]:
    return await _headers_for(session_factory, "admin@school.com")


@pytest.fixture()
async def staff_headers(session_factory, ledger) -> Dict[str, str]:
    return await _headers_for(session_factory, "staff@school.com")


@pytest.fixture()
async def accounts_headers(session_factory, ledger) -> Dict[str, str]:
    return await _headers_for(session_factory, "accounts@school.com")
