import os
import tempfile
import warnings
from decimal import Decimal
from uuid import uuid4

import pytest

# Set environment variables BEFORE importing app modules
_DB_DIR = tempfile.mkdtemp(prefix="wishfund-tests-")
os.environ["DATABASE_DSN"] = f"sqlite+aiosqlite:///{_DB_DIR}/startup.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-32-chars-minimum!!"
os.environ["ENVIRONMENT"] = "local"

warnings.filterwarnings("ignore", category=DeprecationWarning)

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from wishfund.db.session import Base, get_db, install_sqlite_write_lock
from wishfund.main import app
from wishfund.models import models as models_module
from wishfund.models.models import User, Wish
from wishfund.core.security import get_password_hash


def pytest_configure(config):
    warnings.filterwarnings("ignore", category=DeprecationWarning)


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _build_engine(db_path):
    _ = models_module
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    install_sqlite_write_lock(engine)
    return engine


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a fresh file database, for service-level tests."""
    engine = _build_engine(tmp_path / "services.db")
    yield async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    engine.sync_engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    async def _make_user(username: str | None = None) -> User:
        username = username or f"user-{uuid4().hex[:8]}"
        async with session_factory() as session:
            user = User(
                username=username,
                email=f"{username}@example.com",
                hashed_password=get_password_hash("Test1234!"),
            )
            session.add(user)
            await session.commit()
            return user

    return _make_user


@pytest.fixture(autouse=True)
def api_db_override(tmp_path):
    engine = _build_engine(tmp_path / "api.db")
    async_session = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()
    engine.sync_engine.dispose()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_wish(session_factory):
    async def _make_wish(owner: User, price: str = "100.00", name: str = "Espresso machine") -> Wish:
        async with session_factory() as session:
            wish = Wish(
                owner_id=owner.id,
                name=name,
                link="https://shop.example.com/item",
                image="https://cdn.example.com/item.jpg",
                price=Decimal(price),
                copied_count=0,
            )
            session.add(wish)
            await session.commit()
            return wish

    return _make_wish
