"""Pytest bootstrap configuration.

Environment is pinned before application modules are imported so settings
resolve to an in-memory database and simulated providers.
"""
import functools
import os

for _var in ("ASAAS__API_KEY", "LYTEX__CLIENT_ID", "LYTEX__CLIENT_SECRET", "PAYMENT__DEFAULT_PROVIDER"):
    os.environ.pop(_var, None)
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from infrastructure.models import Base  # noqa: E402
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork  # noqa: E402


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def uow_factory(session_factory):
    return functools.partial(SQLAlchemyUnitOfWork, session_factory)


@pytest.fixture
def gateway_registry():
    """Snapshot the provider registry and restore it after the test."""
    from infrastructure.external.payments import _aliases, _factories, _instances

    saved = (dict(_factories), dict(_aliases), dict(_instances))
    _instances.clear()
    yield
    _factories.clear()
    _factories.update(saved[0])
    _aliases.clear()
    _aliases.update(saved[1])
    _instances.clear()
    _instances.update(saved[2])
