"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shopsync.storage import SqlAlchemyRecordStore, init_storage
from shopsync.tenants import CredentialCipher, TenantService

if typ.TYPE_CHECKING:
    from pathlib import Path

TEST_ENCRYPTION_KEY = "test-encryption-key"


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shopsync.db'}")
    try:
        await init_storage(engine)
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
def store(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlAlchemyRecordStore:
    """Return a record store bound to the test database."""
    return SqlAlchemyRecordStore(session_factory)


@pytest.fixture
def cipher() -> CredentialCipher:
    """Return a credential cipher with a fixed test key."""
    return CredentialCipher(TEST_ENCRYPTION_KEY)


@pytest.fixture
def tenant_service(
    session_factory: async_sessionmaker[AsyncSession], cipher: CredentialCipher
) -> TenantService:
    """Return a tenant service bound to the test database."""
    return TenantService(session_factory, cipher)
