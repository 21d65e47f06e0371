"""Tenant registry service.

Tenants are created when a storefront completes the OAuth exchange and are
updated when their credential rotates. The sync core only reads them.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import select

from shopsync.common.time import utcnow
from shopsync.storage.models import TenantRecord

from .errors import CredentialDecryptError, TenantNotFoundError
from .models import TenantInfo, UnreadableTenant

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from .crypto import CredentialCipher

    type SessionFactory = async_sessionmaker[AsyncSession]


def _normalize_domain(shop_domain: str) -> str:
    normalized = shop_domain.strip().lower()
    if not normalized:
        msg = "shop domain must be non-empty"
        raise ValueError(msg)
    return normalized


class TenantService:
    """Register tenants and load them with decrypted credentials.

    Parameters
    ----------
    session_factory:
        Async session factory for the tenants table.
    cipher:
        Cipher used to seal access tokens at rest.

    """

    def __init__(
        self, session_factory: SessionFactory, cipher: CredentialCipher
    ) -> None:
        """Configure the service with its session factory and cipher."""
        self._session_factory = session_factory
        self._cipher = cipher

    def _to_info(self, record: TenantRecord) -> TenantInfo:
        return TenantInfo(
            id=record.id,
            shop_domain=record.shop_domain,
            access_token=self._cipher.decrypt(record.access_token_encrypted),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def register_or_update(
        self, shop_domain: str, access_token: str
    ) -> TenantInfo:
        """Create the tenant for ``shop_domain`` or rotate its access token."""
        domain = _normalize_domain(shop_domain)
        if not access_token.strip():
            msg = "access token must be non-empty"
            raise ValueError(msg)
        sealed = self._cipher.encrypt(access_token)
        async with self._session_factory() as session, session.begin():
            record = await session.scalar(
                select(TenantRecord).where(TenantRecord.shop_domain == domain)
            )
            if record is None:
                record = TenantRecord(shop_domain=domain, access_token_encrypted=sealed)
                session.add(record)
            else:
                record.access_token_encrypted = sealed
                record.updated_at = utcnow()
            await session.flush()
            return self._to_info(record)

    async def get_by_id(self, tenant_id: str) -> TenantInfo | None:
        """Return the tenant with ``tenant_id`` or ``None``."""
        async with self._session_factory() as session:
            record = await session.get(TenantRecord, tenant_id)
            return None if record is None else self._to_info(record)

    async def get_by_shop_domain(self, shop_domain: str) -> TenantInfo | None:
        """Return the tenant for ``shop_domain`` or ``None``."""
        domain = _normalize_domain(shop_domain)
        async with self._session_factory() as session:
            record = await session.scalar(
                select(TenantRecord).where(TenantRecord.shop_domain == domain)
            )
            return None if record is None else self._to_info(record)

    async def require_by_shop_domain(self, shop_domain: str) -> TenantInfo:
        """Return the tenant for ``shop_domain``.

        Raises
        ------
        TenantNotFoundError
            If no tenant is registered for the shop.

        """
        tenant = await self.get_by_shop_domain(shop_domain)
        if tenant is None:
            raise TenantNotFoundError.for_shop(shop_domain)
        return tenant

    async def list_all(self) -> list[TenantInfo]:
        """Return every tenant ordered by creation time."""
        async with self._session_factory() as session:
            records = await session.scalars(
                select(TenantRecord).order_by(
                    TenantRecord.created_at, TenantRecord.shop_domain
                )
            )
            return [self._to_info(record) for record in records]

    async def load_all(self) -> list[TenantInfo | UnreadableTenant]:
        """Return every tenant, isolating credentials that fail to decrypt.

        Unlike :meth:`list_all`, a row whose token cannot be decrypted is
        returned as an :class:`UnreadableTenant` instead of failing the whole
        listing.
        """
        async with self._session_factory() as session:
            records = await session.scalars(
                select(TenantRecord).order_by(
                    TenantRecord.created_at, TenantRecord.shop_domain
                )
            )
            loaded: list[TenantInfo | UnreadableTenant] = []
            for record in records:
                try:
                    loaded.append(self._to_info(record))
                except CredentialDecryptError as exc:
                    loaded.append(
                        UnreadableTenant(
                            id=record.id, shop_domain=record.shop_domain, error=exc
                        )
                    )
            return loaded

    async def update_access_token(
        self, tenant_id: str, access_token: str
    ) -> TenantInfo:
        """Rotate the credential of an existing tenant."""
        if not access_token.strip():
            msg = "access token must be non-empty"
            raise ValueError(msg)
        async with self._session_factory() as session, session.begin():
            record = await session.get(TenantRecord, tenant_id)
            if record is None:
                raise TenantNotFoundError(tenant_id)
            record.access_token_encrypted = self._cipher.encrypt(access_token)
            record.updated_at = utcnow()
            await session.flush()
            return self._to_info(record)

    async def delete(self, tenant_id: str) -> None:
        """Remove a tenant.

        Synced records are removed by the ``ON DELETE CASCADE`` foreign keys on
        backends that enforce them.
        """
        async with self._session_factory() as session, session.begin():
            record = await session.get(TenantRecord, tenant_id)
            if record is None:
                raise TenantNotFoundError(tenant_id)
            await session.delete(record)
