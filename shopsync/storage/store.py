"""Record store used by ingestion pipelines and event-callback writes.

The ingestion core depends only on the :class:`RecordStore` protocol. The
SQLAlchemy implementation opens one session per operation, so every write is
atomic on its own and a failed record never rolls back its neighbours.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from shopsync.common.time import utcnow

from .errors import DuplicateRecordError, UnknownFieldError
from .models import RESOURCE_MODELS, ResourceKind

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.orm import InstrumentedAttribute

    from .models import ResourceModel

    type SessionFactory = async_sessionmaker[AsyncSession]

type Fields = typ.Mapping[str, typ.Any]


class UpsertOutcome(enum.StrEnum):
    """Whether an upsert created a new row or updated an existing one."""

    CREATED = "created"
    UPDATED = "updated"


class AggregateFunction(enum.StrEnum):
    """Aggregations supported by :meth:`RecordStore.aggregate`."""

    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    COUNT = "count"


@dc.dataclass(frozen=True, slots=True)
class GroupRow:
    """One bucket of a :meth:`RecordStore.group_by` query."""

    key: typ.Any
    count: int
    total: float


class RecordStore(typ.Protocol):
    """Abstract persistence interface consumed by the ingestion core."""

    async def upsert(
        self,
        kind: ResourceKind,
        record_id: str,
        fields: Fields,
        *,
        insert_only: Fields | None = None,
    ) -> UpsertOutcome:
        """Insert the record or update ``fields`` in place.

        ``insert_only`` values (ownership, creation time) are written only
        when the record is created.
        """
        ...

    async def insert(self, kind: ResourceKind, record_id: str, fields: Fields) -> None:
        """Insert the record; raise :class:`DuplicateRecordError` if it exists."""
        ...

    async def find_by_id(
        self, kind: ResourceKind, record_id: str
    ) -> dict[str, typ.Any] | None:
        """Return the stored columns for ``record_id`` or ``None``."""
        ...

    async def exists(self, kind: ResourceKind, record_id: str) -> bool:
        """Return whether ``record_id`` is stored."""
        ...

    async def count(self, kind: ResourceKind, *, tenant_id: str | None = None) -> int:
        """Count stored records, optionally for one tenant."""
        ...

    async def aggregate(
        self,
        kind: ResourceKind,
        field: str,
        *,
        function: AggregateFunction = AggregateFunction.SUM,
        tenant_id: str | None = None,
    ) -> float | None:
        """Aggregate one numeric column."""
        ...

    async def group_by(  # noqa: PLR0913
        self,
        kind: ResourceKind,
        by: str,
        *,
        field: str,
        tenant_id: str | None = None,
        limit: int | None = None,
    ) -> list[GroupRow]:
        """Group records by ``by`` and total ``field``, largest total first."""
        ...


def _column(model: ResourceModel, name: str) -> InstrumentedAttribute[typ.Any]:
    if name not in model.__table__.columns:
        raise UnknownFieldError(model.__tablename__, [name])
    return getattr(model, name)


def _check_fields(model: ResourceModel, fields: Fields) -> None:
    unknown = [name for name in fields if name not in model.__table__.columns]
    if unknown:
        raise UnknownFieldError(model.__tablename__, unknown)


def _as_dict(row: object, model: ResourceModel) -> dict[str, typ.Any]:
    return {column.key: getattr(row, column.key) for column in model.__table__.columns}


class SqlAlchemyRecordStore:
    """:class:`RecordStore` backed by an async SQLAlchemy session factory."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Store the session factory used for every operation."""
        self._session_factory = session_factory

    async def upsert(
        self,
        kind: ResourceKind,
        record_id: str,
        fields: Fields,
        *,
        insert_only: Fields | None = None,
    ) -> UpsertOutcome:
        """Insert or update ``record_id``, refreshing ``updated_at``.

        A concurrent insert of the same id surfaces as an ``IntegrityError``
        on commit; the write is then retried once as an update.
        """
        model = RESOURCE_MODELS[kind]
        extra = dict(insert_only or {})
        _check_fields(model, {**fields, **extra})
        try:
            return await self._upsert_once(model, record_id, fields, extra)
        except IntegrityError:
            return await self._upsert_once(model, record_id, fields, extra)

    async def _upsert_once(
        self,
        model: ResourceModel,
        record_id: str,
        fields: Fields,
        insert_only: Fields,
    ) -> UpsertOutcome:
        async with self._session_factory() as session, session.begin():
            existing = await session.get(model, record_id)
            if existing is None:
                session.add(model(id=record_id, **{**insert_only, **fields}))
                return UpsertOutcome.CREATED
            for name, value in fields.items():
                setattr(existing, name, value)
            existing.updated_at = utcnow()
            return UpsertOutcome.UPDATED

    async def insert(self, kind: ResourceKind, record_id: str, fields: Fields) -> None:
        """Insert ``record_id``; an existing id raises ``DuplicateRecordError``."""
        model = RESOURCE_MODELS[kind]
        _check_fields(model, fields)
        try:
            async with self._session_factory() as session, session.begin():
                session.add(model(id=record_id, **fields))
        except IntegrityError as exc:
            if await self.exists(kind, record_id):
                raise DuplicateRecordError(kind, record_id) from exc
            raise

    async def find_by_id(
        self, kind: ResourceKind, record_id: str
    ) -> dict[str, typ.Any] | None:
        """Return the stored columns for ``record_id`` or ``None``."""
        model = RESOURCE_MODELS[kind]
        async with self._session_factory() as session:
            row = await session.get(model, record_id)
            return None if row is None else _as_dict(row, model)

    async def exists(self, kind: ResourceKind, record_id: str) -> bool:
        """Return whether ``record_id`` is stored."""
        model = RESOURCE_MODELS[kind]
        async with self._session_factory() as session:
            found = await session.scalar(
                select(model.id).where(model.id == record_id).limit(1)
            )
            return found is not None

    async def count(self, kind: ResourceKind, *, tenant_id: str | None = None) -> int:
        """Count stored records, optionally for one tenant."""
        model = RESOURCE_MODELS[kind]
        stmt = select(func.count()).select_from(model)
        if tenant_id is not None:
            stmt = stmt.where(model.tenant_id == tenant_id)
        async with self._session_factory() as session:
            return int(await session.scalar(stmt) or 0)

    async def aggregate(
        self,
        kind: ResourceKind,
        field: str,
        *,
        function: AggregateFunction = AggregateFunction.SUM,
        tenant_id: str | None = None,
    ) -> float | None:
        """Aggregate ``field``; returns ``None`` when no rows match."""
        model = RESOURCE_MODELS[kind]
        column = _column(model, field)
        sql_function = getattr(func, function.value)
        stmt = select(sql_function(column))
        if tenant_id is not None:
            stmt = stmt.where(model.tenant_id == tenant_id)
        async with self._session_factory() as session:
            value = await session.scalar(stmt)
        return None if value is None else float(value)

    async def group_by(  # noqa: PLR0913
        self,
        kind: ResourceKind,
        by: str,
        *,
        field: str,
        tenant_id: str | None = None,
        limit: int | None = None,
    ) -> list[GroupRow]:
        """Group by ``by`` (skipping null keys) and total ``field`` per group."""
        model = RESOURCE_MODELS[kind]
        key_column = _column(model, by)
        value_column = _column(model, field)
        total = func.coalesce(func.sum(value_column), 0)
        stmt = (
            select(key_column, func.count(), total)
            .where(key_column.is_not(None))
            .group_by(key_column)
            .order_by(total.desc())
        )
        if tenant_id is not None:
            stmt = stmt.where(model.tenant_id == tenant_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [
            GroupRow(key=key, count=int(count), total=float(value))
            for key, count, value in rows
        ]
