"""Unit tests for the SQLAlchemy record store."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest
from sqlalchemy.exc import StatementError

from shopsync.storage import (
    AggregateFunction,
    DuplicateRecordError,
    GroupRow,
    ResourceKind,
    TimezoneAwareRequiredError,
    UnknownFieldError,
    UpsertOutcome,
)

if typ.TYPE_CHECKING:
    from shopsync.storage import SqlAlchemyRecordStore

_TENANT = "tenant-alpha"
_OTHER = "tenant-beta"


async def _seed_orders(store: SqlAlchemyRecordStore) -> None:
    rows = [
        ("1", _TENANT, "c1", 10.0),
        ("2", _TENANT, "c1", 5.5),
        ("3", _TENANT, "c2", 30.0),
        ("4", _TENANT, None, 99.0),
        ("5", _OTHER, "c1", 1000.0),
    ]
    for order_id, tenant_id, customer_id, total in rows:
        await store.insert(
            ResourceKind.ORDER,
            order_id,
            {
                "tenant_id": tenant_id,
                "customer_id": customer_id,
                "total_price": total,
            },
        )


class TestUpsert:
    """Insert-or-update semantics."""

    @pytest.mark.asyncio
    async def test_creates_then_updates(self, store: SqlAlchemyRecordStore) -> None:
        """The first write creates, the second overwrites the given fields."""
        first = await store.upsert(
            ResourceKind.CUSTOMER,
            "101",
            {"email": "a@example.com", "first_name": "Ada"},
            insert_only={"tenant_id": _TENANT},
        )
        second = await store.upsert(
            ResourceKind.CUSTOMER,
            "101",
            {"email": "ada@example.com", "first_name": "Ada"},
            insert_only={"tenant_id": _TENANT},
        )

        assert (first, second) == (UpsertOutcome.CREATED, UpsertOutcome.UPDATED)
        stored = await store.find_by_id(ResourceKind.CUSTOMER, "101")
        assert stored is not None
        assert stored["email"] == "ada@example.com"
        assert await store.count(ResourceKind.CUSTOMER) == 1

    @pytest.mark.asyncio
    async def test_refreshes_updated_at_and_keeps_created_at(
        self, store: SqlAlchemyRecordStore
    ) -> None:
        """Updates bump updated_at; created_at reflects the first write."""
        await store.upsert(
            ResourceKind.PRODUCT,
            "7",
            {"title": "Mug"},
            insert_only={"tenant_id": _TENANT},
        )
        before = await store.find_by_id(ResourceKind.PRODUCT, "7")

        await store.upsert(
            ResourceKind.PRODUCT,
            "7",
            {"title": "Big mug"},
            insert_only={"tenant_id": _TENANT},
        )
        after = await store.find_by_id(ResourceKind.PRODUCT, "7")

        assert before is not None
        assert after is not None
        assert after["title"] == "Big mug"
        assert after["created_at"] == before["created_at"]
        assert after["updated_at"] >= before["updated_at"]

    @pytest.mark.asyncio
    async def test_insert_only_fields_are_not_overwritten(
        self, store: SqlAlchemyRecordStore
    ) -> None:
        """Fields passed as insert_only apply on create and are ignored on update."""
        placed = dt.datetime(2024, 3, 1, 12, 0, tzinfo=dt.UTC)
        await store.upsert(
            ResourceKind.ORDER,
            "900",
            {"total_price": 12.0},
            insert_only={"tenant_id": _TENANT, "created_at": placed},
        )

        await store.upsert(
            ResourceKind.ORDER,
            "900",
            {"total_price": 15.0},
            insert_only={
                "tenant_id": _OTHER,
                "created_at": dt.datetime(2025, 1, 1, tzinfo=dt.UTC),
            },
        )

        stored = await store.find_by_id(ResourceKind.ORDER, "900")
        assert stored is not None
        assert stored["tenant_id"] == _TENANT
        assert stored["created_at"] == placed
        assert stored["total_price"] == 15.0

    @pytest.mark.asyncio
    async def test_unknown_fields_are_rejected(
        self, store: SqlAlchemyRecordStore
    ) -> None:
        """Writes naming columns the table lacks fail before touching the database."""
        with pytest.raises(UnknownFieldError) as exc_info:
            await store.upsert(
                ResourceKind.PRODUCT,
                "1",
                {"title": "x", "colour": "red"},
                insert_only={"tenant_id": _TENANT},
            )

        assert exc_info.value.fields == ["colour"]
        assert not await store.exists(ResourceKind.PRODUCT, "1")

    @pytest.mark.asyncio
    async def test_naive_datetimes_are_rejected(
        self, store: SqlAlchemyRecordStore
    ) -> None:
        """Timestamps must carry a timezone."""
        with pytest.raises(StatementError) as exc_info:
            await store.upsert(
                ResourceKind.ORDER,
                "1",
                {"total_price": 1.0},
                insert_only={
                    "tenant_id": _TENANT,
                    "created_at": dt.datetime(2024, 1, 1),  # noqa: DTZ001
                },
            )

        assert isinstance(exc_info.value.__cause__, TimezoneAwareRequiredError)


class TestInsert:
    """Insert-if-absent primitive."""

    @pytest.mark.asyncio
    async def test_duplicate_insert_raises(self, store: SqlAlchemyRecordStore) -> None:
        """Inserting an existing id raises and leaves the stored row untouched."""
        await store.insert(
            ResourceKind.ORDER, "42", {"tenant_id": _TENANT, "total_price": 1.0}
        )

        with pytest.raises(DuplicateRecordError) as exc_info:
            await store.insert(
                ResourceKind.ORDER, "42", {"tenant_id": _TENANT, "total_price": 2.0}
            )

        assert exc_info.value.record_id == "42"
        stored = await store.find_by_id(ResourceKind.ORDER, "42")
        assert stored is not None
        assert stored["total_price"] == 1.0

    @pytest.mark.asyncio
    async def test_find_and_exists_for_missing_ids(
        self, store: SqlAlchemyRecordStore
    ) -> None:
        """Unknown ids are reported as absent."""
        assert await store.find_by_id(ResourceKind.CUSTOMER, "nope") is None
        assert not await store.exists(ResourceKind.CUSTOMER, "nope")


class TestQueries:
    """Counting, aggregation and grouping."""

    @pytest.mark.asyncio
    async def test_count_scoped_by_tenant(self, store: SqlAlchemyRecordStore) -> None:
        """Counts can be restricted to one tenant."""
        await _seed_orders(store)

        assert await store.count(ResourceKind.ORDER) == 5
        assert await store.count(ResourceKind.ORDER, tenant_id=_TENANT) == 4
        assert await store.count(ResourceKind.PRODUCT) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("function", "expected"),
        [
            (AggregateFunction.SUM, 144.5),
            (AggregateFunction.MIN, 5.5),
            (AggregateFunction.MAX, 99.0),
            (AggregateFunction.COUNT, 4.0),
        ],
    )
    async def test_aggregate(
        self,
        store: SqlAlchemyRecordStore,
        function: AggregateFunction,
        expected: float,
    ) -> None:
        """Aggregates run over one tenant's rows."""
        await _seed_orders(store)

        result = await store.aggregate(
            ResourceKind.ORDER, "total_price", function=function, tenant_id=_TENANT
        )

        assert result == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_aggregate_without_rows_is_none(
        self, store: SqlAlchemyRecordStore
    ) -> None:
        """Summing an empty set returns None rather than zero."""
        assert await store.aggregate(ResourceKind.ORDER, "total_price") is None

    @pytest.mark.asyncio
    async def test_group_by_orders_by_total_and_skips_null_keys(
        self, store: SqlAlchemyRecordStore
    ) -> None:
        """Groups are sorted by descending total; null keys are excluded."""
        await _seed_orders(store)

        rows = await store.group_by(
            ResourceKind.ORDER, "customer_id", field="total_price", tenant_id=_TENANT
        )

        assert rows == [
            GroupRow(key="c2", count=1, total=30.0),
            GroupRow(key="c1", count=2, total=15.5),
        ]

    @pytest.mark.asyncio
    async def test_group_by_limit(self, store: SqlAlchemyRecordStore) -> None:
        """A limit keeps only the top groups."""
        await _seed_orders(store)

        rows = await store.group_by(
            ResourceKind.ORDER, "customer_id", field="total_price", limit=1
        )

        assert rows == [GroupRow(key="c1", count=3, total=1015.5)]

    @pytest.mark.asyncio
    async def test_query_unknown_field(self, store: SqlAlchemyRecordStore) -> None:
        """Aggregating a missing column raises UnknownFieldError."""
        with pytest.raises(UnknownFieldError):
            await store.aggregate(ResourceKind.ORDER, "discount")
