"""Per-record write policies shared by bulk ingestion and event callbacks."""

from __future__ import annotations

import enum
import typing as typ

import msgspec
from sqlalchemy.exc import SQLAlchemyError

from shopsync.storage.errors import DuplicateRecordError
from shopsync.storage.models import ResourceKind
from shopsync.upstream.errors import ErrorKind

from .models import (
    CustomerPayload,
    OrderPayload,
    ProductPayload,
    decode_payload,
    raw_record_id,
)

if typ.TYPE_CHECKING:
    from shopsync.storage.store import RecordStore

    from .models import ResourcePayload


class RecordWriteError(Exception):
    """A single record could not be decoded or written.

    Pipelines always recover from this error by recording its message.
    """

    kind = ErrorKind.RECORD_WRITE

    def __init__(self, resource: ResourceKind, record_id: str, cause: str) -> None:
        """Describe the failed record as ``"<kind> <id>: <cause>"``."""
        self.resource = resource
        self.record_id = record_id
        super().__init__(f"{resource} {record_id}: {cause}")

    @classmethod
    def from_exception(
        cls, resource: ResourceKind, record_id: str, exc: BaseException
    ) -> RecordWriteError:
        """Wrap the exception that failed the write."""
        return cls(resource, record_id, f"{type(exc).__name__}: {exc}")


class OrderWritePolicy(enum.StrEnum):
    """How an order write treats an id that is already stored.

    Bulk ingestion never overwrites an existing order; event callbacks for
    order updates overwrite it.
    """

    INSERT_IF_ABSENT = "insert_if_absent"
    UPSERT = "upsert"


class WriteOutcome(enum.StrEnum):
    """Result of a successful per-record write."""

    WRITTEN = "written"
    SKIPPED = "skipped"


_RECOVERABLE_ERRORS = (msgspec.ValidationError, ValueError, SQLAlchemyError)


class RecordWriter:
    """Apply resource-specific write policies against a :class:`RecordStore`."""

    def __init__(self, store: RecordStore) -> None:
        """Bind the writer to ``store``."""
        self._store = store

    async def write_raw(
        self,
        tenant_id: str,
        kind: ResourceKind,
        raw: typ.Mapping[str, typ.Any],
        *,
        order_policy: OrderWritePolicy = OrderWritePolicy.INSERT_IF_ABSENT,
    ) -> WriteOutcome:
        """Decode and write one raw upstream record.

        Raises
        ------
        RecordWriteError
            If the record fails to decode or the store rejects the write.

        """
        record_id = raw_record_id(raw)
        try:
            payload = decode_payload(kind, raw)
            return await self.write(tenant_id, payload, order_policy=order_policy)
        except _RECOVERABLE_ERRORS as exc:
            raise RecordWriteError.from_exception(kind, record_id, exc) from exc

    async def write(
        self,
        tenant_id: str,
        payload: ResourcePayload,
        *,
        order_policy: OrderWritePolicy = OrderWritePolicy.INSERT_IF_ABSENT,
    ) -> WriteOutcome:
        """Dispatch ``payload`` to the write policy for its resource kind."""
        match payload:
            case CustomerPayload():
                await self.upsert_customer(tenant_id, payload)
                return WriteOutcome.WRITTEN
            case ProductPayload():
                await self.upsert_product(tenant_id, payload)
                return WriteOutcome.WRITTEN
            case OrderPayload() if order_policy is OrderWritePolicy.UPSERT:
                await self.upsert_order(tenant_id, payload)
                return WriteOutcome.WRITTEN
            case OrderPayload():
                return await self.insert_order_if_absent(tenant_id, payload)
            case _:
                typ.assert_never(payload)

    async def upsert_customer(self, tenant_id: str, payload: CustomerPayload) -> None:
        """Insert or refresh a customer."""
        await self._store.upsert(
            ResourceKind.CUSTOMER,
            payload.record_id,
            payload.to_fields(),
            insert_only={"tenant_id": tenant_id},
        )

    async def upsert_product(self, tenant_id: str, payload: ProductPayload) -> None:
        """Insert or refresh a product."""
        await self._store.upsert(
            ResourceKind.PRODUCT,
            payload.record_id,
            payload.to_fields(),
            insert_only={"tenant_id": tenant_id},
        )

    async def resolve_customer(self, payload: OrderPayload) -> str | None:
        """Return the order's customer id if that customer is stored.

        A reference to a customer that has not been ingested (or never will
        be) resolves to ``None`` instead of failing the order.
        """
        customer_ref = payload.customer_ref
        if customer_ref is None:
            return None
        if await self._store.exists(ResourceKind.CUSTOMER, customer_ref):
            return customer_ref
        return None

    async def insert_order_if_absent(
        self, tenant_id: str, payload: OrderPayload
    ) -> WriteOutcome:
        """Insert a new order; an order already stored is left untouched."""
        if await self._store.exists(ResourceKind.ORDER, payload.record_id):
            return WriteOutcome.SKIPPED
        fields = payload.to_fields(await self.resolve_customer(payload))
        try:
            await self._store.insert(
                ResourceKind.ORDER,
                payload.record_id,
                {**fields, **_order_creation_fields(tenant_id, payload)},
            )
        except DuplicateRecordError:
            return WriteOutcome.SKIPPED
        return WriteOutcome.WRITTEN

    async def upsert_order(self, tenant_id: str, payload: OrderPayload) -> None:
        """Insert or overwrite an order."""
        await self._store.upsert(
            ResourceKind.ORDER,
            payload.record_id,
            payload.to_fields(await self.resolve_customer(payload)),
            insert_only=_order_creation_fields(tenant_id, payload),
        )


def _order_creation_fields(tenant_id: str, payload: OrderPayload) -> dict[str, typ.Any]:
    fields: dict[str, typ.Any] = {"tenant_id": tenant_id}
    created_at = payload.created()
    if created_at is not None:
        fields["created_at"] = created_at
    return fields
