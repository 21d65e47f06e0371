"""Typed payloads and results for storefront ingestion.

Upstream records are converted into a closed set of payload variants before
any write happens. Conversion is lenient about extra keys and strict about the
types of the keys it reads, so a malformed record fails on its own and the
rest of the page carries on.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ

import msgspec

from shopsync.common.time import parse_upstream_datetime
from shopsync.storage.models import ResourceKind
from shopsync.upstream.errors import ErrorKind


def _as_float(raw: str | float | None) -> float | None:
    if raw is None or raw == "":
        return None
    return float(raw)


class CustomerPayload(msgspec.Struct, kw_only=True, frozen=True):
    """Customer fields read from the Admin API."""

    id: int | str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def record_id(self) -> str:
        """Return the upstream id as the store key."""
        return str(self.id)

    def to_fields(self) -> dict[str, typ.Any]:
        """Return column values refreshed on every write."""
        return {
            "email": self.email or "",
            "first_name": self.first_name,
            "last_name": self.last_name,
        }


class OrderCustomerRef(msgspec.Struct, kw_only=True, frozen=True):
    """The ``customer`` object embedded in an order."""

    id: int | str | None = None


class OrderPayload(msgspec.Struct, kw_only=True, frozen=True):
    """Order fields read from the Admin API."""

    id: int | str
    customer: OrderCustomerRef | None = None
    total_price: str | float | None = None
    currency: str | None = None
    order_number: int | str | None = None
    created_at: str | None = None

    @property
    def record_id(self) -> str:
        """Return the upstream id as the store key."""
        return str(self.id)

    @property
    def customer_ref(self) -> str | None:
        """Return the referenced upstream customer id, if the order names one."""
        if self.customer is None or self.customer.id is None:
            return None
        return str(self.customer.id)

    def created(self) -> dt.datetime | None:
        """Return the upstream creation time."""
        return parse_upstream_datetime(self.created_at)

    def to_fields(self, customer_id: str | None) -> dict[str, typ.Any]:
        """Return column values with the resolved customer reference."""
        return {
            "customer_id": customer_id,
            "total_price": _as_float(self.total_price) or 0.0,
            "currency": self.currency or "USD",
            "order_number": (
                None if self.order_number is None else str(self.order_number)
            ),
        }


class ProductVariant(msgspec.Struct, kw_only=True, frozen=True):
    """Variant entry; only the price is read."""

    price: str | float | None = None


class ProductPayload(msgspec.Struct, kw_only=True, frozen=True):
    """Product fields read from the Admin API."""

    id: int | str
    title: str | None = None
    vendor: str | None = None
    variants: list[ProductVariant] = msgspec.field(default_factory=list)

    @property
    def record_id(self) -> str:
        """Return the upstream id as the store key."""
        return str(self.id)

    def to_fields(self) -> dict[str, typ.Any]:
        """Return column values; the price comes from the first variant."""
        price = _as_float(self.variants[0].price) if self.variants else None
        return {"title": self.title or "", "price": price, "vendor": self.vendor}


type ResourcePayload = CustomerPayload | OrderPayload | ProductPayload

_PAYLOAD_TYPES: dict[ResourceKind, type[ResourcePayload]] = {
    ResourceKind.CUSTOMER: CustomerPayload,
    ResourceKind.ORDER: OrderPayload,
    ResourceKind.PRODUCT: ProductPayload,
}


def decode_payload(
    kind: ResourceKind, raw: typ.Mapping[str, typ.Any]
) -> ResourcePayload:
    """Convert one raw upstream record into its payload variant.

    Raises
    ------
    msgspec.ValidationError
        If a field the pipeline reads has the wrong type or ``id`` is missing.

    """
    return msgspec.convert(raw, type=_PAYLOAD_TYPES[kind])


def raw_record_id(raw: typ.Mapping[str, typ.Any]) -> str:
    """Return a printable id for a raw record, even one that failed to decode."""
    value = raw.get("id")
    return "<missing id>" if value is None else str(value)


@dc.dataclass(frozen=True, slots=True)
class IngestionResult:
    """Outcome of one pipeline run for one tenant and resource kind.

    ``records_processed`` counts committed writes only. ``records_skipped``
    counts bulk order writes skipped because the order already existed, so
    ``records_processed + records_skipped + len(errors)`` accounts for every
    record fetched. ``failure`` carries the error kind of a fetch failure
    that stopped the run early.
    """

    kind: ResourceKind
    records_processed: int = 0
    records_skipped: int = 0
    errors: tuple[str, ...] = ()
    duration: dt.timedelta = dt.timedelta(0)
    failure: ErrorKind | None = None

    @property
    def success(self) -> bool:
        """Return ``True`` when no errors were recorded."""
        return not self.errors
