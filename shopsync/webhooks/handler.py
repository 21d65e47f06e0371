"""Write path for inbound storefront event callbacks.

HTTP framing and signature verification happen before these handlers are
called. Each handler resolves the shop to a tenant and applies the same
per-record write policies as bulk ingestion, except that order updates
overwrite the stored order.
"""

from __future__ import annotations

import enum
import typing as typ

from shopsync.ingestion.writers import OrderWritePolicy, RecordWriter, WriteOutcome
from shopsync.logging import get_logger, log_info
from shopsync.storage.models import ResourceKind

from .errors import UnsupportedTopicError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from shopsync.logging import SupportsLog
    from shopsync.storage.store import RecordStore
    from shopsync.tenants.service import TenantService

    type Payload = typ.Mapping[str, typ.Any]
    type CallbackHandler = cabc.Callable[[Payload, str], cabc.Awaitable[WriteOutcome]]

logger = get_logger(__name__)


class CallbackTopic(enum.StrEnum):
    """Callback topics handled by :class:`WebhookIngestionHandler`."""

    ORDERS_CREATE = "orders/create"
    ORDERS_UPDATED = "orders/updated"
    CUSTOMERS_CREATE = "customers/create"
    CUSTOMERS_UPDATE = "customers/update"
    PRODUCTS_CREATE = "products/create"
    PRODUCTS_UPDATE = "products/update"


class WebhookIngestionHandler:
    """Apply verified event-callback payloads to the record store.

    Raises :class:`~shopsync.tenants.errors.TenantNotFoundError` for unknown
    shops and :class:`~shopsync.ingestion.writers.RecordWriteError` for
    payloads that cannot be written.
    """

    def __init__(
        self,
        tenants: TenantService,
        store: RecordStore,
        *,
        log: SupportsLog | None = None,
    ) -> None:
        """Configure the handler with the tenant registry and store."""
        self._tenants = tenants
        self._writer = RecordWriter(store)
        self._logger = log or logger

    async def _apply(
        self,
        kind: ResourceKind,
        payload: Payload,
        shop_domain: str,
        *,
        order_policy: OrderWritePolicy = OrderWritePolicy.UPSERT,
    ) -> WriteOutcome:
        tenant = await self._tenants.require_by_shop_domain(shop_domain)
        outcome = await self._writer.write_raw(
            tenant.id, kind, payload, order_policy=order_policy
        )
        log_info(
            self._logger,
            "Callback %s %s for shop %s: %s",
            kind,
            payload.get("id"),
            shop_domain,
            outcome,
        )
        return outcome

    async def handle_order_create(
        self, payload: Payload, shop_domain: str
    ) -> WriteOutcome:
        """Insert a new order; an order already stored is skipped."""
        return await self._apply(
            ResourceKind.ORDER,
            payload,
            shop_domain,
            order_policy=OrderWritePolicy.INSERT_IF_ABSENT,
        )

    async def handle_order_update(
        self, payload: Payload, shop_domain: str
    ) -> WriteOutcome:
        """Insert or overwrite an order."""
        return await self._apply(ResourceKind.ORDER, payload, shop_domain)

    async def handle_customer_create(
        self, payload: Payload, shop_domain: str
    ) -> WriteOutcome:
        """Insert or refresh a customer."""
        return await self._apply(ResourceKind.CUSTOMER, payload, shop_domain)

    async def handle_customer_update(
        self, payload: Payload, shop_domain: str
    ) -> WriteOutcome:
        """Insert or refresh a customer."""
        return await self._apply(ResourceKind.CUSTOMER, payload, shop_domain)

    async def handle_product_update(
        self, payload: Payload, shop_domain: str
    ) -> WriteOutcome:
        """Insert or refresh a product; also used for product creation."""
        return await self._apply(ResourceKind.PRODUCT, payload, shop_domain)

    def _routes(self) -> dict[CallbackTopic, CallbackHandler]:
        return {
            CallbackTopic.ORDERS_CREATE: self.handle_order_create,
            CallbackTopic.ORDERS_UPDATED: self.handle_order_update,
            CallbackTopic.CUSTOMERS_CREATE: self.handle_customer_create,
            CallbackTopic.CUSTOMERS_UPDATE: self.handle_customer_update,
            CallbackTopic.PRODUCTS_CREATE: self.handle_product_update,
            CallbackTopic.PRODUCTS_UPDATE: self.handle_product_update,
        }

    async def dispatch(
        self, topic: str, payload: Payload, shop_domain: str
    ) -> WriteOutcome:
        """Route ``payload`` to the handler for ``topic``.

        Raises
        ------
        UnsupportedTopicError
            If ``topic`` is not one of :class:`CallbackTopic`.

        """
        try:
            route = CallbackTopic(topic.strip().lower())
        except ValueError as exc:
            raise UnsupportedTopicError(topic) from exc
        return await self._routes()[route](payload, shop_domain)
