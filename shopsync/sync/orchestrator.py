"""Multi-tenant sync orchestration.

One tenant sync runs the customer, order and product pipelines strictly in
that order against a single client bound to the tenant. A sweep syncs every
tenant one after another and isolates failures: a tenant that raises is
logged and recorded, and the sweep moves on to the next tenant.

Clients are kept per tenant for the orchestrator's lifetime so that circuit
breaker state survives between sweeps. A client is rebuilt when the tenant's
access token changes.
"""

from __future__ import annotations

import datetime as dt
import time
import typing as typ

from shopsync.tenants.models import UnreadableTenant
from shopsync.upstream.client import PageClient, ShopifyApiClient

from .models import (
    SweepResult,
    TenantSyncOutcome,
    TenantSyncResult,
    TenantSyncStatus,
)
from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from shopsync.ingestion.models import IngestionResult
    from shopsync.ingestion.pipeline import IngestionPipeline
    from shopsync.tenants.models import TenantInfo
    from shopsync.upstream.config import ClientConfig


class SyncClient(PageClient, typ.Protocol):
    """Client interface the orchestrator needs: paging plus cleanup."""

    async def aclose(self) -> None:
        """Release HTTP resources."""
        ...


class TenantSource(typ.Protocol):
    """Anything that can list the tenants to sync."""

    async def load_all(self) -> list[TenantInfo | UnreadableTenant]:
        """Return every tenant; unreadable credentials are returned, not raised."""
        ...


type ClientFactory = cabc.Callable[[TenantInfo], SyncClient]


class SyncOrchestrator:
    """Run ingestion pipelines per tenant and sweep across tenants.

    Parameters
    ----------
    tenants:
        Source of tenants for :meth:`sync_all_tenants`.
    pipelines:
        Pipelines in the order they must run for each tenant.
    client_config:
        Settings for the default :class:`ShopifyApiClient` factory.
    client_factory:
        Builds the client for a tenant; overrides ``client_config``.

    """

    def __init__(  # noqa: PLR0913
        self,
        tenants: TenantSource,
        pipelines: cabc.Sequence[IngestionPipeline],
        *,
        client_config: ClientConfig | None = None,
        client_factory: ClientFactory | None = None,
        event_logger: SyncEventLogger | None = None,
        clock: cabc.Callable[[], float] = time.monotonic,
    ) -> None:
        """Configure the orchestrator with its collaborators."""
        self._tenants = tenants
        self._pipelines = tuple(pipelines)
        self._client_factory = client_factory or self._default_factory(client_config)
        self._events = event_logger or SyncEventLogger()
        self._clock = clock
        self._clients: dict[str, tuple[str, SyncClient]] = {}

    @staticmethod
    def _default_factory(config: ClientConfig | None) -> ClientFactory:
        def build(tenant: TenantInfo) -> SyncClient:
            return ShopifyApiClient(
                tenant.shop_domain, tenant.access_token, config=config
            )

        return build

    async def client_for(self, tenant: TenantInfo) -> SyncClient:
        """Return the long-lived client for ``tenant``, building it if needed."""
        cached = self._clients.get(tenant.id)
        if cached is not None:
            token, client = cached
            if token == tenant.access_token:
                return client
            await client.aclose()
        client = self._client_factory(tenant)
        self._clients[tenant.id] = (tenant.access_token, client)
        return client

    async def sync_tenant_data(self, tenant: TenantInfo) -> TenantSyncResult:
        """Run every pipeline for ``tenant`` in order.

        A pipeline that returns ``success=False`` does not stop the pipelines
        after it. An exception from any pipeline aborts the tenant sync and
        propagates after being logged.
        """
        started = self._clock()
        self._events.log_tenant_started(tenant.shop_domain)
        results: list[IngestionResult] = []
        try:
            client = await self.client_for(tenant)
            for pipeline in self._pipelines:
                results.append(await pipeline.ingest(tenant, client))
        except Exception as exc:
            self._events.log_tenant_failed(
                tenant.shop_domain, exc, self._elapsed(started)
            )
            raise

        result = TenantSyncResult(
            tenant_id=tenant.id,
            shop_domain=tenant.shop_domain,
            results=tuple(results),
            duration=self._elapsed(started),
        )
        self._events.log_tenant_completed(result)
        return result

    async def sync_all_tenants(self) -> SweepResult:
        """Sync every tenant sequentially, isolating per-tenant failures.

        Raises
        ------
        Exception
            Only if loading the tenant list fails; per-tenant failures are
            captured in the returned :class:`SweepResult`.

        """
        started = self._clock()
        entries = await self._tenants.load_all()
        self._events.log_sweep_started(len(entries))
        # Unreadable tenants lose their cached client too.
        await self._prune_clients(
            {e.id for e in entries if not isinstance(e, UnreadableTenant)}
        )

        outcomes: list[TenantSyncOutcome] = []
        for entry in entries:
            if isinstance(entry, UnreadableTenant):
                outcomes.append(self._unreadable_outcome(entry))
            else:
                outcomes.append(await self._sync_isolated(entry))

        sweep = SweepResult(outcomes=tuple(outcomes), duration=self._elapsed(started))
        self._events.log_sweep_completed(sweep)
        return sweep

    async def _sync_isolated(self, tenant: TenantInfo) -> TenantSyncOutcome:
        try:
            result = await self.sync_tenant_data(tenant)
        except Exception as exc:  # noqa: BLE001 - one tenant must not stop the sweep
            return TenantSyncOutcome(
                tenant_id=tenant.id,
                shop_domain=tenant.shop_domain,
                status=TenantSyncStatus.FAILED,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        return TenantSyncOutcome(
            tenant_id=tenant.id,
            shop_domain=tenant.shop_domain,
            status=(
                TenantSyncStatus.COMPLETED
                if result.success
                else TenantSyncStatus.PARTIAL
            ),
            result=result,
        )

    def _unreadable_outcome(self, tenant: UnreadableTenant) -> TenantSyncOutcome:
        self._events.log_tenant_failed(
            tenant.shop_domain, tenant.error, dt.timedelta(0)
        )
        return TenantSyncOutcome(
            tenant_id=tenant.id,
            shop_domain=tenant.shop_domain,
            status=TenantSyncStatus.FAILED,
            error=str(tenant.error),
            error_type=type(tenant.error).__name__,
        )

    async def _prune_clients(self, active_ids: cabc.Set[str]) -> None:
        for tenant_id in [tid for tid in self._clients if tid not in active_ids]:
            _, client = self._clients.pop(tenant_id)
            await client.aclose()

    async def aclose(self) -> None:
        """Close every cached client."""
        clients = [client for _, client in self._clients.values()]
        self._clients.clear()
        for client in clients:
            await client.aclose()

    def _elapsed(self, started: float) -> dt.timedelta:
        return dt.timedelta(seconds=max(self._clock() - started, 0.0))
