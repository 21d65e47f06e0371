"""Cursor-paginated bulk ingestion, one pipeline per resource kind.

A pipeline walks every page of one list endpoint and writes each record on
its own. A record that fails to decode or write is described in the result
and skipped; it never aborts the page. A fetch failure ends the run with one
synthetic error entry while keeping the records already committed.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import time
import typing as typ

from shopsync.storage.models import ResourceKind
from shopsync.upstream.errors import ApiClientError, AuthError, ErrorKind
from shopsync.upstream.pagination import PAGE_SIZE_MAX, ResourceFetcher

from .models import IngestionResult
from .observability import IngestionEventLogger
from .writers import OrderWritePolicy, RecordWriteError, RecordWriter, WriteOutcome

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from shopsync.storage.store import RecordStore
    from shopsync.tenants.models import TenantInfo
    from shopsync.upstream.client import PageClient, QueryParams


@dc.dataclass(frozen=True, slots=True)
class ResourceEndpoint:
    """List endpoint and response key for one resource kind."""

    path: str
    collection_key: str
    initial_query: QueryParams = dc.field(default_factory=dict)


RESOURCE_ENDPOINTS: dict[ResourceKind, ResourceEndpoint] = {
    ResourceKind.CUSTOMER: ResourceEndpoint("/customers.json", "customers"),
    ResourceKind.ORDER: ResourceEndpoint(
        "/orders.json", "orders", initial_query={"status": "any"}
    ),
    ResourceKind.PRODUCT: ResourceEndpoint("/products.json", "products"),
}

# Customers first so orders can resolve their customer reference.
SYNC_ORDER: tuple[ResourceKind, ...] = (
    ResourceKind.CUSTOMER,
    ResourceKind.ORDER,
    ResourceKind.PRODUCT,
)


@dc.dataclass(slots=True)
class _RunTally:
    processed: int = 0
    skipped: int = 0
    errors: list[str] = dc.field(default_factory=list)


class IngestionPipeline:
    """Ingest every record of one resource kind for one tenant per call."""

    def __init__(  # noqa: PLR0913
        self,
        kind: ResourceKind,
        store: RecordStore,
        *,
        page_size: int = PAGE_SIZE_MAX,
        event_logger: IngestionEventLogger | None = None,
        clock: cabc.Callable[[], float] = time.monotonic,
    ) -> None:
        """Configure the pipeline for ``kind`` writing into ``store``."""
        self._kind = kind
        self._endpoint = RESOURCE_ENDPOINTS[kind]
        self._writer = RecordWriter(store)
        self._page_size = page_size
        self._events = event_logger or IngestionEventLogger()
        self._clock = clock

    @property
    def kind(self) -> ResourceKind:
        """Return the resource kind this pipeline ingests."""
        return self._kind

    async def ingest(self, tenant: TenantInfo, client: PageClient) -> IngestionResult:
        """Fetch and write every record, returning the run's accounting.

        Client errors other than :class:`AuthError` end the run and are
        reported through ``errors`` and ``failure``.

        Raises
        ------
        AuthError
            If the tenant credential is rejected; the tenant sync must stop.

        """
        fetcher = ResourceFetcher(
            client,
            self._endpoint.path,
            collection_key=self._endpoint.collection_key,
            page_size=self._page_size,
            initial_query=self._endpoint.initial_query,
        )
        tally = _RunTally()
        failure: ErrorKind | None = None
        started = self._clock()
        self._events.log_run_started(tenant.shop_domain, self._kind)

        try:
            async for batch in fetcher:
                for raw in batch:
                    await self._write_one(tenant, raw, tally)
        except AuthError as exc:
            self._events.log_run_failed(
                tenant.shop_domain, self._kind, exc, self._elapsed(started)
            )
            raise
        except ApiClientError as exc:
            failure = exc.kind
            tally.errors.append(f"{self._kind} ingestion failed: {exc}")
            self._events.log_run_failed(
                tenant.shop_domain, self._kind, exc, self._elapsed(started)
            )

        result = IngestionResult(
            kind=self._kind,
            records_processed=tally.processed,
            records_skipped=tally.skipped,
            errors=tuple(tally.errors),
            duration=self._elapsed(started),
            failure=failure,
        )
        self._events.log_run_completed(tenant.shop_domain, result)
        return result

    async def _write_one(
        self, tenant: TenantInfo, raw: dict[str, typ.Any], tally: _RunTally
    ) -> None:
        try:
            outcome = await self._writer.write_raw(
                tenant.id,
                self._kind,
                raw,
                order_policy=OrderWritePolicy.INSERT_IF_ABSENT,
            )
        except RecordWriteError as exc:
            tally.errors.append(str(exc))
            self._events.log_record_failed(tenant.shop_domain, str(exc))
            return
        if outcome is WriteOutcome.SKIPPED:
            tally.skipped += 1
        else:
            tally.processed += 1

    def _elapsed(self, started: float) -> dt.timedelta:
        return dt.timedelta(seconds=max(self._clock() - started, 0.0))


def build_pipelines(
    store: RecordStore,
    *,
    page_size: int = PAGE_SIZE_MAX,
    event_logger: IngestionEventLogger | None = None,
) -> tuple[IngestionPipeline, ...]:
    """Return one pipeline per resource kind in sync order."""
    return tuple(
        IngestionPipeline(kind, store, page_size=page_size, event_logger=event_logger)
        for kind in SYNC_ORDER
    )
