"""Result types for tenant syncs and multi-tenant sweeps."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum
import typing as typ

if typ.TYPE_CHECKING:
    from shopsync.ingestion.models import IngestionResult


@dc.dataclass(frozen=True, slots=True)
class TenantSyncResult:
    """Pipeline results for one tenant, in sync order."""

    tenant_id: str
    shop_domain: str
    results: tuple[IngestionResult, ...]
    duration: dt.timedelta

    @property
    def success(self) -> bool:
        """Return ``True`` when every pipeline finished without errors."""
        return all(result.success for result in self.results)

    @property
    def records_processed(self) -> int:
        """Return committed writes across all pipelines."""
        return sum(result.records_processed for result in self.results)


class TenantSyncStatus(enum.StrEnum):
    """Per-tenant outcome of a sweep."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dc.dataclass(frozen=True, slots=True)
class TenantSyncOutcome:
    """What a sweep observed for one tenant.

    ``result`` is set when the tenant sync returned; ``error`` and
    ``error_type`` are set when it raised.
    """

    tenant_id: str
    shop_domain: str
    status: TenantSyncStatus
    result: TenantSyncResult | None = None
    error: str | None = None
    error_type: str | None = None


@dc.dataclass(frozen=True, slots=True)
class SweepResult:
    """Outcome of one pass over every tenant."""

    outcomes: tuple[TenantSyncOutcome, ...]
    duration: dt.timedelta

    @property
    def tenants_attempted(self) -> int:
        """Return the number of tenants the sweep tried."""
        return len(self.outcomes)

    @property
    def tenants_failed(self) -> int:
        """Return the number of tenants whose sync raised."""
        return sum(
            1 for outcome in self.outcomes if outcome.status is TenantSyncStatus.FAILED
        )

    def outcome_for(self, shop_domain: str) -> TenantSyncOutcome | None:
        """Return the outcome recorded for ``shop_domain``, if any."""
        return next(
            (o for o in self.outcomes if o.shop_domain == shop_domain),
            None,
        )
