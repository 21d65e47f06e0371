"""Persistence for tenants and synced storefront records."""

from __future__ import annotations

from .errors import DuplicateRecordError, TimezoneAwareRequiredError, UnknownFieldError
from .models import (
    RESOURCE_MODELS,
    Base,
    CustomerRecord,
    OrderRecord,
    ProductRecord,
    ResourceKind,
    TenantRecord,
    UTCDateTime,
    init_storage,
)
from .store import (
    AggregateFunction,
    GroupRow,
    RecordStore,
    SqlAlchemyRecordStore,
    UpsertOutcome,
)

__all__ = [
    "RESOURCE_MODELS",
    "AggregateFunction",
    "Base",
    "CustomerRecord",
    "DuplicateRecordError",
    "GroupRow",
    "OrderRecord",
    "ProductRecord",
    "RecordStore",
    "ResourceKind",
    "SqlAlchemyRecordStore",
    "TenantRecord",
    "TimezoneAwareRequiredError",
    "UTCDateTime",
    "UnknownFieldError",
    "UpsertOutcome",
    "init_storage",
]
