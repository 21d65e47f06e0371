"""Bulk ingestion pipelines and per-record write policies."""

from __future__ import annotations

from .models import (
    CustomerPayload,
    IngestionResult,
    OrderCustomerRef,
    OrderPayload,
    ProductPayload,
    ProductVariant,
    decode_payload,
)
from .observability import IngestionEventLogger, IngestionEventType
from .pipeline import (
    RESOURCE_ENDPOINTS,
    SYNC_ORDER,
    IngestionPipeline,
    ResourceEndpoint,
    build_pipelines,
)
from .writers import OrderWritePolicy, RecordWriteError, RecordWriter, WriteOutcome

__all__ = [
    "RESOURCE_ENDPOINTS",
    "SYNC_ORDER",
    "CustomerPayload",
    "IngestionEventLogger",
    "IngestionEventType",
    "IngestionPipeline",
    "IngestionResult",
    "OrderCustomerRef",
    "OrderPayload",
    "OrderWritePolicy",
    "ProductPayload",
    "ProductVariant",
    "RecordWriteError",
    "RecordWriter",
    "ResourceEndpoint",
    "WriteOutcome",
    "build_pipelines",
    "decode_payload",
]
