"""Multi-tenant sync orchestration and scheduling."""

from __future__ import annotations

from .config import SyncConfig, SyncConfigError
from .models import SweepResult, TenantSyncOutcome, TenantSyncResult, TenantSyncStatus
from .observability import SyncEventLogger, SyncEventType
from .orchestrator import SyncOrchestrator
from .scheduler import SyncScheduler

__all__ = [
    "SweepResult",
    "SyncConfig",
    "SyncConfigError",
    "SyncEventLogger",
    "SyncEventType",
    "SyncOrchestrator",
    "SyncScheduler",
    "TenantSyncOutcome",
    "TenantSyncResult",
    "TenantSyncStatus",
]
