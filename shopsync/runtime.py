"""Process wiring for the sync service.

:func:`build_service` constructs every collaborator explicitly from a
:class:`~shopsync.sync.config.SyncConfig`; nothing is held at module level.
:func:`run_service` starts the recurring sweep and blocks until SIGINT or
SIGTERM, then stops the scheduler, waits for an in-flight sweep and releases
clients and database connections.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses as dc
import signal
import typing as typ

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from shopsync.ingestion.pipeline import build_pipelines
from shopsync.logging import get_logger, log_info, log_warning
from shopsync.storage.models import init_storage
from shopsync.storage.store import SqlAlchemyRecordStore
from shopsync.sync.orchestrator import SyncOrchestrator
from shopsync.sync.scheduler import SyncScheduler
from shopsync.tenants.crypto import CredentialCipher
from shopsync.tenants.service import TenantService
from shopsync.webhooks.handler import WebhookIngestionHandler

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from shopsync.sync.config import SyncConfig

logger = get_logger(__name__)

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dc.dataclass(slots=True)
class SyncService:
    """Constructed collaborators for one process."""

    engine: AsyncEngine
    store: SqlAlchemyRecordStore
    tenants: TenantService
    orchestrator: SyncOrchestrator
    scheduler: SyncScheduler
    webhooks: WebhookIngestionHandler

    async def aclose(self) -> None:
        """Close tenant clients and dispose of the engine."""
        try:
            await self.orchestrator.aclose()
        finally:
            await self.engine.dispose()


async def build_service(config: SyncConfig) -> SyncService:
    """Create the engine, ensure tables exist and wire every component."""
    engine = create_async_engine(config.database_url)
    await init_storage(engine)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    store = SqlAlchemyRecordStore(session_factory)
    tenants = TenantService(session_factory, CredentialCipher(config.encryption_key))
    orchestrator = SyncOrchestrator(
        tenants,
        build_pipelines(store),
        client_config=config.client,
    )
    return SyncService(
        engine=engine,
        store=store,
        tenants=tenants,
        orchestrator=orchestrator,
        scheduler=SyncScheduler(orchestrator.sync_all_tenants),
        webhooks=WebhookIngestionHandler(tenants, store),
    )


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event
) -> list[signal.Signals]:
    installed: list[signal.Signals] = []

    def _request_shutdown(sig: signal.Signals) -> None:
        log_info(logger, "Received %s, shutting down", sig.name)
        stop_event.set()

    for sig in _SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, _request_shutdown, sig)
        except (NotImplementedError, RuntimeError):
            log_warning(logger, "Cannot install handler for %s", sig.name)
            continue
        installed.append(sig)
    return installed


async def run_service(
    config: SyncConfig,
    *,
    stop_event: asyncio.Event | None = None,
    run_immediately: bool = True,
) -> None:
    """Run the scheduled sweep until a shutdown signal arrives.

    Parameters
    ----------
    config:
        Service configuration.
    stop_event:
        Event that ends the service when set; signal handlers set it too.
    run_immediately:
        Start a sweep right away instead of waiting one full interval.

    """
    service = await build_service(config)
    loop = asyncio.get_running_loop()
    stop = stop_event or asyncio.Event()
    installed = _install_signal_handlers(loop, stop)
    try:
        service.scheduler.start(
            config.interval_minutes, run_immediately=run_immediately
        )
        log_info(
            logger,
            "Sync service started (interval_minutes=%d)",
            config.interval_minutes,
        )
        await stop.wait()
    finally:
        service.scheduler.stop()
        if service.scheduler.sweep_in_progress:
            log_info(logger, "Waiting for the in-flight sweep to finish")
        await service.scheduler.drain()
        for sig in installed:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)
        await service.aclose()
        log_info(logger, "Sync service stopped")
