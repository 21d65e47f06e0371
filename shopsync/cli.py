"""Command-line entry point for the sync service."""

from __future__ import annotations

import asyncio
import dataclasses as dc
import sys
import typing as typ

from cyclopts import App, Parameter

from shopsync import __version__
from shopsync.logging import configure_logging, get_logger, log_error, log_warning
from shopsync.runtime import build_service, run_service
from shopsync.sync.config import SyncConfig, SyncConfigError
from shopsync.tenants.errors import TenantNotFoundError

if typ.TYPE_CHECKING:
    from shopsync.sync.models import SweepResult, TenantSyncResult

logger = get_logger(__name__)

app = App(
    name="shopsync",
    help="Multi-tenant storefront sync service",
    version=__version__,
)

_EXIT_CONFIG_ERROR = 2
_EXIT_NOT_FOUND = 3


def _load_config() -> SyncConfig:
    config = SyncConfig.from_env()
    normalized, invalid = configure_logging(config.log_level)
    if invalid:
        log_warning(
            logger,
            "Invalid SHOPSYNC_LOG_LEVEL %r, falling back to %s",
            config.log_level,
            normalized,
        )
    return config


def _print_tenant(result: TenantSyncResult) -> None:
    status = "ok" if result.success else "partial"
    print(f"{result.shop_domain}: {status} in {result.duration.total_seconds():.1f}s")
    for item in result.results:
        print(
            f"  {item.kind}: processed={item.records_processed} "
            f"skipped={item.records_skipped} errors={len(item.errors)}"
        )


def _print_sweep(sweep: SweepResult) -> None:
    for outcome in sweep.outcomes:
        if outcome.result is not None:
            _print_tenant(outcome.result)
        else:
            print(
                f"{outcome.shop_domain}: failed "
                f"({outcome.error_type}: {outcome.error})"
            )
    print(
        f"{sweep.tenants_attempted} tenant(s), {sweep.tenants_failed} failed, "
        f"{sweep.duration.total_seconds():.1f}s"
    )


@app.command
def serve(
    *,
    interval_minutes: typ.Annotated[
        int | None, Parameter(env_var="SHOPSYNC_SYNC_INTERVAL_MINUTES")
    ] = None,
    skip_initial_sync: bool = False,
) -> int:
    """Run the scheduled sweep until interrupted.

    Args:
        interval_minutes: Minutes between sweeps (overrides configuration).
        skip_initial_sync: Wait one interval before the first sweep.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    try:
        config = _load_config()
    except (SyncConfigError, ValueError) as exc:
        log_error(logger, "Invalid configuration: %s", exc)
        return _EXIT_CONFIG_ERROR
    if interval_minutes is not None:
        config = dc.replace(config, interval_minutes=interval_minutes)
    asyncio.run(run_service(config, run_immediately=not skip_initial_sync))
    return 0


async def _sync(config: SyncConfig, shop: str | None) -> int:
    service = await build_service(config)
    try:
        if shop is None:
            _print_sweep(await service.orchestrator.sync_all_tenants())
            return 0
        tenant = await service.tenants.require_by_shop_domain(shop)
        result = await service.orchestrator.sync_tenant_data(tenant)
        _print_tenant(result)
        return 0 if result.success else 1
    finally:
        await service.aclose()


@app.command
def sync(*, shop: str | None = None) -> int:
    """Run one sweep now, for every tenant or a single shop.

    Args:
        shop: Shop domain to sync; all tenants when omitted.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    try:
        config = _load_config()
    except (SyncConfigError, ValueError) as exc:
        log_error(logger, "Invalid configuration: %s", exc)
        return _EXIT_CONFIG_ERROR
    try:
        return asyncio.run(_sync(config, shop))
    except TenantNotFoundError as exc:
        log_error(logger, "%s", exc)
        return _EXIT_NOT_FOUND


async def _register(config: SyncConfig, shop_domain: str, access_token: str) -> str:
    service = await build_service(config)
    try:
        tenant = await service.tenants.register_or_update(shop_domain, access_token)
    finally:
        await service.aclose()
    return tenant.id


@app.command(name="register-tenant")
def register_tenant(
    shop_domain: str,
    *,
    access_token: typ.Annotated[str, Parameter(env_var="SHOPSYNC_ACCESS_TOKEN")],
) -> int:
    """Register a shop or rotate its access token.

    Args:
        shop_domain: Shop domain, e.g. ``example.myshopify.com``.
        access_token: Admin API access token for the shop.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    try:
        config = _load_config()
    except (SyncConfigError, ValueError) as exc:
        log_error(logger, "Invalid configuration: %s", exc)
        return _EXIT_CONFIG_ERROR
    tenant_id = asyncio.run(_register(config, shop_domain, access_token))
    print(f"{shop_domain.strip().lower()}: {tenant_id}")
    return 0


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
