"""Unit tests for the shopsync command-line interface."""

from __future__ import annotations

import typing as typ

import pytest

from shopsync import cli

if typ.TYPE_CHECKING:
    from pathlib import Path

    from shopsync.sync.config import SyncConfig


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Skip installing the femtologging root handler during CLI tests."""
    levels: list[str] = []

    def fake_configure(level: str, *, force: bool = False) -> tuple[str, bool]:
        levels.append(level)
        return ("INFO", False)

    monkeypatch.setattr(cli, "configure_logging", fake_configure)
    return levels


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point the CLI at a scratch sqlite database."""
    monkeypatch.setenv(
        "SHOPSYNC_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    )
    monkeypatch.setenv("SHOPSYNC_ENCRYPTION_KEY", "cli-test-key")
    monkeypatch.delenv("SHOPSYNC_SYNC_INTERVAL_MINUTES", raising=False)
    monkeypatch.setenv("SHOPSYNC_LOG_LEVEL", "debug")


def test_commands_are_registered() -> None:
    """serve, sync and register-tenant are exposed as subcommands."""
    for name in ("serve", "sync", "register-tenant"):
        assert cli.app[name] is not None


def test_missing_configuration_exits_with_config_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Commands fail fast with exit code 2 when required settings are absent."""
    monkeypatch.delenv("SHOPSYNC_DATABASE_URL", raising=False)
    monkeypatch.delenv("SHOPSYNC_ENCRYPTION_KEY", raising=False)

    assert cli.sync() == 2
    assert cli.serve() == 2
    assert cli.register_tenant("a.example.com", access_token="t") == 2


@pytest.mark.usefixtures("env")
def test_register_tenant_prints_normalized_domain(
    capsys: pytest.CaptureFixture[str], quiet_logging: list[str]
) -> None:
    """Registering echoes the normalized shop and its tenant id."""
    assert cli.register_tenant(" Shop.Example.com ", access_token="shpat_x") == 0

    out = capsys.readouterr().out
    assert out.startswith("shop.example.com: ")
    assert quiet_logging == ["debug"]


@pytest.mark.usefixtures("env")
def test_sync_unknown_shop_exits_not_found() -> None:
    """Syncing a shop that was never registered exits with code 3."""
    assert cli.sync(shop="ghost.example.com") == 3


@pytest.mark.usefixtures("env")
def test_sync_without_tenants_prints_summary(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """An empty registry produces an empty sweep."""
    assert cli.sync() == 0

    assert "0 tenant(s), 0 failed" in capsys.readouterr().out


@pytest.mark.usefixtures("env")
@pytest.mark.parametrize(
    ("kwargs", "interval", "immediate"),
    [
        ({}, 10, True),
        ({"interval_minutes": 3, "skip_initial_sync": True}, 3, False),
    ],
)
def test_serve_passes_options_to_runtime(
    monkeypatch: pytest.MonkeyPatch,
    kwargs: dict[str, typ.Any],
    interval: int,
    immediate: bool,  # noqa: FBT001
) -> None:
    """serve overrides the interval and controls the initial sweep."""
    seen: list[tuple[SyncConfig, bool]] = []

    async def fake_run_service(
        config: SyncConfig, *, run_immediately: bool = True
    ) -> None:
        seen.append((config, run_immediately))

    monkeypatch.setattr(cli, "run_service", fake_run_service)

    assert cli.serve(**kwargs) == 0

    ((config, run_immediately),) = seen
    assert config.interval_minutes == interval
    assert run_immediately is immediate
