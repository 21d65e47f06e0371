"""Runtime configuration for the sync service.

>>> import os
>>> os.environ["SHOPSYNC_DATABASE_URL"] = "sqlite+aiosqlite:///shopsync.db"
>>> os.environ["SHOPSYNC_ENCRYPTION_KEY"] = "change-me"
>>> SyncConfig.from_env().interval_minutes
10

"""

from __future__ import annotations

import dataclasses as dc

from shopsync.common.env import parse_positive_int, read_stripped
from shopsync.upstream.config import ClientConfig

_DEFAULT_INTERVAL_MINUTES = 10


class SyncConfigError(RuntimeError):
    """Raised when required sync configuration is absent."""

    @classmethod
    def missing(cls, env_var: str) -> SyncConfigError:
        """Return an error naming the unset variable."""
        return cls(f"{env_var} must be set")


@dc.dataclass(frozen=True, slots=True)
class SyncConfig:
    """Settings for the scheduled multi-tenant sync.

    Attributes
    ----------
    database_url
        SQLAlchemy async URL for tenants and synced records.
    encryption_key
        Key material used to seal tenant access tokens at rest.
    interval_minutes
        Minutes between scheduled sweeps. Default is 10.
    log_level
        Raw log level string; normalised when logging is configured.
    client
        Settings shared by every tenant's API client.

    """

    database_url: str
    encryption_key: str = dc.field(repr=False)
    interval_minutes: int = _DEFAULT_INTERVAL_MINUTES
    log_level: str = "INFO"
    client: ClientConfig = dc.field(default_factory=ClientConfig)

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Create configuration from ``SHOPSYNC_*`` environment variables.

        Raises
        ------
        SyncConfigError
            If ``SHOPSYNC_DATABASE_URL`` or ``SHOPSYNC_ENCRYPTION_KEY`` is unset.
        ValueError
            If a numeric variable is malformed or not positive.

        """
        database_url = read_stripped("SHOPSYNC_DATABASE_URL")
        if database_url is None:
            raise SyncConfigError.missing("SHOPSYNC_DATABASE_URL")
        encryption_key = read_stripped("SHOPSYNC_ENCRYPTION_KEY")
        if encryption_key is None:
            raise SyncConfigError.missing("SHOPSYNC_ENCRYPTION_KEY")
        return cls(
            database_url=database_url,
            encryption_key=encryption_key,
            interval_minutes=parse_positive_int(
                "SHOPSYNC_SYNC_INTERVAL_MINUTES", _DEFAULT_INTERVAL_MINUTES
            ),
            log_level=read_stripped("SHOPSYNC_LOG_LEVEL") or "INFO",
            client=ClientConfig.from_env(),
        )
