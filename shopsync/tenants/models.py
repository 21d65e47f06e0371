"""Data transfer objects for the tenant registry."""

from __future__ import annotations

import dataclasses
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt

    from .errors import CredentialDecryptError


@dataclasses.dataclass(slots=True, frozen=True)
class TenantInfo:
    """Immutable view of a tenant with its decrypted access token.

    Sync components treat this as read-only input. The token is excluded from
    ``repr`` so tenants can be logged safely.
    """

    id: str
    shop_domain: str
    access_token: str = dataclasses.field(repr=False)
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


@dataclasses.dataclass(slots=True, frozen=True)
class UnreadableTenant:
    """A registered tenant whose stored credential could not be decrypted."""

    id: str
    shop_domain: str
    error: CredentialDecryptError
