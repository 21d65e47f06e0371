"""Tenant registry: connected storefronts and their encrypted credentials."""

from __future__ import annotations

from .crypto import CredentialCipher
from .errors import (
    CredentialDecryptError,
    EncryptionKeyError,
    TenantError,
    TenantNotFoundError,
)
from .models import TenantInfo, UnreadableTenant
from .service import TenantService

__all__ = [
    "CredentialCipher",
    "CredentialDecryptError",
    "EncryptionKeyError",
    "TenantError",
    "TenantInfo",
    "TenantNotFoundError",
    "TenantService",
    "UnreadableTenant",
]
