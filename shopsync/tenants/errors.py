"""Errors raised by the tenant registry."""

from __future__ import annotations

from shopsync.upstream.errors import ErrorKind


class TenantError(Exception):
    """Base class for tenant registry errors."""


class TenantNotFoundError(TenantError):
    """Raised when no tenant matches a shop domain or id."""

    kind = ErrorKind.TENANT_NOT_FOUND

    def __init__(self, identifier: str) -> None:
        """Record the shop domain or id that had no tenant."""
        self.identifier = identifier
        super().__init__(f"Tenant not found: {identifier}")

    @classmethod
    def for_shop(cls, shop_domain: str) -> TenantNotFoundError:
        """Return an error for an unknown shop domain."""
        return cls(shop_domain)


class CredentialDecryptError(TenantError):
    """Raised when a stored access token cannot be decrypted."""

    @classmethod
    def malformed(cls) -> CredentialDecryptError:
        """Return an error for a value not in ``nonce:ciphertext`` form."""
        return cls("stored credential is not in nonce:ciphertext hex form")

    @classmethod
    def rejected(cls) -> CredentialDecryptError:
        """Return an error when authentication of the ciphertext fails."""
        return cls("stored credential failed authentication; wrong key?")


class EncryptionKeyError(ValueError):
    """Raised when the configured key material is unusable."""

    @classmethod
    def empty(cls) -> EncryptionKeyError:
        """Return an error for blank key material."""
        return cls("encryption key must be non-empty")
