"""At-rest encryption for tenant access tokens.

Tokens are sealed with AES-256-GCM under a key derived from the configured
key material. The stored form is ``<nonce hex>:<ciphertext hex>``; the GCM
tag travels at the end of the ciphertext.
"""

from __future__ import annotations

import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import CredentialDecryptError, EncryptionKeyError

_NONCE_SIZE = 12
_ASSOCIATED_DATA = b"shopsync.tenant.access_token"


class CredentialCipher:
    """Encrypt and decrypt tenant credentials."""

    def __init__(self, key_material: str) -> None:
        """Derive a 256-bit key from ``key_material``."""
        if not key_material.strip():
            raise EncryptionKeyError.empty()
        key = hashlib.sha256(key_material.encode("utf-8")).digest()
        self._aead = AESGCM(key)

    def __repr__(self) -> str:
        """Hide key material."""
        return f"{type(self).__name__}(key=<redacted>)"

    def encrypt(self, plaintext: str) -> str:
        """Return ``plaintext`` sealed under a fresh random nonce."""
        nonce = os.urandom(_NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), _ASSOCIATED_DATA)
        return f"{nonce.hex()}:{sealed.hex()}"

    def decrypt(self, stored: str) -> str:
        """Return the plaintext for a value produced by :meth:`encrypt`.

        Raises
        ------
        CredentialDecryptError
            If the value is malformed or fails authentication.

        """
        nonce_hex, sep, sealed_hex = stored.partition(":")
        if not sep:
            raise CredentialDecryptError.malformed()
        try:
            nonce = bytes.fromhex(nonce_hex)
            sealed = bytes.fromhex(sealed_hex)
        except ValueError as exc:
            raise CredentialDecryptError.malformed() from exc
        if len(nonce) != _NONCE_SIZE:
            raise CredentialDecryptError.malformed()
        try:
            plaintext = self._aead.decrypt(nonce, sealed, _ASSOCIATED_DATA)
        except InvalidTag as exc:
            raise CredentialDecryptError.rejected() from exc
        return plaintext.decode("utf-8")
