"""
AES-GCM sealing for stored Xero credentials.

Every sealed value is self-contained: the random IV travels with the
ciphertext, so opening needs nothing but the key.

Storage format: base64url(JSON {"iv": <b64>, "ciphertext": <b64>}) where the
ciphertext carries the 16-byte GCM authentication tag.
"""

import base64
import binascii
import hashlib
import json
import logging
import os
from typing import Any, Literal, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from xero_sync.core.settings import settings
from xero_sync.shared.exceptions import EncryptionError

logger = logging.getLogger(__name__)

# Used only when neither XERO_ENCRYPTION_KEY nor JWT_SECRET is configured
FALLBACK_SECRET = "xero-sync-unconfigured-encryption-key"

KeySource = Literal["dedicated", "signing", "fallback"]


class SecretBox:
    """
    Symmetric sealing of token blobs before they are persisted.

    Uses AES-256-GCM with:
    - 256-bit key derived as SHA-256 of the configured secret
    - Random 96-bit IV per seal operation
    - JSON serialization so structured values (and ``False``) round-trip
    """

    def __init__(self, secret: Optional[str], key_source: KeySource = "dedicated"):
        if not secret:
            secret = FALLBACK_SECRET
            key_source = "fallback"

        self.key_source: KeySource = key_source
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()

        if self.uses_fallback_key:
            logger.warning(
                "Xero credential encryption is using the built-in fallback key. "
                "Set XERO_ENCRYPTION_KEY (or JWT_SECRET) so stored tokens are "
                "protected by a secret of your own."
            )

    @classmethod
    def from_settings(cls) -> "SecretBox":
        """Build a box from XERO_ENCRYPTION_KEY, falling back to JWT_SECRET."""
        if settings.XERO_ENCRYPTION_KEY:
            return cls(settings.XERO_ENCRYPTION_KEY, "dedicated")
        if settings.JWT_SECRET:
            return cls(settings.JWT_SECRET, "signing")
        return cls(None)

    @property
    def uses_fallback_key(self) -> bool:
        return self.key_source == "fallback"

    @property
    def signing_key(self) -> bytes:
        """Derived key, also used to sign OAuth state tokens."""
        return self._key

    def seal(self, value: Any) -> str:
        """
        Encrypt a JSON-serializable value.

        Args:
            value: String, number, boolean, list or dict to protect

        Returns:
            Opaque sealed string safe to persist

        Raises:
            EncryptionError: If the value cannot be serialized or encrypted
        """
        try:
            plaintext = json.dumps(value).encode("utf-8")
            iv = os.urandom(12)
            ciphertext = AESGCM(self._key).encrypt(iv, plaintext, None)
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Failed to seal value: {e}")

        envelope = json.dumps(
            {
                "iv": base64.b64encode(iv).decode("ascii"),
                "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
            }
        )
        return base64.urlsafe_b64encode(envelope.encode("utf-8")).decode("ascii")

    def open(self, blob: Any) -> Any:
        """
        Decrypt a sealed value.

        Values that were never sealed (written before encryption was
        introduced, or malformed) are returned unchanged.

        Raises:
            EncryptionError: If a sealed value fails authentication
        """
        envelope = self._parse_envelope(blob)
        if envelope is None:
            return blob

        try:
            iv = base64.b64decode(envelope["iv"], validate=True)
            ciphertext = base64.b64decode(envelope["ciphertext"], validate=True)
            plaintext = AESGCM(self._key).decrypt(iv, ciphertext, None)
        except InvalidTag:
            logger.error("Decryption failed: authentication tag verification failed")
            raise EncryptionError(
                "Decryption failed: data has been tampered with or wrong key"
            )
        except (binascii.Error, ValueError) as e:
            raise EncryptionError(f"Decryption failed: malformed envelope: {e}")

        try:
            return json.loads(plaintext.decode("utf-8"))
        except ValueError as e:
            raise EncryptionError(f"Decryption failed: payload is not valid JSON: {e}")

    @staticmethod
    def _parse_envelope(blob: Any) -> Optional[dict]:
        """Return the {iv, ciphertext} envelope, or None for unsealed input."""
        if not isinstance(blob, str) or not blob:
            return None
        try:
            decoded = base64.urlsafe_b64decode(blob.encode("ascii"))
            envelope = json.loads(decoded.decode("utf-8"))
        except (binascii.Error, ValueError):
            return None

        if (
            isinstance(envelope, dict)
            and isinstance(envelope.get("iv"), str)
            and isinstance(envelope.get("ciphertext"), str)
        ):
            return envelope
        return None
