"""Persisted Xero credentials, always routed through the SecretBox."""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from xero_sync.core.options import KeyValueStore
from xero_sync.shared.exceptions import EncryptionError

from .models import PendingAuthorization, TokenSet
from .secret_box import SecretBox

logger = logging.getLogger(__name__)

CLIENT_ID_KEY = "xero_client_id"
VERIFIER_KEY = "xero_pkce_verifier"
TOKENS_KEY = "xero_oauth_tokens"
TENANT_ID_KEY = "xero_tenant_id"
REFRESH_LOCK_KEY = "xero_refresh_lock"


class CredentialStore:
    """Reads and writes the client id, PKCE verifier, token set and tenant id."""

    def __init__(self, store: KeyValueStore, box: SecretBox):
        self.store = store
        self.box = box

    # Client ID and tenant are stored in plaintext

    async def get_client_id(self) -> Optional[str]:
        return await self.store.get(CLIENT_ID_KEY) or None

    async def set_client_id(self, client_id: str) -> None:
        await self.store.put(CLIENT_ID_KEY, client_id.strip())

    async def get_tenant_id(self) -> Optional[str]:
        return await self.store.get(TENANT_ID_KEY) or None

    async def set_tenant_id(self, tenant_id: str) -> None:
        await self.store.put(TENANT_ID_KEY, tenant_id)

    # PKCE verifier

    async def save_pending(self, pending: PendingAuthorization) -> None:
        await self.store.put(VERIFIER_KEY, self.box.seal(pending.model_dump()))

    async def load_pending(self) -> Optional[PendingAuthorization]:
        data = self._open_json(await self.store.get(VERIFIER_KEY))
        if not isinstance(data, dict):
            return None
        try:
            return PendingAuthorization.model_validate(data)
        except ValidationError:
            logger.warning("Discarding unreadable pending Xero authorization")
            return None

    async def clear_pending(self) -> None:
        await self.store.delete(VERIFIER_KEY)

    # Token set

    async def load_tokens_raw(self) -> Optional[str]:
        """Sealed token value as stored, used as the compare-and-swap version."""
        return await self.store.get(TOKENS_KEY)

    async def load_tokens(self) -> Optional[TokenSet]:
        return self.parse_tokens(await self.load_tokens_raw())

    def parse_tokens(self, raw: Optional[str]) -> Optional[TokenSet]:
        data = self._open_json(raw)
        if not isinstance(data, dict):
            return None
        try:
            return TokenSet.model_validate(data)
        except ValidationError:
            logger.warning("Stored Xero token set is incomplete, ignoring it")
            return None

    async def save_tokens(self, tokens: TokenSet) -> None:
        await self.store.put(TOKENS_KEY, self.box.seal(tokens.model_dump()))

    async def replace_tokens(self, expected_raw: Optional[str], tokens: TokenSet) -> bool:
        """Store ``tokens`` only if the stored value is still ``expected_raw``."""
        sealed = self.box.seal(tokens.model_dump())
        if expected_raw is None:
            return await self.store.add(TOKENS_KEY, sealed)
        return await self.store.replace(TOKENS_KEY, expected_raw, sealed)

    # Refresh lease shared by all workers

    async def acquire_refresh_lease(self, now: int, ttl: int) -> bool:
        value = str(now)
        if await self.store.add(REFRESH_LOCK_KEY, value):
            return True

        held = await self.store.get(REFRESH_LOCK_KEY)
        if held is None:
            return await self.store.add(REFRESH_LOCK_KEY, value)

        try:
            held_at = int(held)
        except ValueError:
            held_at = 0

        if now - held_at >= ttl:
            # Previous holder died mid-refresh
            return await self.store.replace(REFRESH_LOCK_KEY, held, value)
        return False

    async def release_refresh_lease(self) -> None:
        await self.store.delete(REFRESH_LOCK_KEY)

    async def clear_all(self) -> None:
        for key in (TOKENS_KEY, TENANT_ID_KEY, VERIFIER_KEY, CLIENT_ID_KEY):
            await self.store.delete(key)

    def _open_json(self, raw: Optional[str]) -> Any:
        if raw is None:
            return None
        try:
            value = self.box.open(raw)
        except EncryptionError as e:
            logger.warning(f"Stored Xero credential could not be decrypted: {e}")
            return None

        # Values written before encryption was introduced are plain JSON text
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                return value
        return value
