"""FastAPI dependency providers wiring the store, credentials and API client."""

from functools import lru_cache

from fastapi import Depends

from xero_sync.core.options import KeyValueStore, PrismaKeyValueStore
from xero_sync.domains.external_accounting.xero.auth.secret_box import SecretBox
from xero_sync.domains.external_accounting.xero.auth.service import (
    XeroCredentialManager,
)
from xero_sync.domains.external_accounting.xero.data_service import XeroApiClient
from xero_sync.domains.orders.mappings import SyncMappings
from xero_sync.domains.orders.sync_marks import SyncMarkStore


async def get_option_store() -> KeyValueStore:
    # Imported here so the package loads without a generated Prisma client
    from xero_sync.core.database import get_db

    return PrismaKeyValueStore(await get_db())


@lru_cache
def get_secret_box() -> SecretBox:
    return SecretBox.from_settings()


@lru_cache
def _shared_credential_manager() -> XeroCredentialManager:
    from xero_sync.core.database import prisma

    return XeroCredentialManager(PrismaKeyValueStore(prisma), get_secret_box())


async def get_credential_manager() -> XeroCredentialManager:
    # One manager per process so its refresh lock covers every request
    return _shared_credential_manager()


async def get_xero_api_client(
    credentials: XeroCredentialManager = Depends(get_credential_manager),
) -> XeroApiClient:
    return XeroApiClient(credentials)


async def get_sync_mappings(
    store: KeyValueStore = Depends(get_option_store),
) -> SyncMappings:
    return SyncMappings(store)


async def get_sync_marks(
    store: KeyValueStore = Depends(get_option_store),
) -> SyncMarkStore:
    return SyncMarkStore(store)
