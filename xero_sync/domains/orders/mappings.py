import json
import logging
from typing import Dict, Optional

from xero_sync.core.options import KeyValueStore
from xero_sync.core.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_SALES_ACCOUNT_KEY = "xero_default_sales_account"
PAYMENT_MAPPINGS_KEY = "xero_payment_mappings"


class SyncMappings:
    """Default sales account and payment method -> bank account code table."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get_default_sales_account(self) -> str:
        code = await self.store.get(DEFAULT_SALES_ACCOUNT_KEY)
        return code or settings.XERO_DEFAULT_SALES_ACCOUNT

    async def get_payment_mappings(self) -> Dict[str, str]:
        raw = await self.store.get(PAYMENT_MAPPINGS_KEY)
        if not raw:
            return {}
        try:
            mappings = json.loads(raw)
        except ValueError:
            logger.warning("Stored Xero payment mappings are not valid JSON")
            return {}
        if not isinstance(mappings, dict):
            return {}
        return {str(method): str(code) for method, code in mappings.items() if code}

    async def get_bank_account_code(self, payment_method: Optional[str]) -> Optional[str]:
        if not payment_method:
            return None
        return (await self.get_payment_mappings()).get(payment_method)

    async def update(
        self,
        default_sales_account: Optional[str] = None,
        payment_mappings: Optional[Dict[str, str]] = None,
    ) -> None:
        if default_sales_account is not None:
            await self.store.put(DEFAULT_SALES_ACCOUNT_KEY, default_sales_account.strip())
        if payment_mappings is not None:
            cleaned = {
                method: code.strip()
                for method, code in payment_mappings.items()
                if code and code.strip()
            }
            await self.store.put(PAYMENT_MAPPINGS_KEY, json.dumps(cleaned))
