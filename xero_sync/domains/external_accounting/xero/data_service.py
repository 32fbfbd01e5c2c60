import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from xero_sync.core.settings import settings

from .auth.service import XeroCredentialManager
from .types import (
    XeroAccount,
    XeroInvoiceRequest,
    XeroItem,
    XeroItemRequest,
    XeroPaymentRequest,
    XeroRequestResult,
)

logger = logging.getLogger(__name__)

BANK_ACCOUNTS_FILTER = 'Type=="BANK"'
SALES_ACCOUNTS_FILTER = 'Type=="REVENUE" OR Type=="OTHERINCOME"'


class XeroApiClient:
    """Thin typed-request layer over the Xero accounting API."""

    def __init__(
        self,
        credentials: XeroCredentialManager,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = "https://api.xero.com/api.xro/2.0"
        self.credentials = credentials
        self.transport = transport

    async def request(
        self,
        method: str,
        resource: str,
        access_token: str,
        tenant_id: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> XeroRequestResult:
        """
        Make an authenticated request to the Xero API.

        Args:
            method: HTTP method
            resource: Resource path below the API base, e.g. "Invoices"
            access_token: Bearer token
            tenant_id: Xero tenant to address
            body: JSON body for POST/PUT
            params: Query parameters

        Returns:
            XeroRequestResult; 4xx/5xx and transport failures are reported,
            not raised
        """
        method = method.upper()
        url = f"{self.base_url}/{resource.lstrip('/')}"
        request_headers = {
            "Authorization": f"Bearer {access_token}",
            "Xero-Tenant-Id": tenant_id,
            "Accept": "application/json",
        }
        request_kwargs: Dict[str, Any] = {"headers": request_headers}
        if params:
            request_kwargs["params"] = params
        if method in ("POST", "PUT"):
            request_headers["Content-Type"] = "application/json"
            request_kwargs["json"] = body or {}

        try:
            async with httpx.AsyncClient(
                transport=self.transport, timeout=settings.XERO_REQUEST_TIMEOUT
            ) as client:
                response = await client.request(method, url, **request_kwargs)
        except httpx.RequestError as e:
            logger.error(f"Xero API error ({resource}): {e}")
            return XeroRequestResult(success=False, status_code=None, error_body=str(e))

        if response.status_code >= 400:
            # Full body carries Xero's validation messages
            logger.error(
                f"Xero API HTTP error ({resource} - code {response.status_code}): "
                f"{response.text}"
            )
            return XeroRequestResult(
                success=False,
                status_code=response.status_code,
                error_body=response.text,
            )

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None

        return XeroRequestResult(
            success=True, status_code=response.status_code, data=data
        )

    async def get_bank_accounts(self) -> Dict[str, str]:
        """Bank accounts for payment mapping, as code -> "Name (Code)"."""
        return await self._list_accounts(BANK_ACCOUNTS_FILTER)

    async def get_sales_accounts(self) -> Dict[str, str]:
        """Revenue and other-income accounts, as code -> "Name (Code)"."""
        return await self._list_accounts(SALES_ACCOUNTS_FILTER)

    async def find_item_by_code(
        self, code: str, access_token: str, tenant_id: str
    ) -> Optional[XeroItem]:
        """Look up a Xero item by its code (product SKU)."""
        escaped = code.replace('"', '\\"')
        result = await self.request(
            "GET",
            "Items",
            access_token,
            tenant_id,
            params={"where": f'Code=="{escaped}"'},
        )
        items = self._first_of(result, "Items")
        if items is None:
            return None
        try:
            return XeroItem.model_validate(items)
        except ValidationError:
            return None

    async def create_item(
        self, item: XeroItemRequest, access_token: str, tenant_id: str
    ) -> Optional[XeroItem]:
        """Create a sold item; returns None if Xero did not return an ItemID."""
        result = await self.request(
            "POST",
            "Items",
            access_token,
            tenant_id,
            body={"Items": [item.model_dump(exclude_none=True)]},
        )
        created = self._first_of(result, "Items")
        if not created or not created.get("ItemID"):
            logger.warning(f"Xero item creation failed for SKU: {item.Code}")
            return None
        logger.info(f"Xero item created for SKU: {item.Code}")
        try:
            return XeroItem.model_validate(created)
        except ValidationError:
            return XeroItem(ItemID=created["ItemID"], Code=item.Code, Name=item.Name)

    async def create_invoice(
        self, invoice: XeroInvoiceRequest, access_token: str, tenant_id: str
    ) -> Optional[str]:
        """Create an invoice; returns its InvoiceID or None."""
        result = await self.request(
            "POST",
            "Invoices",
            access_token,
            tenant_id,
            body={"Invoices": [invoice.model_dump(exclude_none=True)]},
        )
        created = self._first_of(result, "Invoices")
        if not created or not created.get("InvoiceID"):
            return None
        return created["InvoiceID"]

    async def create_payment(
        self, payment: XeroPaymentRequest, access_token: str, tenant_id: str
    ) -> XeroRequestResult:
        """Register a payment against an invoice."""
        return await self.request(
            "POST",
            "Payments",
            access_token,
            tenant_id,
            body={"Payments": [payment.model_dump(exclude_none=True)]},
        )

    async def _list_accounts(self, where: str) -> Dict[str, str]:
        # Feeds optional settings dropdowns, so it must never raise
        try:
            access_token = await self.credentials.get_valid_access_token()
            tenant_id = await self.credentials.get_tenant_id()
            if not access_token or not tenant_id:
                return {}

            result = await self.request(
                "GET", "Accounts", access_token, tenant_id, params={"where": where}
            )
        except Exception as e:
            logger.warning(f"Could not list Xero accounts: {e}")
            return {}

        if not result.success or not isinstance(result.data, dict):
            return {}

        accounts: Dict[str, str] = {}
        for entry in result.data.get("Accounts") or []:
            try:
                account = XeroAccount.model_validate(entry)
            except ValidationError:
                continue
            if account.Code and account.Name:
                accounts[account.Code] = f"{account.Name} ({account.Code})"
        return accounts

    @staticmethod
    def _first_of(result: XeroRequestResult, resource: str) -> Optional[dict]:
        if not result.success or not isinstance(result.data, dict):
            return None
        entries = result.data.get(resource)
        if not entries or not isinstance(entries[0], dict):
            return None
        return entries[0]
