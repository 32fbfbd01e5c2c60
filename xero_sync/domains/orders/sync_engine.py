"""
Order -> Xero synchronization workflow.

One call to ``OrderSyncEngine.sync`` walks the order through five gated
stages: credentials, contact, line items, invoice, payment. The invoice is
the success criterion; payment registration is best effort and is never
compensated by removing the invoice.
"""

import logging
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from xero_sync.core.settings import settings
from xero_sync.domains.external_accounting.xero.auth.service import (
    XeroCredentialManager,
)
from xero_sync.domains.external_accounting.xero.data_service import XeroApiClient
from xero_sync.domains.external_accounting.xero.types import (
    XeroAccountCodeRef,
    XeroAddress,
    XeroContact,
    XeroInvoiceRef,
    XeroInvoiceRequest,
    XeroItemRequest,
    XeroLineItem,
    XeroPaymentRequest,
    XeroPhone,
    XeroSalesDetails,
)

from .gateway import OrderGateway
from .mappings import SyncMappings
from .models import Order, OrderAddress, OrderLine
from .types import StepStatus, SyncFailureReason, SyncResult, SyncStep

logger = logging.getLogger(__name__)

# Xero rejects item names longer than this
ITEM_NAME_MAX_LENGTH = 50


def invoice_reference(order: Order) -> str:
    return f"{settings.XERO_INVOICE_REFERENCE_PREFIX}{order.id}"


def _to_xero_address(address: OrderAddress, address_type: str) -> XeroAddress:
    return XeroAddress(
        AddressType=address_type,
        AddressLine1=address.address_1 or None,
        AddressLine2=address.address_2 or None,
        City=address.city or None,
        Region=address.state or None,
        PostalCode=address.postcode or None,
        Country=address.country or None,
    )


def build_contact(order: Order) -> XeroContact:
    """
    Derive the Xero contact from the order's billing and shipping details.

    Always produces a contact: the name falls back to the email and then to
    a guest label, and a placeholder email is synthesized from the order ID.
    """
    billing = order.billing
    first_name = (billing.first_name or "").strip()
    last_name = (billing.last_name or "").strip()
    email = (order.billing_email or "").strip()

    name = f"{first_name} {last_name}".strip()
    if not name:
        name = email or f"Guest Checkout Customer {invoice_reference(order)}"
    if not email:
        email = f"unknown-{order.id}@example.com"

    addresses: List[XeroAddress] = []
    if billing.has_location():
        addresses.append(_to_xero_address(billing, "POBOX"))

    shipping = order.shipping
    if (
        shipping is not None
        and shipping.has_location()
        and not shipping.same_location(billing)
    ):
        addresses.append(_to_xero_address(shipping, "STREET"))

    phone = (order.billing_phone or "").strip()

    return XeroContact(
        Name=name,
        EmailAddress=email,
        FirstName=first_name or None,
        LastName=last_name or None,
        Addresses=addresses or None,
        Phones=[XeroPhone(PhoneNumber=phone)] if phone else None,
    )


def build_shipping_line(order: Order, account_code: str) -> XeroLineItem:
    return XeroLineItem(
        Description=f"Shipping Cost (Order ID: {order.id})",
        Quantity=1,
        UnitAmount=float(order.shipping_total),
        AccountCode=account_code,
        TaxAmount=float(order.shipping_tax),
    )


def build_invoice(
    order: Order, contact: XeroContact, line_items: List[XeroLineItem]
) -> XeroInvoiceRequest:
    """Authorised ACCREC invoice dated on the order's creation date."""
    invoice_date = order.created_at.strftime("%Y-%m-%d")

    delivery_address: Optional[str] = None
    attention_to: Optional[str] = None
    shipping = order.shipping
    if shipping is not None and shipping.has_location():
        delivery_address = "\n".join(shipping.address_lines())
        attention_to = shipping.full_name or contact.Name

    return XeroInvoiceRequest(
        Type="ACCREC",
        Contact=contact,
        Date=invoice_date,
        DueDate=invoice_date,
        LineItems=line_items,
        Status="AUTHORISED",
        Reference=invoice_reference(order),
        LineAmountTypes="Exclusive",
        DeliveryAddress=delivery_address,
        AttentionTo=attention_to,
    )


class OrderSyncEngine:
    """Creates one Xero invoice (and payment, when mapped) per call."""

    def __init__(
        self,
        credentials: XeroCredentialManager,
        api_client: XeroApiClient,
        orders: OrderGateway,
        mappings: SyncMappings,
        today: Callable[[], date] = date.today,
    ):
        self.credentials = credentials
        self.api_client = api_client
        self.orders = orders
        self.mappings = mappings
        self.today = today

    async def sync(self, order: Order) -> SyncResult:
        """
        Synchronize a single order to Xero.

        Args:
            order: Order snapshot to invoice

        Returns:
            SyncResult with the overall outcome and each stage's status
        """
        steps: Dict[SyncStep, StepStatus] = {}

        # 1. Credential gate
        access_token = await self.credentials.get_valid_access_token()
        tenant_id = await self.credentials.get_tenant_id()
        if not access_token or not tenant_id:
            steps[SyncStep.CREDENTIALS] = StepStatus.FAILED
            await self._note(
                order, "Xero Sync Failed: Plugin not connected or token expired."
            )
            return self._failed(order, SyncFailureReason.NOT_CONNECTED, steps)
        steps[SyncStep.CREDENTIALS] = StepStatus.COMPLETED

        # 2. Contact
        contact = build_contact(order)
        steps[SyncStep.CONTACT] = StepStatus.COMPLETED

        # 3. Line items, resolving Xero items by SKU
        account_code = await self.mappings.get_default_sales_account()
        line_items, degraded = await self._prepare_line_items(
            order, account_code, access_token, tenant_id
        )
        if not line_items:
            steps[SyncStep.LINE_ITEMS] = StepStatus.FAILED
            await self._note(order, "Xero Sync Failed: No valid line items found.")
            return self._failed(order, SyncFailureReason.NO_LINE_ITEMS, steps)
        steps[SyncStep.LINE_ITEMS] = (
            StepStatus.DEGRADED if degraded else StepStatus.COMPLETED
        )

        # 4. Invoice
        invoice = build_invoice(order, contact, line_items)
        invoice_id = await self.api_client.create_invoice(
            invoice, access_token, tenant_id
        )
        if not invoice_id:
            steps[SyncStep.INVOICE] = StepStatus.FAILED
            await self._note(
                order,
                "Xero Sync Failed: Invoice creation failed. Check the error logs.",
            )
            return self._failed(order, SyncFailureReason.INVOICE_CREATE_FAILED, steps)
        steps[SyncStep.INVOICE] = StepStatus.COMPLETED
        logger.info(f"Created Xero invoice {invoice_id} for order {order.id}")

        # 5. Payment (best effort)
        steps[SyncStep.PAYMENT] = await self._register_payment(
            order, invoice_id, access_token, tenant_id
        )

        return SyncResult(
            order_id=order.id, success=True, invoice_id=invoice_id, steps=steps
        )

    async def _prepare_line_items(
        self, order: Order, account_code: str, access_token: str, tenant_id: str
    ) -> Tuple[List[XeroLineItem], bool]:
        """Build invoice lines; the flag reports lines left without an ItemCode."""
        line_items: List[XeroLineItem] = []
        degraded = False

        for line in order.lines:
            item_code = await self._find_or_create_item(
                line, account_code, access_token, tenant_id
            )
            if line.sku and not item_code:
                degraded = True

            line_items.append(
                XeroLineItem(
                    Description=line.name,
                    Quantity=float(line.quantity),
                    UnitAmount=float(line.unit_price),
                    AccountCode=account_code,
                    TaxAmount=float(line.total_tax),
                    ItemCode=item_code,
                )
            )

        if order.shipping_total > 0:
            line_items.append(build_shipping_line(order, account_code))

        return line_items, degraded

    async def _find_or_create_item(
        self, line: OrderLine, account_code: str, access_token: str, tenant_id: str
    ) -> Optional[str]:
        """
        Resolve the Xero item code for a line, creating the item if needed.

        Returns:
            Item code to reference, or None for lines without a SKU and for
            items that could neither be found nor created
        """
        sku = (line.sku or "").strip()
        if not sku:
            return None

        existing = await self.api_client.find_item_by_code(sku, access_token, tenant_id)
        if existing:
            return existing.Code

        unit_price = line.product_price if line.product_price is not None else line.unit_price
        name = (line.product_name or line.name)[:ITEM_NAME_MAX_LENGTH]
        try:
            item_request = XeroItemRequest(
                Code=sku,
                Name=name,
                IsSold=True,
                SalesDetails=XeroSalesDetails(
                    UnitPrice=float(unit_price), AccountCode=account_code
                ),
            )
        except ValidationError as e:
            logger.warning(f"Cannot build Xero item for SKU {sku}: {e}")
            return None

        created = await self.api_client.create_item(
            item_request, access_token, tenant_id
        )
        if created:
            return created.Code

        # The invoice is still created, this line just has no ItemCode
        return None

    async def _register_payment(
        self, order: Order, invoice_id: str, access_token: str, tenant_id: str
    ) -> StepStatus:
        payment_method = order.payment_method or ""
        bank_account_code = await self.mappings.get_bank_account_code(payment_method)

        if not bank_account_code:
            logger.warning(
                f"No Xero bank account mapped for payment method '{payment_method}'"
            )
            await self._note(
                order,
                f"Xero Sync Successful (Invoice Created: {invoice_id}). "
                f'Payment Skipped: payment method "{payment_method}" is not mapped '
                "to a Xero Bank Account Code in the connector settings. Please "
                "configure mappings to register payments automatically.",
            )
            return StepStatus.SKIPPED

        if order.total <= 0:
            await self._note(
                order,
                f"Xero Sync Successful (Invoice Created: {invoice_id}). "
                "Payment Skipped: order total is zero.",
            )
            return StepStatus.SKIPPED

        payment = XeroPaymentRequest(
            Invoice=XeroInvoiceRef(InvoiceID=invoice_id),
            Account=XeroAccountCodeRef(Code=bank_account_code),
            Date=self.today().isoformat(),
            Amount=float(order.total),
        )
        result = await self.api_client.create_payment(payment, access_token, tenant_id)

        if result.success:
            await self._note(
                order,
                f"Xero Sync Successful: Invoice {invoice_id} created and marked as paid.",
            )
            return StepStatus.COMPLETED

        # Invoice stays in Xero for manual reconciliation
        await self._note(
            order,
            f"Xero Sync Partially Successful: Invoice {invoice_id} created, but "
            f"Payment Registration Failed (Check Xero Account Code for "
            f"{bank_account_code}).",
        )
        return StepStatus.DEGRADED

    async def _note(self, order: Order, note: str) -> None:
        # Notes are observability only; a failing note must not fail the sync
        try:
            await self.orders.add_note(order.id, note)
        except Exception as e:
            logger.warning(f"Could not add note to order {order.id}: {e}")

    @staticmethod
    def _failed(
        order: Order, reason: SyncFailureReason, steps: Dict[SyncStep, StepStatus]
    ) -> SyncResult:
        logger.error(f"Xero sync failed for order {order.id}: {reason.value}")
        return SyncResult(order_id=order.id, success=False, reason=reason, steps=steps)
