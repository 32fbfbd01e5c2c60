"""
Tests for XeroApiClient requests against the Xero accounting API.
"""

import json
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from tests.fixtures.xero_fixtures import XeroStub
from xero_sync.domains.external_accounting.xero.data_service import XeroApiClient
from xero_sync.domains.external_accounting.xero.types import (
    XeroAccountCodeRef,
    XeroContact,
    XeroInvoiceRef,
    XeroInvoiceRequest,
    XeroItemRequest,
    XeroLineItem,
    XeroPaymentRequest,
    XeroSalesDetails,
)


@pytest.fixture
def mock_credentials() -> Mock:
    credentials = Mock()
    credentials.get_valid_access_token = AsyncMock(return_value="access-1")
    credentials.get_tenant_id = AsyncMock(return_value="tenant-1")
    return credentials


@pytest.fixture
def api_client(mock_credentials: Mock, xero_stub: XeroStub) -> XeroApiClient:
    return XeroApiClient(mock_credentials, transport=xero_stub.transport)


@pytest.fixture
def invoice_request() -> XeroInvoiceRequest:
    return XeroInvoiceRequest(
        Contact=XeroContact(Name="Jane Doe", EmailAddress="jane@example.com"),
        Date="2024-05-01",
        DueDate="2024-05-01",
        LineItems=[
            XeroLineItem(
                Description="Blue Mug", Quantity=2, UnitAmount=20.0, AccountCode="200"
            )
        ],
        Reference="WOO-42",
    )


class TestXeroApiClientRequest:
    """Generic request behaviour."""

    @pytest.mark.asyncio
    async def test_sends_auth_and_tenant_headers(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on("GET", "/api.xro/2.0/Organisation", httpx.Response(200, json={"ok": 1}))

        # Act
        result = await api_client.request("GET", "Organisation", "access-1", "tenant-1")

        # Assert
        assert result.success is True
        assert result.data == {"ok": 1}
        request = xero_stub.requests[0]
        assert request.headers["Authorization"] == "Bearer access-1"
        assert request.headers["Xero-Tenant-Id"] == "tenant-1"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_http_error_is_reported_not_raised(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on(
            "POST",
            "/api.xro/2.0/Invoices",
            httpx.Response(400, json={"Message": "A validation exception occurred"}),
        )

        # Act
        result = await api_client.request(
            "POST", "Invoices", "access-1", "tenant-1", body={"Invoices": []}
        )

        # Assert
        assert result.success is False
        assert result.status_code == 400
        assert "validation exception" in result.error_body

    @pytest.mark.asyncio
    async def test_transport_error_is_reported_not_raised(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("network down", request=request)

        xero_stub.on("GET", "/api.xro/2.0/Items", fail)

        # Act
        result = await api_client.request("GET", "Items", "access-1", "tenant-1")

        # Assert
        assert result.success is False
        assert result.status_code is None
        assert "network down" in result.error_body


class TestXeroApiClientInvoices:
    @pytest.mark.asyncio
    async def test_create_invoice_returns_invoice_id(
        self,
        api_client: XeroApiClient,
        xero_stub: XeroStub,
        invoice_request: XeroInvoiceRequest,
    ) -> None:
        # Arrange
        xero_stub.on(
            "POST",
            "/api.xro/2.0/Invoices",
            httpx.Response(200, json={"Invoices": [{"InvoiceID": "inv-1"}]}),
        )

        # Act
        invoice_id = await api_client.create_invoice(
            invoice_request, "access-1", "tenant-1"
        )

        # Assert
        assert invoice_id == "inv-1"
        body = json.loads(xero_stub.requests[0].content)
        sent = body["Invoices"][0]
        assert sent["Type"] == "ACCREC"
        assert sent["Status"] == "AUTHORISED"
        assert sent["Reference"] == "WOO-42"
        assert "DeliveryAddress" not in sent

    @pytest.mark.asyncio
    async def test_create_invoice_without_id_returns_none(
        self,
        api_client: XeroApiClient,
        xero_stub: XeroStub,
        invoice_request: XeroInvoiceRequest,
    ) -> None:
        # Arrange
        xero_stub.on(
            "POST", "/api.xro/2.0/Invoices", httpx.Response(200, json={"Invoices": []})
        )

        # Act & Assert
        assert (
            await api_client.create_invoice(invoice_request, "access-1", "tenant-1")
            is None
        )

    @pytest.mark.asyncio
    async def test_create_payment_posts_payment(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on(
            "POST",
            "/api.xro/2.0/Payments",
            httpx.Response(200, json={"Payments": [{"PaymentID": "pay-1"}]}),
        )
        payment = XeroPaymentRequest(
            Invoice=XeroInvoiceRef(InvoiceID="inv-1"),
            Account=XeroAccountCodeRef(Code="090"),
            Date="2024-05-02",
            Amount=125.5,
        )

        # Act
        result = await api_client.create_payment(payment, "access-1", "tenant-1")

        # Assert
        assert result.success is True
        body = json.loads(xero_stub.requests[0].content)
        assert body == {
            "Payments": [
                {
                    "Invoice": {"InvoiceID": "inv-1"},
                    "Account": {"Code": "090"},
                    "Date": "2024-05-02",
                    "Amount": 125.5,
                }
            ]
        }


class TestXeroApiClientItems:
    @pytest.mark.asyncio
    async def test_find_item_by_code_filters_on_code(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on(
            "GET",
            "/api.xro/2.0/Items",
            httpx.Response(
                200, json={"Items": [{"ItemID": "item-1", "Code": "MUG-BLUE"}]}
            ),
        )

        # Act
        item = await api_client.find_item_by_code("MUG-BLUE", "access-1", "tenant-1")

        # Assert
        assert item is not None
        assert item.Code == "MUG-BLUE"
        assert xero_stub.requests[0].url.params["where"] == 'Code=="MUG-BLUE"'

    @pytest.mark.asyncio
    async def test_find_item_by_code_not_found(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on("GET", "/api.xro/2.0/Items", httpx.Response(200, json={"Items": []}))

        # Act & Assert
        assert await api_client.find_item_by_code("NOPE", "access-1", "tenant-1") is None

    @pytest.mark.asyncio
    async def test_create_item(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on(
            "POST",
            "/api.xro/2.0/Items",
            httpx.Response(
                200,
                json={"Items": [{"ItemID": "item-2", "Code": "TEAPOT", "Name": "Teapot"}]},
            ),
        )
        item = XeroItemRequest(
            Code="TEAPOT",
            Name="Teapot",
            SalesDetails=XeroSalesDetails(UnitPrice=65.0, AccountCode="200"),
        )

        # Act
        created = await api_client.create_item(item, "access-1", "tenant-1")

        # Assert
        assert created is not None
        assert created.ItemID == "item-2"
        sent = json.loads(xero_stub.requests[0].content)["Items"][0]
        assert sent["IsSold"] is True
        assert sent["SalesDetails"] == {"UnitPrice": 65.0, "AccountCode": "200"}

    @pytest.mark.asyncio
    async def test_create_item_failure_returns_none(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on("POST", "/api.xro/2.0/Items", httpx.Response(400, text="bad"))
        item = XeroItemRequest(
            Code="TEAPOT",
            Name="Teapot",
            SalesDetails=XeroSalesDetails(UnitPrice=65.0, AccountCode="200"),
        )

        # Act & Assert
        assert await api_client.create_item(item, "access-1", "tenant-1") is None


class TestXeroApiClientAccounts:
    @pytest.mark.asyncio
    async def test_bank_accounts_are_labelled_by_code(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on(
            "GET",
            "/api.xro/2.0/Accounts",
            httpx.Response(
                200,
                json={
                    "Accounts": [
                        {"Code": "090", "Name": "Business Bank"},
                        {"Code": "091", "Name": "Stripe Clearing"},
                        {"Name": "No code"},
                    ]
                },
            ),
        )

        # Act
        accounts = await api_client.get_bank_accounts()

        # Assert
        assert accounts == {
            "090": "Business Bank (090)",
            "091": "Stripe Clearing (091)",
        }
        assert xero_stub.requests[0].url.params["where"] == 'Type=="BANK"'

    @pytest.mark.asyncio
    async def test_sales_accounts_filter(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on(
            "GET",
            "/api.xro/2.0/Accounts",
            httpx.Response(200, json={"Accounts": [{"Code": "200", "Name": "Sales"}]}),
        )

        # Act
        accounts = await api_client.get_sales_accounts()

        # Assert
        assert accounts == {"200": "Sales (200)"}
        assert "REVENUE" in xero_stub.requests[0].url.params["where"]

    @pytest.mark.asyncio
    async def test_not_connected_returns_empty(
        self, api_client: XeroApiClient, mock_credentials: Mock, xero_stub: XeroStub
    ) -> None:
        # Arrange
        mock_credentials.get_valid_access_token.return_value = None

        # Act & Assert
        assert await api_client.get_bank_accounts() == {}
        assert xero_stub.requests == []

    @pytest.mark.asyncio
    async def test_remote_failure_returns_empty(
        self, api_client: XeroApiClient, xero_stub: XeroStub
    ) -> None:
        # Arrange
        xero_stub.on("GET", "/api.xro/2.0/Accounts", httpx.Response(500, text="oops"))

        # Act & Assert
        assert await api_client.get_sales_accounts() == {}
