"""Xero API type definitions for type safety."""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class XeroRequestResult(BaseModel):
    """Outcome of a single Xero API call.

    Business validation errors (4xx) are expected outcomes, so they are
    reported here instead of being raised.
    """

    success: bool = Field(..., description="Whether the call returned 2xx")
    status_code: Optional[int] = Field(
        None, description="HTTP status, None on transport failure"
    )
    data: Any = Field(None, description="Parsed JSON body on success")
    error_body: Optional[str] = Field(
        None, description="Raw response body or transport error on failure"
    )


# Contact payloads
class XeroAddress(BaseModel):
    """Xero contact address."""

    AddressType: Literal["POBOX", "STREET", "DELIVERY"] = Field(
        ..., description="Xero address type"
    )
    AddressLine1: Optional[str] = Field(None, description="First street line")
    AddressLine2: Optional[str] = Field(None, description="Second street line")
    City: Optional[str] = Field(None, description="City")
    Region: Optional[str] = Field(None, description="State or region")
    PostalCode: Optional[str] = Field(None, description="Postal code")
    Country: Optional[str] = Field(None, description="Country")
    AttentionTo: Optional[str] = Field(None, description="Recipient name")


class XeroPhone(BaseModel):
    """Xero contact phone number."""

    PhoneType: Literal["DEFAULT", "MOBILE", "FAX", "DDI"] = "DEFAULT"
    PhoneNumber: str = Field(..., description="Phone number")


class XeroContact(BaseModel):
    """Contact sent with an invoice; Xero matches existing contacts by name."""

    Name: str = Field(..., description="Contact display name")
    EmailAddress: str = Field(..., description="Contact email address")
    FirstName: Optional[str] = Field(None, description="First name")
    LastName: Optional[str] = Field(None, description="Last name")
    Addresses: Optional[List[XeroAddress]] = Field(
        None, description="Billing and shipping addresses"
    )
    Phones: Optional[List[XeroPhone]] = Field(None, description="Phone numbers")

    @field_validator("Name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is not empty."""
        if not v.strip():
            raise ValueError("Contact name cannot be empty")
        return v


# Invoice payloads
class XeroLineItem(BaseModel):
    """Xero invoice line item structure."""

    Description: str = Field(..., description="Line item description")
    Quantity: float = Field(..., description="Quantity of items")
    UnitAmount: float = Field(..., description="Price per unit excluding tax")
    AccountCode: str = Field(..., description="Revenue account code for line")
    TaxAmount: float = Field(0.0, description="Tax amount for line")
    ItemCode: Optional[str] = Field(None, description="Xero item code if resolved")


class XeroInvoiceRequest(BaseModel):
    """Typed request structure for creating a sales invoice."""

    Type: Literal["ACCREC", "ACCPAY"] = "ACCREC"
    Contact: XeroContact = Field(..., description="Invoice contact information")
    Date: str = Field(..., description="Invoice date in YYYY-MM-DD format")
    DueDate: str = Field(..., description="Due date in YYYY-MM-DD format")
    LineItems: List[XeroLineItem] = Field(..., description="Invoice line items")
    Status: Literal["DRAFT", "SUBMITTED", "AUTHORISED"] = "AUTHORISED"
    Reference: str = Field(..., description="Invoice reference (order number)")
    LineAmountTypes: Literal["Exclusive", "Inclusive", "NoTax"] = "Exclusive"
    DeliveryAddress: Optional[str] = Field(None, description="Shipping address")
    AttentionTo: Optional[str] = Field(None, description="Shipping recipient")

    @field_validator("LineItems")
    @classmethod
    def validate_line_items(cls, v: List[XeroLineItem]) -> List[XeroLineItem]:
        """Validate at least one line item is provided."""
        if not v:
            raise ValueError("At least one line item is required")
        return v


# Payment payloads
class XeroInvoiceRef(BaseModel):
    """Reference to a Xero invoice."""

    InvoiceID: str = Field(..., description="Xero invoice identifier")


class XeroAccountCodeRef(BaseModel):
    """Reference to a Xero account by code."""

    Code: str = Field(..., description="Xero account code")


class XeroPaymentRequest(BaseModel):
    """Typed request structure for registering a payment against an invoice."""

    Invoice: XeroInvoiceRef = Field(..., description="Invoice being paid")
    Account: XeroAccountCodeRef = Field(..., description="Bank account receiving funds")
    Date: str = Field(..., description="Payment date in YYYY-MM-DD format")
    Amount: float = Field(..., description="Payment amount", gt=0)


# Item payloads
class XeroSalesDetails(BaseModel):
    """Sales defaults for a Xero item."""

    UnitPrice: float = Field(..., description="Default sale price")
    AccountCode: str = Field(..., description="Revenue account code")


class XeroItemRequest(BaseModel):
    """Typed request structure for creating a sold item."""

    Code: str = Field(..., description="Item code (product SKU)")
    Name: str = Field(..., description="Item name")
    IsSold: bool = True
    SalesDetails: XeroSalesDetails = Field(..., description="Sales defaults")


# Response types
class XeroItem(BaseModel):
    """Xero item as returned by the Items endpoint."""

    model_config = ConfigDict(extra="allow")

    ItemID: Optional[str] = Field(None, description="Xero item identifier")
    Code: str = Field(..., description="Item code")
    Name: Optional[str] = Field(None, description="Item name")


class XeroAccount(BaseModel):
    """Xero account structure."""

    model_config = ConfigDict(extra="allow")

    AccountID: Optional[str] = Field(None, description="Xero account identifier")
    Code: Optional[str] = Field(None, description="Account code")
    Name: Optional[str] = Field(None, description="Account name")
    Type: Optional[str] = Field(None, description="Account type")
