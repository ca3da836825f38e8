"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from isp_billing.domain.validation import (
    CEDULA_PATTERN,
    DATE_PATTERN,
    EMAIL_PATTERN,
    MESSAGE_MAX_LENGTH,
    NAME_PATTERN,
    PHONE_PATTERN,
    PLAN_NAME_PATTERN,
)
from isp_billing.infrastructure.database.models import Invoice
from isp_billing.utils.date_utils import format_local_date


# Auth

class RegisterRequest(BaseModel):
    """Request body for POST /v1/auth/register"""

    cedula: str = Field(..., pattern=CEDULA_PATTERN, description="National ID, 7-8 digits")
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., pattern=NAME_PATTERN)
    last_name: str = Field(..., pattern=NAME_PATTERN)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    city: Optional[str] = None
    street: Optional[str] = None
    apartment: Optional[str] = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Customers

class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    cedula: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    city: Optional[str] = None
    street: Optional[str] = None
    apartment: Optional[str] = None
    role: str
    balance_usd: float


class CustomerUpdate(BaseModel):
    """Request body for PATCH /v1/customers/{customer_id}; omitted fields stay as they are"""

    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    first_name: Optional[str] = Field(None, pattern=NAME_PATTERN)
    last_name: Optional[str] = Field(None, pattern=NAME_PATTERN)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    city: Optional[str] = None
    street: Optional[str] = None
    apartment: Optional[str] = None


class BalanceEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount_usd: float
    reason: str
    invoice_id: Optional[str] = None
    payment_id: Optional[str] = None
    created_at: datetime


class BalanceResponse(BaseModel):
    """Response for GET /v1/customers/{customer_id}/balance"""

    customer_id: str
    balance_usd: float
    entries: List[BalanceEntryResponse]


# Plans

class PlanCreate(BaseModel):
    name: str = Field(..., pattern=PLAN_NAME_PATTERN)
    bandwidth_mbps: int = Field(..., gt=0)
    price_usd: float = Field(..., gt=0, allow_inf_nan=False)
    category: Literal["home", "business"]


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, pattern=PLAN_NAME_PATTERN)
    bandwidth_mbps: Optional[int] = Field(None, gt=0)
    price_usd: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    category: Optional[Literal["home", "business"]] = None
    active: Optional[bool] = None


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    bandwidth_mbps: int
    price_usd: float
    category: str
    active: bool


# Contracts

class ContractCreate(BaseModel):
    """Customers contract for themselves; admins name the customer"""

    plan_id: str = Field(..., min_length=1)
    customer_id: Optional[str] = None


class ContractStateUpdate(BaseModel):
    state: Literal["active", "suspended", "finalized"]


class ContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    plan_id: str
    state: str


# Invoices

class InvoiceCreate(BaseModel):
    """Request body for POST /v1/invoices"""

    customer_id: str = Field(..., min_length=1)
    plan_id: str = Field(..., min_length=1)


class InvoicePayRequest(BaseModel):
    reference: Optional[str] = Field(None, max_length=64)


class InvoiceResponse(BaseModel):
    id: str
    customer_id: str
    plan_id: str
    period: str
    detail: Optional[str] = None
    currency: str
    amount: float
    amount_paid: float
    amount_pending: float
    exchange_rate: float
    amount_local: float
    state: str
    issue_date: datetime
    issue_date_display: str
    due_date: datetime
    paid_date: Optional[datetime] = None
    payment_reference: Optional[str] = None
    reminder_sent: bool


class ContractedPlanResponse(BaseModel):
    """Response for POST /v1/contracts"""

    contract: ContractResponse
    invoice: InvoiceResponse


# Payments

class PaymentReport(BaseModel):
    """Request body for POST /v1/invoices/{invoice_id}/payments"""

    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Amount in the payment currency")
    currency: Literal["USD", "VED"]
    bank_origin: str = Field(..., min_length=1)
    destination_account: str = Field(..., min_length=1)
    reference: str = Field(..., min_length=1, max_length=64)


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    invoice_id: str
    currency: str
    amount: float
    amount_usd: float
    exchange_rate: Optional[float] = None
    bank_origin: str
    destination_account: str
    reference: str
    state: str
    reported_at: datetime


# Inquiries

class ContactMessageCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)


class ContactMessageStatusUpdate(BaseModel):
    status: Literal["pending", "read", "answered"]


class ContactMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    message: str
    status: str
    created_at: datetime


class ServiceRequestCreate(BaseModel):
    """Request body for POST /v1/service-requests"""

    cedula: str = Field(..., pattern=CEDULA_PATTERN)
    plan_name: str = Field(..., pattern=PLAN_NAME_PATTERN)
    first_name: str = Field(..., pattern=NAME_PATTERN)
    last_name: str = Field(..., pattern=NAME_PATTERN)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    alternate_phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    alternate_email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    birth_date: Optional[str] = Field(None, pattern=DATE_PATTERN)
    city: Optional[str] = None
    main_street: Optional[str] = None
    cross_street: Optional[str] = None
    house_number: Optional[str] = None


class ServiceRequestStatusUpdate(BaseModel):
    status: Literal["pending", "approved", "installed", "rejected"]
    notes: Optional[str] = Field(None, max_length=MESSAGE_MAX_LENGTH)


class ServiceRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    cedula: str
    plan_name: str
    first_name: str
    last_name: str
    email: str
    phone: str
    alternate_phone: Optional[str] = None
    alternate_email: Optional[str] = None
    birth_date: Optional[str] = None
    city: Optional[str] = None
    main_street: Optional[str] = None
    cross_street: Optional[str] = None
    house_number: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


# Sweep

class SweepResponse(BaseModel):
    scanned: int
    reminders_sent: int
    marked_overdue: int
    contracts_suspended: int
    failures: int


def invoice_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=invoice.id,
        customer_id=invoice.customer_id,
        plan_id=invoice.plan_id,
        period=invoice.period,
        detail=invoice.detail,
        currency=invoice.currency,
        amount=invoice.amount,
        amount_paid=invoice.amount_paid,
        amount_pending=max(invoice.amount - invoice.amount_paid, 0.0),
        exchange_rate=invoice.exchange_rate,
        amount_local=round(invoice.amount * invoice.exchange_rate, 2),
        state=invoice.state,
        issue_date=invoice.issue_date,
        issue_date_display=format_local_date(invoice.issue_date),
        due_date=invoice.due_date,
        paid_date=invoice.paid_date,
        payment_reference=invoice.payment_reference,
        reminder_sent=invoice.reminder_sent,
    )
