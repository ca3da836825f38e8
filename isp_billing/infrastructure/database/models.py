"""SQLAlchemy ORM models for the billing ledger"""

import uuid
from sqlalchemy import Column, String, Boolean, Float, DateTime, Integer, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from isp_billing.domain.models import (
    ContactStatus,
    ContractState,
    InvoiceState,
    PaymentState,
    PlanCategory,
    Role,
    ServiceRequestStatus,
)

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class Customer(Base):
    """Registered customer (or administrator) with a USD-equivalent balance"""

    __tablename__ = "customer"

    id = Column(String(36), primary_key=True, default=_new_id)
    cedula = Column(String(16), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    phone = Column(String(16), nullable=True)
    city = Column(Text, nullable=True)
    street = Column(Text, nullable=True)
    apartment = Column(Text, nullable=True)
    role = Column(String(16), nullable=False, default=Role.CUSTOMER.value)
    balance_usd = Column(Float, nullable=False, default=0.0)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    contract = relationship("Contract", back_populates="customer", uselist=False)
    invoices = relationship("Invoice", back_populates="customer")


class Plan(Base):
    """Service tier offered to customers"""

    __tablename__ = "plan"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(Text, nullable=False)
    bandwidth_mbps = Column(Integer, nullable=False)
    price_usd = Column(Float, nullable=False)
    category = Column(String(16), nullable=False, default=PlanCategory.HOME.value)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class Contract(Base):
    """Binds one customer to one plan; the sole authority on service suspension"""

    __tablename__ = "contract"

    id = Column(String(36), primary_key=True, default=_new_id)
    customer_id = Column(String(36), ForeignKey("customer.id"), nullable=False, unique=True)
    plan_id = Column(String(36), ForeignKey("plan.id"), nullable=False)
    state = Column(String(16), nullable=False, default=ContractState.ACTIVE.value)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    customer = relationship("Customer", back_populates="contract")
    plan = relationship("Plan")


class Invoice(Base):
    """Billing document for one period; never deleted"""

    __tablename__ = "invoice"

    id = Column(String(36), primary_key=True, default=_new_id)
    customer_id = Column(String(36), ForeignKey("customer.id"), nullable=False, index=True)
    plan_id = Column(String(36), ForeignKey("plan.id"), nullable=False)
    period = Column(String(7), nullable=False)  # MM-YYYY
    detail = Column(Text, nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    amount = Column(Float, nullable=False)
    amount_paid = Column(Float, nullable=False, default=0.0)
    exchange_rate = Column(Float, nullable=False)
    state = Column(String(16), nullable=False, default=InvoiceState.PENDING.value, index=True)
    issue_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False, index=True)
    paid_date = Column(DateTime, nullable=True)
    payment_reference = Column(Text, nullable=True)
    reminder_sent = Column(Boolean, nullable=False, default=False)

    customer = relationship("Customer", back_populates="invoices")
    plan = relationship("Plan")
    payments = relationship("Payment", back_populates="invoice", order_by="Payment.reported_at")


class Payment(Base):
    """Immutable report of funds sent against an invoice"""

    __tablename__ = "payment"
    __table_args__ = (UniqueConstraint("invoice_id", "reference", name="uq_payment_invoice_reference"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    customer_id = Column(String(36), ForeignKey("customer.id"), nullable=False, index=True)
    invoice_id = Column(String(36), ForeignKey("invoice.id"), nullable=False, index=True)
    currency = Column(String(3), nullable=False)
    amount = Column(Float, nullable=False)
    amount_usd = Column(Float, nullable=False)
    exchange_rate = Column(Float, nullable=True)  # Only for local currency payments
    bank_origin = Column(Text, nullable=False)
    destination_account = Column(Text, nullable=False)
    reference = Column(Text, nullable=False)
    state = Column(String(16), nullable=False, default=PaymentState.REPORTED.value)
    reported_at = Column(DateTime, nullable=False)

    invoice = relationship("Invoice", back_populates="payments")


class BalanceEntry(Base):
    """Append-only trail of every balance mutation"""

    __tablename__ = "balance_entry"

    id = Column(String(36), primary_key=True, default=_new_id)
    customer_id = Column(String(36), ForeignKey("customer.id"), nullable=False, index=True)
    amount_usd = Column(Float, nullable=False)  # Negative for debits
    reason = Column(String(32), nullable=False)
    invoice_id = Column(String(36), ForeignKey("invoice.id"), nullable=True)
    payment_id = Column(String(36), ForeignKey("payment.id"), nullable=True)
    created_at = Column(DateTime, nullable=False)


class ContactMessage(Base):
    """Message left through the public contact form"""

    __tablename__ = "contact_message"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(Text, nullable=False)
    email = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default=ContactStatus.PENDING.value)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)


class ServiceRequest(Base):
    """Installation request from a prospect, before any account exists"""

    __tablename__ = "service_request"

    id = Column(String(36), primary_key=True, default=_new_id)
    cedula = Column(String(16), nullable=False, unique=True, index=True)
    plan_name = Column(Text, nullable=False)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(16), nullable=False)
    alternate_phone = Column(String(16), nullable=True)
    alternate_email = Column(String(255), nullable=True)
    birth_date = Column(String(10), nullable=True)  # YYYY-MM-DD as entered
    city = Column(Text, nullable=True)
    main_street = Column(Text, nullable=True)
    cross_street = Column(Text, nullable=True)
    house_number = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default=ServiceRequestStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)
