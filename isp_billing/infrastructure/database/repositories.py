"""Data access layer for billing entities"""

from datetime import datetime
from typing import Any, Iterable, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from isp_billing.domain.models import BalanceReason, ContractState, InvoiceState
from isp_billing.infrastructure.database.models import (
    BalanceEntry,
    ContactMessage,
    Contract,
    Customer,
    Invoice,
    Payment,
    Plan,
    ServiceRequest,
)


class CustomerRepository:
    """Repository for customers and their balances"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, customer_id: str, include_deleted: bool = False) -> Optional[Customer]:
        query = self.db.query(Customer).filter(Customer.id == customer_id)
        if not include_deleted:
            query = query.filter(Customer.is_deleted.is_(False))
        return query.first()

    def get_by_email(self, email: str) -> Optional[Customer]:
        return (
            self.db.query(Customer)
            .filter(Customer.email == email, Customer.is_deleted.is_(False))
            .first()
        )

    def find_duplicate(self, cedula: str, email: str) -> Optional[Customer]:
        """Uniqueness covers soft-deleted customers too"""
        return (
            self.db.query(Customer)
            .filter(or_(Customer.cedula == cedula, Customer.email == email))
            .first()
        )

    def email_taken(self, email: str, exclude_id: str) -> bool:
        return (
            self.db.query(Customer.id)
            .filter(Customer.email == email, Customer.id != exclude_id)
            .first()
            is not None
        )

    def create(self, **fields: Any) -> Customer:
        customer = Customer(**fields)
        self.db.add(customer)
        self.db.flush()
        return customer

    def list_active(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        return (
            self.db.query(Customer)
            .filter(Customer.is_deleted.is_(False))
            .order_by(Customer.created_at)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def adjust_balance(self, customer_id: str, delta_usd: float) -> int:
        """Atomic in-database increment; returns affected row count"""
        result = self.db.execute(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(balance_usd=Customer.balance_usd + delta_usd)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def current_balance(self, customer_id: str) -> Optional[float]:
        return self.db.execute(
            select(Customer.balance_usd).where(Customer.id == customer_id)
        ).scalar_one_or_none()


class PlanRepository:
    """Repository for the plan catalog"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, plan_id: str) -> Optional[Plan]:
        return self.db.query(Plan).filter(Plan.id == plan_id).first()

    def list(self, active_only: bool = False) -> List[Plan]:
        query = self.db.query(Plan)
        if active_only:
            query = query.filter(Plan.active.is_(True))
        return query.order_by(Plan.price_usd).all()

    def count(self) -> int:
        return self.db.query(Plan).count()

    def create(self, **fields: Any) -> Plan:
        plan = Plan(**fields)
        self.db.add(plan)
        self.db.flush()
        return plan


class ContractRepository:
    """Repository for customer contracts"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, contract_id: str) -> Optional[Contract]:
        return self.db.query(Contract).filter(Contract.id == contract_id).first()

    def get_by_customer(self, customer_id: str) -> Optional[Contract]:
        return self.db.query(Contract).filter(Contract.customer_id == customer_id).first()

    def list(self) -> List[Contract]:
        return self.db.query(Contract).order_by(Contract.created_at).all()

    def create(self, customer_id: str, plan_id: str) -> Contract:
        contract = Contract(customer_id=customer_id, plan_id=plan_id, state=ContractState.ACTIVE.value)
        self.db.add(contract)
        self.db.flush()
        return contract

    def transition(self, contract_id: str, from_states: Iterable[ContractState], to_state: ContractState) -> int:
        """Compare-and-set state change; 0 rows means the contract was not in from_states"""
        result = self.db.execute(
            update(Contract)
            .where(Contract.id == contract_id, Contract.state.in_([s.value for s in from_states]))
            .values(state=to_state.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class InvoiceRepository:
    """Repository for invoices"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, invoice_id: str) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).first()

    def create(self, **fields: Any) -> Invoice:
        invoice = Invoice(**fields)
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def list_all(self, limit: int = 100, offset: int = 0) -> List[Invoice]:
        return (
            self.db.query(Invoice)
            .order_by(Invoice.issue_date.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_by_customer(self, customer_id: str) -> List[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(Invoice.customer_id == customer_id)
            .order_by(Invoice.issue_date.desc())
            .all()
        )

    def pending_ids(self) -> List[str]:
        return list(
            self.db.execute(
                select(Invoice.id).where(Invoice.state == InvoiceState.PENDING.value).order_by(Invoice.due_date)
            ).scalars()
        )

    def add_paid_amount(self, invoice_id: str, delta_usd: float) -> int:
        """Atomic in-database increment of amount_paid"""
        result = self.db.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .values(amount_paid=Invoice.amount_paid + delta_usd)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def transition(
        self,
        invoice_id: str,
        from_states: Iterable[InvoiceState],
        to_state: InvoiceState,
        **values: Any,
    ) -> int:
        """Compare-and-set state change; 0 rows means the invoice was not in from_states"""
        result = self.db.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id, Invoice.state.in_([s.value for s in from_states]))
            .values(state=to_state.value, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def mark_reminder_sent(self, invoice_id: str) -> int:
        result = self.db.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .values(reminder_sent=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class PaymentRepository:
    """Repository for reported payments"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields: Any) -> Payment:
        payment = Payment(**fields)
        self.db.add(payment)
        self.db.flush()
        return payment

    def get_by_reference(self, invoice_id: str, reference: str) -> Optional[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.invoice_id == invoice_id, Payment.reference == reference)
            .first()
        )

    def list_by_invoice(self, invoice_id: str) -> List[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.invoice_id == invoice_id)
            .order_by(Payment.reported_at)
            .all()
        )


class BalanceEntryRepository:
    """Append-only repository for balance movements"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        customer_id: str,
        amount_usd: float,
        reason: BalanceReason,
        created_at: datetime,
        invoice_id: Optional[str] = None,
        payment_id: Optional[str] = None,
    ) -> BalanceEntry:
        entry = BalanceEntry(
            customer_id=customer_id,
            amount_usd=amount_usd,
            reason=reason.value,
            invoice_id=invoice_id,
            payment_id=payment_id,
            created_at=created_at,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_by_customer(self, customer_id: str, limit: int = 50) -> List[BalanceEntry]:
        return (
            self.db.query(BalanceEntry)
            .filter(BalanceEntry.customer_id == customer_id)
            .order_by(BalanceEntry.created_at.desc())
            .limit(limit)
            .all()
        )


class ContactMessageRepository:
    """Repository for contact form messages"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields: Any) -> ContactMessage:
        message = ContactMessage(**fields)
        self.db.add(message)
        self.db.flush()
        return message

    def get(self, message_id: str) -> Optional[ContactMessage]:
        return self.db.query(ContactMessage).filter(ContactMessage.id == message_id).first()

    def list_recent(self, limit: int = 100, offset: int = 0) -> List[ContactMessage]:
        return (
            self.db.query(ContactMessage)
            .order_by(ContactMessage.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )


class ServiceRequestRepository:
    """Repository for installation requests"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields: Any) -> ServiceRequest:
        request = ServiceRequest(**fields)
        self.db.add(request)
        self.db.flush()
        return request

    def get(self, request_id: str) -> Optional[ServiceRequest]:
        return self.db.query(ServiceRequest).filter(ServiceRequest.id == request_id).first()

    def get_by_cedula(self, cedula: str) -> Optional[ServiceRequest]:
        return self.db.query(ServiceRequest).filter(ServiceRequest.cedula == cedula).first()

    def list_recent(self, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[ServiceRequest]:
        query = self.db.query(ServiceRequest)
        if status:
            query = query.filter(ServiceRequest.status == status)
        return query.order_by(ServiceRequest.created_at.desc()).offset(offset).limit(limit).all()
