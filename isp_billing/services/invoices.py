"""Invoice lifecycle - issuance and the pending/paid/overdue state machine"""

import logging
from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from sqlalchemy.orm import Session

from isp_billing.config import settings
from isp_billing.domain.billing import (
    billing_period,
    due_date_for,
    ensure_invoice_transition,
    generate_payment_reference,
    invoice_detail,
)
from isp_billing.domain.exceptions import InvalidTransitionError, NotFoundError
from isp_billing.domain.models import BalanceReason, ContractState, InvoiceState
from isp_billing.infrastructure.database.models import Invoice
from isp_billing.infrastructure.database.repositories import (
    ContractRepository,
    CustomerRepository,
    InvoiceRepository,
    PlanRepository,
)
from isp_billing.infrastructure.observability.logging import log_invoice_issued
from isp_billing.infrastructure.observability.metrics import (
    record_contract_transition,
    record_invoice_issued,
    record_invoice_transition,
)
from isp_billing.services.balance import BalanceLedger
from isp_billing.services.locks import customer_key, invoice_key, ledger_locks
from isp_billing.utils.date_utils import utcnow


class RateSource(Protocol):
    def current_rate(self) -> float: ...


class InvoiceService:
    """Issues invoices and moves them through their states"""

    def __init__(self, db: Session, rates: Optional[RateSource] = None, due_days: Optional[int] = None):
        self.db = db
        self.rates = rates
        self.due_days = due_days if due_days is not None else settings.invoice_due_days
        self.invoices = InvoiceRepository(db)
        self.customers = CustomerRepository(db)
        self.plans = PlanRepository(db)
        self.contracts = ContractRepository(db)
        self.ledger = BalanceLedger(db)

    # Reads

    def get(self, invoice_id: str) -> Invoice:
        invoice = self.invoices.get(invoice_id)
        if not invoice:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    def list_all(self, limit: int = 100, offset: int = 0) -> List[Invoice]:
        return self.invoices.list_all(limit=limit, offset=offset)

    def list_for_customer(self, customer_id: str) -> List[Invoice]:
        return self.invoices.list_by_customer(customer_id)

    # Issuance

    def issue(self, customer_id: str, plan_id: str, now: Optional[datetime] = None, commit: bool = True) -> Invoice:
        """
        Issue an invoice for one billing period of a plan.

        The customer is charged ahead: the balance is debited by the plan
        price at issuance and credited back as payments arrive. The exchange
        rate is captured once here and never re-queried.

        Raises:
            NotFoundError: If the customer or plan does not exist
        """
        now = now or utcnow()
        with ledger_locks.hold(customer_key(customer_id)):
            try:
                customer = self.customers.get(customer_id)
                if not customer:
                    raise NotFoundError(f"Customer {customer_id} not found")
                plan = self.plans.get(plan_id)
                if not plan:
                    raise NotFoundError(f"Plan {plan_id} not found")

                rate = self.rates.current_rate() if self.rates else settings.default_exchange_rate
                period = billing_period(now)

                invoice = self.invoices.create(
                    customer_id=customer.id,
                    plan_id=plan.id,
                    period=period,
                    detail=invoice_detail(plan.name, period),
                    currency="USD",
                    amount=plan.price_usd,
                    amount_paid=0.0,
                    exchange_rate=rate,
                    state=InvoiceState.PENDING.value,
                    issue_date=now,
                    due_date=due_date_for(now, self.due_days),
                    payment_reference=generate_payment_reference(),
                    reminder_sent=False,
                )
                self.ledger.debit(
                    customer.id,
                    plan.price_usd,
                    reason=BalanceReason.INVOICE_ISSUED,
                    invoice_id=invoice.id,
                    at=now,
                )
                if commit:
                    self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        if commit:
            self.announce_issued(invoice)
        return invoice

    def announce_issued(self, invoice: Invoice) -> None:
        """Metrics and log for a stored invoice; callers that defer the commit call this after it"""
        record_invoice_issued(invoice.amount)
        log_invoice_issued(invoice.id, invoice.customer_id, invoice.amount, invoice.exchange_rate)

    # Transitions

    def mark_paid(self, invoice_id: str, reference: Optional[str] = None, now: Optional[datetime] = None) -> Invoice:
        """
        Settle an invoice by external confirmation (administrator or owner).

        Leaves amount_paid and the balance untouched; only Payment Application
        moves money.
        """
        invoice = self.get(invoice_id)
        with ledger_locks.hold(customer_key(invoice.customer_id), invoice_key(invoice.id)):
            try:
                self.db.refresh(invoice)
                self.settle(invoice, reference=reference, now=now)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
        return invoice

    def mark_overdue(self, invoice_id: str, now: Optional[datetime] = None) -> Invoice:
        """Administrative overdue marking; same unit of work as the sweep"""
        invoice = self.get(invoice_id)
        with ledger_locks.hold(customer_key(invoice.customer_id), invoice_key(invoice.id)):
            try:
                self.db.refresh(invoice)
                self.expire(invoice)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
        return invoice

    def settle(self, invoice: Invoice, reference: Optional[str] = None, now: Optional[datetime] = None) -> bool:
        """
        Move an invoice to paid and reactivate a suspended contract.

        Must run under the invoice lock inside the caller's transaction.
        Returns whether the contract was reactivated.
        """
        ensure_invoice_transition(InvoiceState(invoice.state), InvoiceState.PAID)

        values = {"paid_date": now or utcnow()}
        if reference:
            values["payment_reference"] = reference
        changed = self.invoices.transition(
            invoice.id, [InvoiceState.PENDING, InvoiceState.OVERDUE], InvoiceState.PAID, **values
        )
        if not changed:
            self.db.refresh(invoice)
            raise InvalidTransitionError("Invoice", invoice.state, InvoiceState.PAID.value)
        record_invoice_transition(InvoiceState.PAID.value)

        reactivated = self._move_contract(invoice.customer_id, ContractState.SUSPENDED, ContractState.ACTIVE)
        self.db.refresh(invoice)
        return reactivated

    def expire(self, invoice: Invoice) -> Tuple[bool, bool]:
        """
        Move an invoice to overdue and suspend an active contract.

        Idempotent for invoices already overdue. Must run under the invoice
        lock inside the caller's transaction. Returns (invoice_changed,
        contract_suspended).
        """
        current = InvoiceState(invoice.state)
        changed = False
        if current != InvoiceState.OVERDUE:
            ensure_invoice_transition(current, InvoiceState.OVERDUE)
            if not self.invoices.transition(invoice.id, [InvoiceState.PENDING], InvoiceState.OVERDUE):
                self.db.refresh(invoice)
                raise InvalidTransitionError("Invoice", invoice.state, InvoiceState.OVERDUE.value)
            record_invoice_transition(InvoiceState.OVERDUE.value)
            logging.info("Invoice marked overdue", extra={"invoice_id": invoice.id})
            changed = True

        suspended = self._move_contract(invoice.customer_id, ContractState.ACTIVE, ContractState.SUSPENDED)
        self.db.refresh(invoice)
        return changed, suspended

    def _move_contract(self, customer_id: str, from_state: ContractState, to_state: ContractState) -> bool:
        contract = self.contracts.get_by_customer(customer_id)
        if not contract:
            return False
        if not self.contracts.transition(contract.id, [from_state], to_state):
            return False
        self.db.refresh(contract)
        record_contract_transition(to_state.value)
        logging.info(
            "Contract state changed",
            extra={"contract_id": contract.id, "from_state": from_state.value, "to_state": to_state.value},
        )
        return True
