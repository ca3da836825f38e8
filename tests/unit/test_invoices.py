"""Unit tests for invoice issuance, the balance ledger and invoice transitions"""

import pytest
from datetime import datetime
from isp_billing.domain.exceptions import InvalidArgumentError, InvalidTransitionError, NotFoundError
from isp_billing.domain.models import BalanceReason, ContractState, InvoiceState
from isp_billing.infrastructure.database.repositories import BalanceEntryRepository
from isp_billing.services.balance import BalanceLedger
from isp_billing.services.contracts import ContractService
from isp_billing.services.invoices import InvoiceService
from tests.conftest import FixedRates

ISSUED_AT = datetime(2026, 3, 1, 9, 0)


def test_issue_snapshots_rate_and_debits_balance(db, customer, plan):
    rates = FixedRates(100.0)
    invoice = InvoiceService(db, rates).issue(customer.id, plan.id, now=ISSUED_AT)

    assert invoice.state == InvoiceState.PENDING.value
    assert invoice.amount == 25.0
    assert invoice.amount_paid == 0.0
    assert invoice.exchange_rate == 100.0
    assert invoice.period == "03-2026"
    assert invoice.detail == "HOME BASIC 03-2026"
    assert invoice.due_date == datetime(2026, 3, 31, 9, 0)
    assert invoice.payment_reference.startswith("INV-")
    assert rates.calls == 1

    assert BalanceLedger(db).balance(customer.id) == pytest.approx(-25.0)
    entries = BalanceEntryRepository(db).list_by_customer(customer.id)
    assert [(e.amount_usd, e.reason, e.invoice_id) for e in entries] == [
        (-25.0, BalanceReason.INVOICE_ISSUED.value, invoice.id)
    ]


def test_issue_keeps_rate_when_provider_changes_later(db, customer, plan):
    rates = FixedRates(100.0)
    invoice = InvoiceService(db, rates).issue(customer.id, plan.id)
    rates.rate = 150.0

    db.refresh(invoice)
    assert invoice.exchange_rate == 100.0


def test_issue_unknown_customer_or_plan(db, customer, plan):
    service = InvoiceService(db, FixedRates())
    with pytest.raises(NotFoundError):
        service.issue("missing", plan.id)
    with pytest.raises(NotFoundError):
        service.issue(customer.id, "missing")

    assert service.list_for_customer(customer.id) == []
    assert BalanceLedger(db).balance(customer.id) == 0.0


def test_ledger_rejects_negative_amounts_and_unknown_customers(db, customer):
    ledger = BalanceLedger(db)
    with pytest.raises(InvalidArgumentError):
        ledger.credit(customer.id, -1.0)
    with pytest.raises(InvalidArgumentError):
        ledger.credit(customer.id, float("inf"))
    with pytest.raises(NotFoundError):
        ledger.debit("missing", 5.0)


def test_mark_paid_leaves_amounts_untouched(db, customer, plan):
    service = InvoiceService(db, FixedRates())
    invoice = service.issue(customer.id, plan.id)

    paid = service.mark_paid(invoice.id, reference="BANK-001")

    assert paid.state == InvoiceState.PAID.value
    assert paid.paid_date is not None
    assert paid.payment_reference == "BANK-001"
    assert paid.amount_paid == 0.0
    assert BalanceLedger(db).balance(customer.id) == pytest.approx(-25.0)


def test_paid_invoice_cannot_go_back(db, customer, plan):
    service = InvoiceService(db, FixedRates())
    invoice = service.issue(customer.id, plan.id)
    service.mark_paid(invoice.id)

    with pytest.raises(InvalidTransitionError):
        service.mark_overdue(invoice.id)
    with pytest.raises(InvalidTransitionError):
        service.mark_paid(invoice.id)


def test_overdue_suspends_and_payment_reactivates_contract(db, customer, plan):
    contract, invoice = ContractService(db, FixedRates()).contract_plan(customer.id, plan.id)
    service = InvoiceService(db, FixedRates())

    overdue = service.mark_overdue(invoice.id)
    db.refresh(contract)
    assert overdue.state == InvoiceState.OVERDUE.value
    assert contract.state == ContractState.SUSPENDED.value

    # Marking again is a no-op
    assert service.mark_overdue(invoice.id).state == InvoiceState.OVERDUE.value

    service.mark_paid(invoice.id)
    db.refresh(contract)
    assert contract.state == ContractState.ACTIVE.value


def test_finalized_contract_is_not_reactivated(db, customer, plan):
    contracts = ContractService(db, FixedRates())
    contract, invoice = contracts.contract_plan(customer.id, plan.id)
    contracts.change_state(contract.id, "finalized")

    InvoiceService(db).mark_paid(invoice.id)
    db.refresh(contract)
    assert contract.state == ContractState.FINALIZED.value
