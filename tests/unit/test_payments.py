"""Unit tests for payment application"""

import threading
import pytest
from isp_billing.domain.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from isp_billing.domain.models import BalanceReason, ContractState, InvoiceState
from isp_billing.infrastructure.database.models import Invoice, Payment
from isp_billing.infrastructure.database.repositories import BalanceEntryRepository
from isp_billing.services.balance import BalanceLedger
from isp_billing.services.contracts import ContractService
from isp_billing.services.invoices import InvoiceService
from isp_billing.services.payments import PaymentService
from tests.conftest import FixedRates, TestingSessionLocal


def report(service, customer_id, invoice_id, amount, currency="USD", reference="REF-1"):
    return service.report_payment(
        customer_id=customer_id,
        invoice_id=invoice_id,
        amount=amount,
        currency=currency,
        bank_origin="Banco de Venezuela",
        destination_account="0102-0000-00-0000000000",
        reference=reference,
    )


@pytest.fixture
def invoice(db, customer, plan) -> Invoice:
    return InvoiceService(db, FixedRates(100.0)).issue(customer.id, plan.id)


def test_local_currency_payment_settles_invoice(db, customer, invoice):
    service = PaymentService(db, FixedRates(100.0), local_currency="VED")
    payment = report(service, customer.id, invoice.id, 2500.0, currency="VED")

    assert payment.amount_usd == pytest.approx(25.0)
    assert payment.exchange_rate == 100.0

    db.refresh(invoice)
    assert invoice.state == InvoiceState.PAID.value
    assert invoice.amount_paid == pytest.approx(25.0)
    assert invoice.paid_date is not None
    assert invoice.payment_reference == "REF-1"
    assert BalanceLedger(db).balance(customer.id) == pytest.approx(0.0)


def test_partial_payment_keeps_invoice_pending(db, customer, invoice):
    service = PaymentService(db, FixedRates(100.0))
    payment = report(service, customer.id, invoice.id, 10.0)

    assert payment.exchange_rate is None
    db.refresh(invoice)
    assert invoice.state == InvoiceState.PENDING.value
    assert invoice.amount_paid == pytest.approx(10.0)
    assert BalanceLedger(db).balance(customer.id) == pytest.approx(-15.0)

    entries = BalanceEntryRepository(db).list_by_customer(customer.id)
    credit = [e for e in entries if e.reason == BalanceReason.PAYMENT_APPLIED.value]
    assert [(e.amount_usd, e.payment_id) for e in credit] == [(10.0, payment.id)]


def test_payment_uses_rate_at_payment_time(db, customer, invoice):
    # Invoice was issued at 100, payment arrives after the rate moved to 125
    service = PaymentService(db, FixedRates(125.0))
    payment = report(service, customer.id, invoice.id, 2500.0, currency="VED")

    assert payment.amount_usd == pytest.approx(20.0)
    db.refresh(invoice)
    assert invoice.state == InvoiceState.PENDING.value


def test_overpayment_leaves_credit(db, customer, invoice):
    report(PaymentService(db, FixedRates()), customer.id, invoice.id, 30.0)

    db.refresh(invoice)
    assert invoice.state == InvoiceState.PAID.value
    assert BalanceLedger(db).balance(customer.id) == pytest.approx(5.0)


def test_payment_on_overdue_invoice_reactivates_contract(db, customer, plan):
    contract, invoice = ContractService(db, FixedRates()).contract_plan(customer.id, plan.id)
    InvoiceService(db).mark_overdue(invoice.id)

    report(PaymentService(db, FixedRates()), customer.id, invoice.id, 25.0)

    db.refresh(invoice)
    db.refresh(contract)
    assert invoice.state == InvoiceState.PAID.value
    assert contract.state == ContractState.ACTIVE.value


def test_duplicate_reference_is_rejected(db, customer, invoice):
    service = PaymentService(db, FixedRates())
    report(service, customer.id, invoice.id, 5.0, reference="REF-9")

    with pytest.raises(ConflictError):
        report(service, customer.id, invoice.id, 5.0, reference="REF-9")

    db.refresh(invoice)
    assert invoice.amount_paid == pytest.approx(5.0)
    assert BalanceLedger(db).balance(customer.id) == pytest.approx(-20.0)


@pytest.mark.parametrize(
    "amount, currency, reference",
    [
        (0.0, "USD", "REF-1"),
        (-3.0, "USD", "REF-1"),
        (float("inf"), "USD", "REF-1"),
        (float("nan"), "VED", "REF-1"),
        (10.0, "EUR", "REF-1"),
        (10.0, "USD", " "),
    ],
)
def test_invalid_input_has_no_side_effects(db, customer, invoice, amount, currency, reference):
    rates = FixedRates()
    with pytest.raises(InvalidArgumentError):
        report(PaymentService(db, rates), customer.id, invoice.id, amount, currency=currency, reference=reference)

    assert db.query(Payment).count() == 0
    assert rates.calls == 0
    assert BalanceLedger(db).balance(customer.id) == pytest.approx(-25.0)


def test_missing_entities_create_nothing(db, customer, other_customer, invoice):
    service = PaymentService(db, FixedRates())
    with pytest.raises(NotFoundError):
        report(service, customer.id, "missing", 5.0)
    with pytest.raises(NotFoundError):
        report(service, "missing", invoice.id, 5.0)
    with pytest.raises(InvalidArgumentError):
        report(service, other_customer.id, invoice.id, 5.0)

    assert db.query(Payment).count() == 0


def test_concurrent_payments_are_both_applied(db, customer, invoice):
    customer_id, invoice_id = customer.id, invoice.id
    db.commit()
    errors = []

    def pay(reference):
        session = TestingSessionLocal()
        try:
            report(PaymentService(session, FixedRates()), customer_id, invoice_id, 12.5, reference=reference)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=pay, args=(ref,)) for ref in ("REF-A", "REF-B")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    db.expire_all()
    paid = db.get(Invoice, invoice_id)
    assert paid.amount_paid == pytest.approx(25.0)
    assert paid.state == InvoiceState.PAID.value
    assert BalanceLedger(db).balance(customer_id) == pytest.approx(0.0)
