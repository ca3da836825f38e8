"""Unit tests for pure billing rules"""

import pytest
from datetime import datetime, timedelta
from isp_billing.domain.billing import (
    billing_period,
    days_remaining,
    due_date_for,
    ensure_contract_transition,
    ensure_invoice_transition,
    generate_payment_reference,
    invoice_detail,
    is_settled,
    to_usd,
)
from isp_billing.domain.exceptions import InvalidArgumentError, InvalidTransitionError
from isp_billing.domain.models import ContractState, Currency, InvoiceState
from isp_billing.domain.validation import check, require_fields, require_positive
from isp_billing.utils.date_utils import format_local_date


def test_due_date_is_thirty_days_after_issue():
    issued = datetime(2026, 3, 1, 10, 0)
    assert due_date_for(issued) == datetime(2026, 3, 31, 10, 0)


def test_billing_period_and_detail():
    period = billing_period(datetime(2026, 3, 15))
    assert period == "03-2026"
    assert invoice_detail("Home Basic", period) == "HOME BASIC 03-2026"


def test_payment_reference_format():
    reference = generate_payment_reference(now=1700000000.5)
    prefix, millis, suffix = reference.split("-")
    assert prefix == "INV"
    assert millis == "1700000000500"
    assert 0 <= int(suffix) <= 999


def test_days_remaining_rounds_up():
    now = datetime(2026, 3, 1, 12, 0)
    assert days_remaining(now + timedelta(hours=36), now) == 2
    assert days_remaining(now + timedelta(hours=1), now) == 1
    assert days_remaining(now, now) == 0
    assert days_remaining(now - timedelta(hours=1), now) == 0
    assert days_remaining(now - timedelta(hours=49), now) == -2


def test_to_usd_divides_local_amounts_by_rate():
    assert to_usd(2500.0, Currency.VED, 100.0) == pytest.approx(25.0)
    assert to_usd(12.5, Currency.USD, None) == 12.5


@pytest.mark.parametrize("rate", [None, 0.0, -5.0])
def test_to_usd_requires_positive_rate_for_local_currency(rate):
    with pytest.raises(InvalidArgumentError):
        to_usd(100.0, Currency.VED, rate)


def test_invoice_transitions():
    ensure_invoice_transition(InvoiceState.PENDING, InvoiceState.PAID)
    ensure_invoice_transition(InvoiceState.PENDING, InvoiceState.OVERDUE)
    ensure_invoice_transition(InvoiceState.OVERDUE, InvoiceState.PAID)

    with pytest.raises(InvalidTransitionError):
        ensure_invoice_transition(InvoiceState.PAID, InvoiceState.PENDING)
    with pytest.raises(InvalidTransitionError):
        ensure_invoice_transition(InvoiceState.PAID, InvoiceState.OVERDUE)
    with pytest.raises(InvalidTransitionError):
        ensure_invoice_transition(InvoiceState.OVERDUE, InvoiceState.PENDING)


def test_finalized_contract_is_terminal():
    ensure_contract_transition(ContractState.ACTIVE, ContractState.SUSPENDED)
    ensure_contract_transition(ContractState.SUSPENDED, ContractState.ACTIVE)

    for target in (ContractState.ACTIVE, ContractState.SUSPENDED):
        with pytest.raises(InvalidTransitionError):
            ensure_contract_transition(ContractState.FINALIZED, target)


def test_is_settled_tolerates_float_noise():
    assert is_settled(12.5 + 12.5, 25.0)
    assert is_settled(0.1 + 0.2, 0.3)
    assert not is_settled(24.99, 25.0)


def test_validation_rules():
    assert check("cedula", "12345678") == "12345678"
    assert check("phone", "+04141234567") == "+04141234567"

    for rule, value in [
        ("cedula", "123"),
        ("email", "not-an-email"),
        ("password", "onlyletters"),
        ("name", "R2D2"),
        ("phone", "0414"),
    ]:
        with pytest.raises(InvalidArgumentError):
            check(rule, value)


def test_require_fields_lists_blank_values():
    with pytest.raises(InvalidArgumentError) as exc_info:
        require_fields({"a": "x", "b": " ", "c": None}, ["a", "b", "c"])
    assert "b, c" in str(exc_info.value)


def test_require_positive():
    assert require_positive("amount", 1.5) == 1.5
    with pytest.raises(InvalidArgumentError):
        require_positive("amount", 0)
    for value in (float("inf"), float("-inf"), float("nan")):
        with pytest.raises(InvalidArgumentError):
            require_positive("amount", value)


def test_format_local_date():
    assert format_local_date(datetime(2026, 3, 5)) == "05/03/2026"
    assert format_local_date(None) == ""
