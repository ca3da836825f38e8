"""Billing rules - pure functions for invoice pricing, dating and state changes"""

import math
import random
import time
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Optional

from isp_billing.domain.exceptions import InvalidArgumentError, InvalidTransitionError
from isp_billing.domain.models import ContractState, Currency, InvoiceState

INVOICE_DUE_DAYS = 30
SECONDS_PER_DAY = 24 * 60 * 60

# Allowed invoice transitions; paid is terminal
INVOICE_TRANSITIONS: Dict[InvoiceState, FrozenSet[InvoiceState]] = {
    InvoiceState.PENDING: frozenset({InvoiceState.PAID, InvoiceState.OVERDUE}),
    InvoiceState.OVERDUE: frozenset({InvoiceState.PAID}),
    InvoiceState.PAID: frozenset(),
}

# Finalized contracts are closed for good
CONTRACT_TRANSITIONS: Dict[ContractState, FrozenSet[ContractState]] = {
    ContractState.ACTIVE: frozenset({ContractState.SUSPENDED, ContractState.FINALIZED}),
    ContractState.SUSPENDED: frozenset({ContractState.ACTIVE, ContractState.FINALIZED}),
    ContractState.FINALIZED: frozenset(),
}


def due_date_for(issue_date: datetime, due_days: int = INVOICE_DUE_DAYS) -> datetime:
    """Invoices fall due a fixed number of days after issuance"""
    return issue_date + timedelta(days=due_days)


def billing_period(issue_date: datetime) -> str:
    """Period label in MM-YYYY form, e.g. 03-2026"""
    return f"{issue_date.month:02d}-{issue_date.year}"


def invoice_detail(plan_name: str, period: str) -> str:
    return f"{plan_name.upper()} {period}"


def generate_payment_reference(now: Optional[float] = None) -> str:
    """Reference printed on the invoice: INV-<epoch ms>-<0..999>"""
    millis = int((now if now is not None else time.time()) * 1000)
    return f"INV-{millis}-{random.randint(0, 999)}"


def days_remaining(due_date: datetime, now: datetime) -> int:
    """
    Whole days left until the due date, rounded up.

    Zero or negative means the invoice is already due:
        due in 36h  -> 2
        due in 1h   -> 1
        due 1h ago  -> 0
        due 49h ago -> -2
    """
    return math.ceil((due_date - now).total_seconds() / SECONDS_PER_DAY)


def to_usd(amount: float, currency: Currency, rate: Optional[float]) -> float:
    """
    Convert a reported amount to its USD equivalent.

    Local currency amounts are divided by the rate (local units per USD);
    USD amounts pass through unchanged.
    """
    if currency == Currency.USD:
        return amount
    if rate is None or rate <= 0:
        raise InvalidArgumentError(f"A positive exchange rate is required to convert {currency.value}")
    return amount / rate


def ensure_invoice_transition(current: InvoiceState, target: InvoiceState) -> None:
    if target not in INVOICE_TRANSITIONS[current]:
        raise InvalidTransitionError("Invoice", current.value, target.value)


def ensure_contract_transition(current: ContractState, target: ContractState) -> None:
    if target not in CONTRACT_TRANSITIONS[current]:
        raise InvalidTransitionError("Contract", current.value, target.value)


def is_settled(amount_paid: float, amount: float) -> bool:
    """Payments settle the invoice once they reach its face value"""
    return amount_paid >= amount - 1e-9
