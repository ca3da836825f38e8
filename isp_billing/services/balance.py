"""Account balance ledger - USD-equivalent debits and credits per customer"""

import math
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from isp_billing.domain.exceptions import InvalidArgumentError, NotFoundError
from isp_billing.domain.models import BalanceReason
from isp_billing.infrastructure.database.repositories import BalanceEntryRepository, CustomerRepository
from isp_billing.utils.date_utils import utcnow


class BalanceLedger:
    """
    Additive adjustments to Customer.balance_usd.

    Runs inside the caller's transaction; every adjustment is an atomic
    in-database increment paired with an appended BalanceEntry.
    """

    def __init__(self, db: Session):
        self.customers = CustomerRepository(db)
        self.entries = BalanceEntryRepository(db)

    def debit(
        self,
        customer_id: str,
        amount_usd: float,
        reason: BalanceReason = BalanceReason.INVOICE_ISSUED,
        invoice_id: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> None:
        self._adjust(customer_id, -self._positive(amount_usd), reason, invoice_id, None, at)

    def credit(
        self,
        customer_id: str,
        amount_usd: float,
        reason: BalanceReason = BalanceReason.PAYMENT_APPLIED,
        invoice_id: Optional[str] = None,
        payment_id: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> None:
        self._adjust(customer_id, self._positive(amount_usd), reason, invoice_id, payment_id, at)

    def balance(self, customer_id: str) -> float:
        balance = self.customers.current_balance(customer_id)
        if balance is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return balance

    def _adjust(
        self,
        customer_id: str,
        delta_usd: float,
        reason: BalanceReason,
        invoice_id: Optional[str],
        payment_id: Optional[str],
        at: Optional[datetime],
    ) -> None:
        if self.customers.adjust_balance(customer_id, delta_usd) == 0:
            raise NotFoundError(f"Customer {customer_id} not found")
        self.entries.append(
            customer_id=customer_id,
            amount_usd=delta_usd,
            reason=reason,
            created_at=at or utcnow(),
            invoice_id=invoice_id,
            payment_id=payment_id,
        )

    @staticmethod
    def _positive(amount_usd: float) -> float:
        if amount_usd is None or not math.isfinite(amount_usd) or amount_usd < 0:
            raise InvalidArgumentError("Balance adjustments take a finite non-negative amount")
        return amount_usd
