"""Payment application - record a reported payment and apply it to invoice and balance"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from isp_billing.config import settings
from isp_billing.domain.billing import is_settled, to_usd
from isp_billing.domain.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from isp_billing.domain.models import BalanceReason, Currency, InvoiceState, PaymentState
from isp_billing.domain.validation import require_fields, require_positive
from isp_billing.infrastructure.database.models import Payment
from isp_billing.infrastructure.database.repositories import (
    CustomerRepository,
    InvoiceRepository,
    PaymentRepository,
)
from isp_billing.infrastructure.observability.logging import log_payment_applied
from isp_billing.infrastructure.observability.metrics import payments_reported_counter
from isp_billing.services.balance import BalanceLedger
from isp_billing.services.invoices import InvoiceService, RateSource
from isp_billing.services.locks import customer_key, invoice_key, ledger_locks
from isp_billing.utils.date_utils import utcnow


class PaymentService:
    """Applies customer-reported payments atomically"""

    def __init__(self, db: Session, rates: Optional[RateSource] = None, local_currency: Optional[str] = None):
        self.db = db
        self.rates = rates
        self.local_currency = Currency(local_currency or settings.local_currency)
        self.payments = PaymentRepository(db)
        self.invoices = InvoiceRepository(db)
        self.customers = CustomerRepository(db)
        self.ledger = BalanceLedger(db)
        self.lifecycle = InvoiceService(db, rates)

    def list_for_invoice(self, invoice_id: str) -> List[Payment]:
        return self.payments.list_by_invoice(invoice_id)

    def report_payment(
        self,
        customer_id: str,
        invoice_id: str,
        amount: float,
        currency: str,
        bank_origin: str,
        destination_account: str,
        reference: str,
        now: Optional[datetime] = None,
    ) -> Payment:
        """
        Record a payment and apply its USD equivalent.

        Flow (one transaction, under the customer and invoice locks):
        1. Validate input before any side effect
        2. Check customer, invoice ownership and reference uniqueness
        3. Snapshot the exchange rate for local currency payments
        4. Create the payment, credit the balance, add to amount_paid
        5. Settle the invoice once amount_paid reaches its face value

        Raises:
            InvalidArgumentError: Missing fields, non-positive amount, unknown currency,
                or an invoice owned by another customer
            NotFoundError: Unknown customer or invoice
            ConflictError: The (invoice, reference) pair was already reported
        """
        require_fields(
            {
                "customer_id": customer_id,
                "invoice_id": invoice_id,
                "amount": amount,
                "currency": currency,
                "bank_origin": bank_origin,
                "destination_account": destination_account,
                "reference": reference,
            },
            ["customer_id", "invoice_id", "amount", "currency", "bank_origin", "destination_account", "reference"],
        )
        require_positive("amount", amount)
        try:
            payment_currency = Currency(currency.upper())
        except ValueError:
            raise InvalidArgumentError(f"Unsupported currency: {currency}")

        now = now or utcnow()
        reference = reference.strip()

        with ledger_locks.hold(customer_key(customer_id), invoice_key(invoice_id)):
            try:
                if not self.customers.get(customer_id):
                    raise NotFoundError(f"Customer {customer_id} not found")
                invoice = self.invoices.get(invoice_id)
                if not invoice:
                    raise NotFoundError(f"Invoice {invoice_id} not found")
                self.db.refresh(invoice)
                if invoice.customer_id != customer_id:
                    raise InvalidArgumentError("Invoice does not belong to this customer")
                if self.payments.get_by_reference(invoice_id, reference):
                    raise ConflictError(f"Payment reference {reference} already reported for this invoice")

                rate = None
                if payment_currency == self.local_currency:
                    rate = self.rates.current_rate() if self.rates else settings.default_exchange_rate
                amount_usd = to_usd(amount, payment_currency, rate)

                payment = self.payments.create(
                    customer_id=customer_id,
                    invoice_id=invoice_id,
                    currency=payment_currency.value,
                    amount=amount,
                    amount_usd=amount_usd,
                    exchange_rate=rate,
                    bank_origin=bank_origin.strip(),
                    destination_account=destination_account.strip(),
                    reference=reference,
                    state=PaymentState.REPORTED.value,
                    reported_at=now,
                )
                self.ledger.credit(
                    customer_id,
                    amount_usd,
                    reason=BalanceReason.PAYMENT_APPLIED,
                    invoice_id=invoice_id,
                    payment_id=payment.id,
                    at=now,
                )
                self.invoices.add_paid_amount(invoice_id, amount_usd)
                self.db.refresh(invoice)

                if invoice.state != InvoiceState.PAID.value and is_settled(invoice.amount_paid, invoice.amount):
                    self.lifecycle.settle(invoice, reference=reference, now=now)

                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise ConflictError(f"Payment reference {reference} already reported for this invoice") from e
            except Exception:
                self.db.rollback()
                raise

        payments_reported_counter.labels(currency=payment.currency).inc()
        log_payment_applied(
            payment.id, invoice.id, payment.currency, payment.amount, payment.amount_usd, invoice.state
        )
        return payment
