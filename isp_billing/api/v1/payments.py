"""Payment reporting endpoints"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from isp_billing.api.dependencies import ensure_access, get_exchange_rate_client, get_principal
from isp_billing.api.v1.schemas import PaymentReport, PaymentResponse
from isp_billing.domain.models import Principal
from isp_billing.infrastructure.clients.exchange_rate import ExchangeRateClient
from isp_billing.infrastructure.database.session import get_db
from isp_billing.services.invoices import InvoiceService
from isp_billing.services.payments import PaymentService

router = APIRouter()


@router.post(
    "/invoices/{invoice_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
def report_payment(
    invoice_id: str,
    request_body: PaymentReport,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    rates: ExchangeRateClient = Depends(get_exchange_rate_client),
):
    """
    Report a payment against one of the caller's invoices.

    Local currency amounts are converted to USD at the current rate, credited
    to the balance, and settle the invoice once it is fully covered.
    """
    invoice = InvoiceService(db).get(invoice_id)
    ensure_access(principal, invoice.customer_id)

    payment = PaymentService(db, rates).report_payment(
        customer_id=invoice.customer_id,
        invoice_id=invoice_id,
        amount=request_body.amount,
        currency=request_body.currency,
        bank_origin=request_body.bank_origin,
        destination_account=request_body.destination_account,
        reference=request_body.reference,
    )
    return PaymentResponse.model_validate(payment)


@router.get("/invoices/{invoice_id}/payments", response_model=List[PaymentResponse])
def list_payments(invoice_id: str, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    invoice = InvoiceService(db).get(invoice_id)
    ensure_access(principal, invoice.customer_id)
    return [PaymentResponse.model_validate(p) for p in PaymentService(db).list_for_invoice(invoice_id)]
