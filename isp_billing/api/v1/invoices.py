"""Invoice endpoints - issue, read and administrative transitions"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from isp_billing.api.dependencies import ensure_access, get_exchange_rate_client, get_principal, require_admin
from isp_billing.api.v1.schemas import InvoiceCreate, InvoicePayRequest, InvoiceResponse, invoice_response
from isp_billing.domain.models import Principal
from isp_billing.infrastructure.clients.exchange_rate import ExchangeRateClient
from isp_billing.infrastructure.database.session import get_db
from isp_billing.services.invoices import InvoiceService

router = APIRouter()


@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def issue_invoice(
    request_body: InvoiceCreate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    rates: ExchangeRateClient = Depends(get_exchange_rate_client),
):
    """
    Issue an invoice for the plan's current price.

    The customer's balance is debited by the invoice amount in the same transaction.
    """
    invoice = InvoiceService(db, rates).issue(request_body.customer_id, request_body.plan_id)
    return invoice_response(invoice)


@router.get("/invoices", response_model=List[InvoiceResponse])
def list_invoices(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [invoice_response(i) for i in InvoiceService(db).list_all(limit=limit, offset=offset)]


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def read_invoice(invoice_id: str, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    invoice = InvoiceService(db).get(invoice_id)
    ensure_access(principal, invoice.customer_id)
    return invoice_response(invoice)


@router.post("/invoices/{invoice_id}/pay", response_model=InvoiceResponse)
def mark_invoice_paid(
    invoice_id: str,
    request_body: InvoicePayRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Manual settlement by the owner or an administrator; reactivates a suspended contract"""
    service = InvoiceService(db)
    ensure_access(principal, service.get(invoice_id).customer_id)
    invoice = service.mark_paid(invoice_id, reference=request_body.reference)
    return invoice_response(invoice)


@router.post("/invoices/{invoice_id}/overdue", response_model=InvoiceResponse)
def mark_invoice_overdue(invoice_id: str, _: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    invoice = InvoiceService(db).mark_overdue(invoice_id)
    return invoice_response(invoice)
