"""Customer profile, balance and invoice history endpoints"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from isp_billing.api.dependencies import ensure_access, get_principal, require_admin
from isp_billing.api.v1.schemas import (
    BalanceEntryResponse,
    BalanceResponse,
    CustomerResponse,
    CustomerUpdate,
    InvoiceResponse,
    invoice_response,
)
from isp_billing.domain.models import Principal
from isp_billing.infrastructure.database.repositories import BalanceEntryRepository
from isp_billing.infrastructure.database.session import get_db
from isp_billing.services.accounts import AccountService
from isp_billing.services.balance import BalanceLedger
from isp_billing.services.invoices import InvoiceService

router = APIRouter()


@router.get("/customers/me", response_model=CustomerResponse)
def read_me(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    return CustomerResponse.model_validate(AccountService(db).get(principal.customer_id))


@router.get("/customers", response_model=List[CustomerResponse])
def list_customers(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    customers = AccountService(db).list(limit=limit, offset=offset)
    return [CustomerResponse.model_validate(c) for c in customers]


@router.patch("/customers/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: str,
    request_body: CustomerUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    ensure_access(principal, customer_id)
    customer = AccountService(db).update_profile(customer_id, **request_body.model_dump(exclude_unset=True))
    return CustomerResponse.model_validate(customer)


@router.delete("/customers/{customer_id}", response_model=CustomerResponse)
def delete_customer(customer_id: str, _: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    """Soft delete; invoices and payments are kept"""
    return CustomerResponse.model_validate(AccountService(db).soft_delete(customer_id))


@router.get("/customers/{customer_id}/balance", response_model=BalanceResponse)
def read_balance(
    customer_id: str,
    limit: int = Query(50, ge=1, le=500),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """
    Current USD-equivalent balance with the latest ledger entries.

    Negative means the customer owes money.
    """
    ensure_access(principal, customer_id)
    balance = BalanceLedger(db).balance(customer_id)
    entries = BalanceEntryRepository(db).list_by_customer(customer_id, limit=limit)
    return BalanceResponse(
        customer_id=customer_id,
        balance_usd=balance,
        entries=[BalanceEntryResponse.model_validate(e) for e in entries],
    )


@router.get("/customers/{customer_id}/invoices", response_model=List[InvoiceResponse])
def list_customer_invoices(
    customer_id: str,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    ensure_access(principal, customer_id)
    AccountService(db).get(customer_id)
    return [invoice_response(i) for i in InvoiceService(db).list_for_customer(customer_id)]
