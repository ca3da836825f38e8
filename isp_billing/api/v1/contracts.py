"""Contract endpoints - contracting a plan and administrative state changes"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from isp_billing.api.dependencies import ensure_access, get_exchange_rate_client, get_principal, require_admin
from isp_billing.api.v1.schemas import (
    ContractCreate,
    ContractedPlanResponse,
    ContractResponse,
    ContractStateUpdate,
    invoice_response,
)
from isp_billing.domain.models import Principal
from isp_billing.infrastructure.clients.exchange_rate import ExchangeRateClient
from isp_billing.infrastructure.database.session import get_db
from isp_billing.services.contracts import ContractService

router = APIRouter()


@router.post("/contracts", response_model=ContractedPlanResponse, status_code=status.HTTP_201_CREATED)
def contract_plan(
    request_body: ContractCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    rates: ExchangeRateClient = Depends(get_exchange_rate_client),
):
    """
    Contract a plan and issue its first invoice.

    Customers contract for themselves; administrators may pass customer_id.
    """
    customer_id = request_body.customer_id or principal.customer_id
    ensure_access(principal, customer_id)

    contract, invoice = ContractService(db, rates).contract_plan(customer_id, request_body.plan_id)
    return ContractedPlanResponse(
        contract=ContractResponse.model_validate(contract),
        invoice=invoice_response(invoice),
    )


@router.get("/contracts", response_model=List[ContractResponse])
def list_contracts(_: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return [ContractResponse.model_validate(c) for c in ContractService(db).list()]


@router.patch("/contracts/{contract_id}", response_model=ContractResponse)
def change_contract_state(
    contract_id: str,
    request_body: ContractStateUpdate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    contract = ContractService(db).change_state(contract_id, request_body.state)
    return ContractResponse.model_validate(contract)
