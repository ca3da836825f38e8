"""POST /v1/auth/register and /v1/auth/login"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from isp_billing.api.v1.schemas import CustomerResponse, LoginRequest, RegisterRequest, TokenResponse
from isp_billing.infrastructure.database.session import get_db
from isp_billing.services.accounts import AccountService

router = APIRouter()


@router.post("/auth/register", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def register(request_body: RegisterRequest, db: Session = Depends(get_db)):
    """Self-registration always creates a customer account"""
    customer = AccountService(db).register(**request_body.model_dump())
    return CustomerResponse.model_validate(customer)


@router.post("/auth/login", response_model=TokenResponse)
def login(request_body: LoginRequest, db: Session = Depends(get_db)):
    token = AccountService(db).authenticate(request_body.email, request_body.password)
    return TokenResponse(access_token=token)
