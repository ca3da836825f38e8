"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from isp_billing.config import settings
from isp_billing.domain.exceptions import AuthenticationError, ForbiddenError
from isp_billing.domain.models import Principal, Role
from isp_billing.infrastructure.clients.exchange_rate import ExchangeRateClient
from isp_billing.infrastructure.clients.notifier import ReminderNotifier
from isp_billing.infrastructure.database.repositories import CustomerRepository
from isp_billing.infrastructure.database.session import SessionLocal, get_db
from isp_billing.infrastructure.security import decode_access_token
from isp_billing.services.sweep import SweepRunner

bearer_scheme = HTTPBearer(auto_error=False)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


@lru_cache
def get_exchange_rate_client() -> ExchangeRateClient:
    """Shared client so the last known good rate survives across requests"""
    return ExchangeRateClient()


@lru_cache
def get_notifier() -> ReminderNotifier:
    """Provide reminder webhook client instance"""
    return ReminderNotifier()


@lru_cache
def get_sweep_runner() -> SweepRunner:
    """One runner per process so its run-lock is shared by every trigger"""
    return SweepRunner(SessionLocal, get_notifier())


def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Authenticated caller from the bearer token.

    The customer must still exist; tokens of soft-deleted customers stop
    working immediately and the stored role wins over the one in the token.
    """
    if credentials is None:
        raise AuthenticationError("Token required")
    principal = decode_access_token(credentials.credentials, settings.jwt_secret)
    customer = CustomerRepository(db).get(principal.customer_id)
    if not customer:
        raise AuthenticationError("Account no longer active")
    return Principal(customer_id=customer.id, role=Role(customer.role))


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Administrators only")
    return principal


def ensure_access(principal: Principal, customer_id: str) -> None:
    """Owning customer or administrator"""
    if not principal.can_access(customer_id):
        raise ForbiddenError("Access denied to another customer's records")
