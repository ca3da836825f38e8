"""Pytest fixtures for testing"""

import pytest
from typing import Any, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from isp_billing.api.main import create_app
from isp_billing.api.dependencies import get_exchange_rate_client, get_notifier, get_sweep_runner
from isp_billing.domain.exceptions import NotificationError
from isp_billing.domain.models import Role
from isp_billing.infrastructure.database.models import Base, Customer, Plan
from isp_billing.infrastructure.database.session import engine_options, get_db
from isp_billing.infrastructure.security import create_access_token
from isp_billing.services.accounts import AccountService
from isp_billing.services.plans import PlanService
from isp_billing.services.sweep import SweepRunner


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, **engine_options(TEST_DATABASE_URL))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FixedRates:
    """Exchange rate source returning a constant rate"""

    def __init__(self, rate: float = 100.0):
        self.rate = rate
        self.calls = 0

    def current_rate(self) -> float:
        self.calls += 1
        return self.rate


class RecordingNotifier:
    """Notifier that records payloads, or fails every delivery when asked to"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Dict[str, Any]] = []

    def send_reminder(self, payload: Dict[str, Any]) -> None:
        if self.fail:
            raise NotificationError("notifier down")
        self.sent.append(payload)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def rates() -> FixedRates:
    return FixedRates(100.0)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(db: Session, rates: FixedRates, notifier: RecordingNotifier) -> TestClient:
    """Create FastAPI test client with test database and fake collaborators"""
    app = create_app(run_lifespan=False)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    runner = SweepRunner(TestingSessionLocal, notifier)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_exchange_rate_client] = lambda: rates
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_sweep_runner] = lambda: runner
    return TestClient(app)


@pytest.fixture
def customer(db: Session) -> Customer:
    return AccountService(db).register(
        cedula="12345678",
        email="maria@example.com",
        password="secret123",
        first_name="Maria",
        last_name="Perez",
        phone="04141234567",
        city="Caracas",
    )


@pytest.fixture
def other_customer(db: Session) -> Customer:
    return AccountService(db).register(
        cedula="87654321",
        email="jose@example.com",
        password="secret456",
        first_name="Jose",
        last_name="Gomez",
    )


@pytest.fixture
def admin(db: Session) -> Customer:
    return AccountService(db).register(
        cedula="1111111",
        email="admin@example.com",
        password="adminPassword1",
        first_name="Admin",
        last_name="User",
        role=Role.ADMIN,
    )


@pytest.fixture
def plan(db: Session) -> Plan:
    """Home plan priced at 25 USD"""
    return PlanService(db).create(name="Home Basic", bandwidth_mbps=100, price_usd=25.0, category="home")


@pytest.fixture
def customer_headers(customer: Customer) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(customer.id, Role.CUSTOMER)}"}


@pytest.fixture
def other_headers(other_customer: Customer) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(other_customer.id, Role.CUSTOMER)}"}


@pytest.fixture
def admin_headers(admin: Customer) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(admin.id, Role.ADMIN)}"}
