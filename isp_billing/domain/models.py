"""Domain models - enums and plain dataclasses shared across layers"""

import enum
from dataclasses import dataclass


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class PlanCategory(str, enum.Enum):
    HOME = "home"
    BUSINESS = "business"


class ContractState(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    FINALIZED = "finalized"


class InvoiceState(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentState(str, enum.Enum):
    REPORTED = "reported"
    VERIFIED = "verified"
    REJECTED = "rejected"


class Currency(str, enum.Enum):
    USD = "USD"
    VED = "VED"


class BalanceReason(str, enum.Enum):
    INVOICE_ISSUED = "invoice_issued"
    PAYMENT_APPLIED = "payment_applied"


class ContactStatus(str, enum.Enum):
    PENDING = "pending"
    READ = "read"
    ANSWERED = "answered"


class ServiceRequestStatus(str, enum.Enum):
    """Sales pipeline for prospects asking for an installation"""

    PENDING = "pending"
    APPROVED = "approved"
    INSTALLED = "installed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as supplied by the auth layer"""

    customer_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def can_access(self, customer_id: str) -> bool:
        """Admins see everything, customers only their own records"""
        return self.is_admin or self.customer_id == customer_id


@dataclass
class SweepResult:
    """Outcome of one overdue sweep run"""

    scanned: int = 0
    reminders_sent: int = 0
    marked_overdue: int = 0
    contracts_suspended: int = 0
    failures: int = 0
