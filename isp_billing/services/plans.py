"""Plan catalog administration"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from isp_billing.domain.exceptions import InvalidArgumentError, NotFoundError
from isp_billing.domain.models import PlanCategory
from isp_billing.domain.validation import check, require_positive
from isp_billing.infrastructure.database.models import Plan
from isp_billing.infrastructure.database.repositories import PlanRepository

DEFAULT_PLANS = [
    {"name": "Home Basic", "bandwidth_mbps": 100, "price_usd": 25, "category": PlanCategory.HOME},
    {"name": "Home Plus", "bandwidth_mbps": 150, "price_usd": 35, "category": PlanCategory.HOME},
    {"name": "Business Bronze", "bandwidth_mbps": 400, "price_usd": 50, "category": PlanCategory.BUSINESS},
    {"name": "Business Silver", "bandwidth_mbps": 600, "price_usd": 70, "category": PlanCategory.BUSINESS},
    {"name": "Business Gold", "bandwidth_mbps": 800, "price_usd": 100, "category": PlanCategory.BUSINESS},
    {"name": "Business Diamond", "bandwidth_mbps": 1000, "price_usd": 150, "category": PlanCategory.BUSINESS},
]


def _category(value) -> PlanCategory:
    try:
        return PlanCategory(value)
    except ValueError:
        raise InvalidArgumentError("Category must be 'home' or 'business'")


class PlanService:
    def __init__(self, db: Session):
        self.db = db
        self.plans = PlanRepository(db)

    def get(self, plan_id: str) -> Plan:
        plan = self.plans.get(plan_id)
        if not plan:
            raise NotFoundError(f"Plan {plan_id} not found")
        return plan

    def list(self, active_only: bool = False) -> List[Plan]:
        return self.plans.list(active_only=active_only)

    def create(self, name: str, bandwidth_mbps: int, price_usd: float, category: str) -> Plan:
        check("plan_name", name)
        require_positive("bandwidth_mbps", bandwidth_mbps)
        require_positive("price_usd", price_usd)
        plan = self.plans.create(
            name=name,
            bandwidth_mbps=bandwidth_mbps,
            price_usd=price_usd,
            category=_category(category).value,
            active=True,
        )
        self.db.commit()
        return plan

    def update(
        self,
        plan_id: str,
        name: Optional[str] = None,
        bandwidth_mbps: Optional[int] = None,
        price_usd: Optional[float] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> Plan:
        """Edit a plan; issued invoices keep the price they were issued with"""
        plan = self.get(plan_id)
        if name is not None:
            plan.name = check("plan_name", name)
        if bandwidth_mbps is not None:
            plan.bandwidth_mbps = require_positive("bandwidth_mbps", bandwidth_mbps)
        if price_usd is not None:
            plan.price_usd = require_positive("price_usd", price_usd)
        if category is not None:
            plan.category = _category(category).value
        if active is not None:
            plan.active = active
        self.db.commit()
        return plan

    def seed_defaults(self) -> int:
        """Load the default catalog into an empty plan table"""
        if self.plans.count():
            logging.info("Plans already present, skipping seed")
            return 0
        for fields in DEFAULT_PLANS:
            self.plans.create(**{**fields, "category": fields["category"].value, "active": True})
        self.db.commit()
        logging.info("Default plans created", extra={"count": len(DEFAULT_PLANS)})
        return len(DEFAULT_PLANS)
