"""Plan catalog endpoints"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from isp_billing.api.dependencies import require_admin
from isp_billing.api.v1.schemas import PlanCreate, PlanResponse, PlanUpdate
from isp_billing.domain.models import Principal
from isp_billing.infrastructure.database.session import get_db
from isp_billing.services.plans import PlanService

router = APIRouter()


@router.get("/plans", response_model=List[PlanResponse])
def list_plans(
    active_only: bool = Query(True),
    db: Session = Depends(get_db),
):
    return [PlanResponse.model_validate(p) for p in PlanService(db).list(active_only=active_only)]


@router.get("/plans/{plan_id}", response_model=PlanResponse)
def read_plan(plan_id: str, db: Session = Depends(get_db)):
    return PlanResponse.model_validate(PlanService(db).get(plan_id))


@router.post("/plans",response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(request_body: PlanCreate, _: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    plan = PlanService(db).create(**request_body.model_dump())
    return PlanResponse.model_validate(plan)


@router.patch("/plans/{plan_id}", response_model=PlanResponse)
def update_plan(
    plan_id: str,
    request_body: PlanUpdate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    plan = PlanService(db).update(plan_id, **request_body.model_dump())
    return PlanResponse.model_validate(plan)
