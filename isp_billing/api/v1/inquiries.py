"""Public contact form and installation request endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from isp_billing.api.dependencies import require_admin
from isp_billing.api.v1.schemas import (
    ContactMessageCreate,
    ContactMessageResponse,
    ContactMessageStatusUpdate,
    ServiceRequestCreate,
    ServiceRequestResponse,
    ServiceRequestStatusUpdate,
)
from isp_billing.domain.models import Principal
from isp_billing.infrastructure.database.session import get_db
from isp_billing.services.inquiries import ContactService, ServiceRequestService

router = APIRouter()


@router.post("/contact-messages", response_model=ContactMessageResponse, status_code=status.HTTP_201_CREATED)
def send_contact_message(request_body: ContactMessageCreate, db: Session = Depends(get_db)):
    """No account needed"""
    message = ContactService(db).send(**request_body.model_dump())
    return ContactMessageResponse.model_validate(message)


@router.get("/contact-messages", response_model=List[ContactMessageResponse])
def list_contact_messages(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    messages = ContactService(db).list(limit=limit, offset=offset)
    return [ContactMessageResponse.model_validate(m) for m in messages]


@router.patch("/contact-messages/{message_id}", response_model=ContactMessageResponse)
def update_contact_message(
    message_id: str,
    request_body: ContactMessageStatusUpdate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    message = ContactService(db).update_status(message_id, request_body.status)
    return ContactMessageResponse.model_validate(message)


@router.post("/service-requests", response_model=ServiceRequestResponse, status_code=status.HTTP_201_CREATED)
def create_service_request(request_body: ServiceRequestCreate, db: Session = Depends(get_db)):
    """
    File an installation request for a prospect.

    One request per cedula; a repeat answers 409.
    """
    request = ServiceRequestService(db).create(**request_body.model_dump())
    return ServiceRequestResponse.model_validate(request)


@router.get("/service-requests", response_model=List[ServiceRequestResponse])
def list_service_requests(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    requests = ServiceRequestService(db).list(status=status_filter, limit=limit, offset=offset)
    return [ServiceRequestResponse.model_validate(r) for r in requests]


@router.patch("/service-requests/{request_id}", response_model=ServiceRequestResponse)
def update_service_request(
    request_id: str,
    request_body: ServiceRequestStatusUpdate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    request = ServiceRequestService(db).update_status(request_id, request_body.status, request_body.notes)
    return ServiceRequestResponse.model_validate(request)
