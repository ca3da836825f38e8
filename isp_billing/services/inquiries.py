"""Prospect inquiries - contact form messages and installation requests"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from isp_billing.domain.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from isp_billing.domain.models import ContactStatus, ServiceRequestStatus
from isp_billing.domain.validation import check, check_text, require_fields
from isp_billing.infrastructure.database.models import ContactMessage, ServiceRequest
from isp_billing.infrastructure.database.repositories import ContactMessageRepository, ServiceRequestRepository
from isp_billing.utils.date_utils import utcnow


def _status(enum_type, value: str):
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(s.value for s in enum_type)
        raise InvalidArgumentError(f"Status must be one of: {allowed}")


class ContactService:
    def __init__(self, db: Session):
        self.db = db
        self.messages = ContactMessageRepository(db)

    def send(self, name: str, email: str, message: str) -> ContactMessage:
        require_fields({"name": name, "email": email, "message": message}, ["name", "email", "message"])
        contact = self.messages.create(
            name=check_text("name", name, max_length=200),
            email=check("email", email.strip()).lower(),
            message=check_text("message", message),
            status=ContactStatus.PENDING.value,
            created_at=utcnow(),
        )
        self.db.commit()
        logging.info("Contact message received", extra={"contact_message_id": contact.id})
        return contact

    def list(self, limit: int = 100, offset: int = 0) -> List[ContactMessage]:
        """Newest first"""
        return self.messages.list_recent(limit=limit, offset=offset)

    def update_status(self, message_id: str, status: str) -> ContactMessage:
        contact = self.messages.get(message_id)
        if not contact:
            raise NotFoundError(f"Contact message {message_id} not found")
        contact.status = _status(ContactStatus, status).value
        contact.updated_at = utcnow()
        self.db.commit()
        return contact


class ServiceRequestService:
    """
    Installation requests filed before the prospect has an account.

    One open request per cedula; staff move it through the sales pipeline
    and may attach notes.
    """

    def __init__(self, db: Session):
        self.db = db
        self.requests = ServiceRequestRepository(db)

    def create(
        self,
        cedula: str,
        plan_name: str,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
        alternate_phone: Optional[str] = None,
        alternate_email: Optional[str] = None,
        birth_date: Optional[str] = None,
        city: Optional[str] = None,
        main_street: Optional[str] = None,
        cross_street: Optional[str] = None,
        house_number: Optional[str] = None,
    ) -> ServiceRequest:
        """
        Record an installation request.

        Raises:
            InvalidArgumentError: Missing required fields or a field breaking its rule
            ConflictError: A request already exists for this cedula
        """
        require_fields(
            {
                "cedula": cedula,
                "plan_name": plan_name,
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "phone": phone,
            },
            ["cedula", "plan_name", "first_name", "last_name", "email", "phone"],
        )
        check("cedula", cedula)
        check("plan_name", plan_name)
        check("name", first_name)
        check("name", last_name)
        check("email", email)
        check("phone", phone)
        if alternate_phone:
            check("phone", alternate_phone)
        if alternate_email:
            check("email", alternate_email)
        if birth_date:
            check("date", birth_date)
        for part in (city, main_street, cross_street, house_number):
            if part:
                check("address", part)

        if self.requests.get_by_cedula(cedula):
            raise ConflictError("A service request with this cedula is already in process")

        try:
            request = self.requests.create(
                cedula=cedula,
                plan_name=plan_name,
                first_name=first_name,
                last_name=last_name,
                email=email.lower(),
                phone=phone,
                alternate_phone=alternate_phone,
                alternate_email=alternate_email.lower() if alternate_email else None,
                birth_date=birth_date,
                city=city,
                main_street=main_street,
                cross_street=cross_street,
                house_number=house_number,
                status=ServiceRequestStatus.PENDING.value,
                created_at=utcnow(),
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("A service request with this cedula is already in process") from e

        logging.info("Service request created", extra={"service_request_id": request.id})
        return request

    def list(self, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[ServiceRequest]:
        if status:
            status = _status(ServiceRequestStatus, status).value
        return self.requests.list_recent(status=status, limit=limit, offset=offset)

    def update_status(self, request_id: str, status: str, notes: Optional[str] = None) -> ServiceRequest:
        request = self.requests.get(request_id)
        if not request:
            raise NotFoundError(f"Service request {request_id} not found")
        request.status = _status(ServiceRequestStatus, status).value
        if notes is not None:
            request.notes = check_text("notes", notes)
        request.updated_at = utcnow()
        self.db.commit()
        return request
