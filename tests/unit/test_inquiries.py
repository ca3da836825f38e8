"""Unit tests for contact messages and installation requests"""

import pytest
from isp_billing.domain.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from isp_billing.domain.models import ContactStatus, ServiceRequestStatus
from isp_billing.services.inquiries import ContactService, ServiceRequestService


def _request_fields(**overrides):
    fields = {
        "cedula": "20111222",
        "plan_name": "Home Basic",
        "first_name": "Luis",
        "last_name": "Rojas",
        "email": "Luis@Example.com",
        "phone": "04241112233",
    }
    fields.update(overrides)
    return fields


def test_contact_message_is_stored_pending(db):
    message = ContactService(db).send("Ana Diaz", " Ana@Example.com ", "  Do you cover Maracay?  ")

    assert message.status == ContactStatus.PENDING.value
    assert message.email == "ana@example.com"
    assert message.message == "Do you cover Maracay?"


def test_contact_message_validation(db):
    service = ContactService(db)

    with pytest.raises(InvalidArgumentError):
        service.send("Ana", "not-an-email", "Hello")
    with pytest.raises(InvalidArgumentError):
        service.send("Ana", "ana@example.com", "   ")
    with pytest.raises(InvalidArgumentError):
        service.send("Ana", "ana@example.com", "x" * 2001)
    assert service.list() == []


def test_contact_messages_newest_first_and_status(db):
    service = ContactService(db)
    first = service.send("Ana", "ana@example.com", "First")
    second = service.send("Luis", "luis@example.com", "Second")

    assert [m.id for m in service.list()] == [second.id, first.id]

    updated = service.update_status(first.id, "answered")
    assert updated.status == ContactStatus.ANSWERED.value
    assert updated.updated_at is not None

    with pytest.raises(InvalidArgumentError):
        service.update_status(first.id, "archived")
    with pytest.raises(NotFoundError):
        service.update_status("missing", "read")


def test_service_request_created_pending(db):
    request = ServiceRequestService(db).create(**_request_fields(birth_date="1990-05-17", city="Maracay"))

    assert request.status == ServiceRequestStatus.PENDING.value
    assert request.email == "luis@example.com"
    assert request.birth_date == "1990-05-17"


@pytest.mark.parametrize(
    "overrides",
    [
        {"cedula": "12"},
        {"phone": "123"},
        {"email": "luis"},
        {"first_name": "L1"},
        {"birth_date": "17/05/1990"},
        {"alternate_email": "nope"},
        {"plan_name": None},
    ],
)
def test_service_request_validation(db, overrides):
    service = ServiceRequestService(db)
    with pytest.raises(InvalidArgumentError):
        service.create(**_request_fields(**overrides))
    assert service.list() == []


def test_one_service_request_per_cedula(db):
    service = ServiceRequestService(db)
    service.create(**_request_fields())

    with pytest.raises(ConflictError):
        service.create(**_request_fields(email="other@example.com"))
    assert len(service.list()) == 1


def test_service_request_status_and_filter(db):
    service = ServiceRequestService(db)
    approved = service.create(**_request_fields())
    service.create(**_request_fields(cedula="20333444"))

    updated = service.update_status(approved.id, "approved", notes="Install on Monday")
    assert updated.status == ServiceRequestStatus.APPROVED.value
    assert updated.notes == "Install on Monday"

    assert [r.id for r in service.list(status="approved")] == [approved.id]
    assert len(service.list()) == 2

    with pytest.raises(InvalidArgumentError):
        service.list(status="lost")
    with pytest.raises(InvalidArgumentError):
        service.update_status(approved.id, "lost")
    with pytest.raises(NotFoundError):
        service.update_status("missing", "approved")
