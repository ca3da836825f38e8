"""Customer registration, authentication and administration"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from isp_billing.domain.exceptions import AuthenticationError, ConflictError, InvalidArgumentError, NotFoundError
from isp_billing.domain.models import Role
from isp_billing.domain.validation import check
from isp_billing.infrastructure.database.models import Customer
from isp_billing.infrastructure.database.repositories import CustomerRepository
from isp_billing.infrastructure.security import create_access_token, hash_password, verify_password


class AccountService:
    def __init__(self, db: Session):
        self.db = db
        self.customers = CustomerRepository(db)

    def register(
        self,
        cedula: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        city: Optional[str] = None,
        street: Optional[str] = None,
        apartment: Optional[str] = None,
        role: Role = Role.CUSTOMER,
    ) -> Customer:
        """
        Register a customer with a zero balance.

        Raises:
            InvalidArgumentError: If any field breaks its validation rule
            ConflictError: If the cedula or email is already registered
        """
        check("cedula", cedula)
        check("email", email)
        check("password", password)
        check("name", first_name)
        check("name", last_name)
        if phone:
            check("phone", phone)
        for part in (city, street, apartment):
            if part:
                check("address", part)

        email = email.lower()
        if self.customers.find_duplicate(cedula, email):
            raise ConflictError("A customer with this cedula or email already exists")

        try:
            customer = self.customers.create(
                cedula=cedula,
                email=email,
                password_hash=hash_password(password),
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                city=city,
                street=street,
                apartment=apartment,
                role=role.value,
                balance_usd=0.0,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("A customer with this cedula or email already exists") from e
        return customer

    def authenticate(self, email: str, password: str) -> str:
        """Verify credentials and issue an access token"""
        customer = self.customers.get_by_email(email.lower())
        if not customer or not verify_password(password, customer.password_hash):
            raise AuthenticationError("Invalid credentials")
        return create_access_token(customer.id, Role(customer.role))

    def get(self, customer_id: str) -> Customer:
        customer = self.customers.get(customer_id)
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def list(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        return self.customers.list_active(limit=limit, offset=offset)

    def update_profile(self, customer_id: str, **changes: Optional[str]) -> Customer:
        """
        Change contact details. None leaves a field as it is.

        Cedula, role and balance are not editable here.

        Raises:
            NotFoundError: Unknown or deleted customer
            InvalidArgumentError: A value breaks its validation rule
            ConflictError: The new email belongs to another customer
        """
        customer = self.get(customer_id)
        rules = {
            "first_name": "name",
            "last_name": "name",
            "email": "email",
            "phone": "phone",
            "city": "address",
            "street": "address",
            "apartment": "address",
        }
        unknown = set(changes) - set(rules)
        if unknown:
            raise InvalidArgumentError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        updates = {name: check(rules[name], value) for name, value in changes.items() if value is not None}
        if "email" in updates:
            updates["email"] = updates["email"].lower()
            if self.customers.email_taken(updates["email"], exclude_id=customer.id):
                raise ConflictError("A customer with this email already exists")

        for name, value in updates.items():
            setattr(customer, name, value)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("A customer with this email already exists") from e
        logging.info("Customer profile updated", extra={"customer_id": customer.id, "fields": sorted(updates)})
        return customer

    def soft_delete(self, customer_id: str) -> Customer:
        """Customers are never removed; their invoices stay as financial records"""
        customer = self.get(customer_id)
        customer.is_deleted = True
        self.db.commit()
        return customer

    def ensure_admin(self, email: str, password: str, cedula: str) -> Optional[Customer]:
        """Create the bootstrap administrator when missing"""
        if self.customers.find_duplicate(cedula, email.lower()):
            logging.info("Admin user already exists")
            return None
        admin = self.register(
            cedula=cedula,
            email=email,
            password=password,
            first_name="Admin",
            last_name="User",
            role=Role.ADMIN,
        )
        logging.info("Default admin user created", extra={"customer_id": admin.id})
        return admin
