"""Contracts - binding a customer to a plan"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from isp_billing.domain.billing import ensure_contract_transition
from isp_billing.domain.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from isp_billing.domain.models import ContractState
from isp_billing.infrastructure.database.models import Contract, Invoice
from isp_billing.infrastructure.database.repositories import (
    ContractRepository,
    CustomerRepository,
    PlanRepository,
)
from isp_billing.infrastructure.observability.metrics import record_contract_transition
from isp_billing.services.invoices import InvoiceService, RateSource
from isp_billing.services.locks import customer_key, ledger_locks


class ContractService:
    def __init__(self, db: Session, rates: Optional[RateSource] = None):
        self.db = db
        self.contracts = ContractRepository(db)
        self.customers = CustomerRepository(db)
        self.plans = PlanRepository(db)
        self.invoicing = InvoiceService(db, rates)

    def get(self, contract_id: str) -> Contract:
        contract = self.contracts.get(contract_id)
        if not contract:
            raise NotFoundError(f"Contract {contract_id} not found")
        return contract

    def list(self) -> List[Contract]:
        return self.contracts.list()

    def contract_plan(
        self, customer_id: str, plan_id: str, now: Optional[datetime] = None
    ) -> Tuple[Contract, Invoice]:
        """
        Commit a customer to a plan and issue the first invoice.

        Contract and invoice are created in one transaction.

        Raises:
            NotFoundError: Unknown customer, unknown or inactive plan
            ConflictError: The customer already holds a contract
        """
        with ledger_locks.hold(customer_key(customer_id)):
            try:
                if not self.customers.get(customer_id):
                    raise NotFoundError(f"Customer {customer_id} not found")
                plan = self.plans.get(plan_id)
                if not plan or not plan.active:
                    raise NotFoundError(f"Plan {plan_id} not found")
                if self.contracts.get_by_customer(customer_id):
                    raise ConflictError("Customer already has a contract")

                contract = self.contracts.create(customer_id, plan.id)
                invoice = self.invoicing.issue(customer_id, plan.id, now=now, commit=False)
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise ConflictError("Customer already has a contract") from e
            except Exception:
                self.db.rollback()
                raise

        self.invoicing.announce_issued(invoice)
        logging.info("Plan contracted", extra={"contract_id": contract.id, "customer_id": customer_id})
        return contract, invoice

    def change_state(self, contract_id: str, state: str) -> Contract:
        """Administrative state change; finalized contracts cannot move again"""
        try:
            target = ContractState(state)
        except ValueError:
            raise InvalidArgumentError(f"Unknown contract state: {state}")

        contract = self.get(contract_id)
        with ledger_locks.hold(customer_key(contract.customer_id)):
            self.db.refresh(contract)
            current = ContractState(contract.state)
            if current == target:
                return contract
            ensure_contract_transition(current, target)
            if not self.contracts.transition(contract.id, [current], target):
                self.db.rollback()
                raise ConflictError("Contract changed concurrently, retry")
            self.db.commit()

        record_contract_transition(target.value)
        return contract
