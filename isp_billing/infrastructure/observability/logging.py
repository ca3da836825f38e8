"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from isp_billing.domain.models import SweepResult


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args: Any, service_name: str = "isp-billing", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = "isp-billing") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_invoice_issued(invoice_id: str, customer_id: str, amount_usd: float, exchange_rate: float) -> None:
    logging.info(
        "Invoice issued",
        extra={
            "step": "invoice_issued",
            "invoice_id": invoice_id,
            "customer_id": customer_id,
            "amount_usd": amount_usd,
            "exchange_rate": exchange_rate,
        },
    )


def log_payment_applied(
    payment_id: str,
    invoice_id: str,
    currency: str,
    amount: float,
    amount_usd: float,
    invoice_state: str,
) -> None:
    """Log structured payment outcome for reconciliation"""
    logging.info(
        "Payment applied",
        extra={
            "step": "payment_applied",
            "payment_id": payment_id,
            "invoice_id": invoice_id,
            "currency": currency,
            "amount": amount,
            "amount_usd": amount_usd,
            "invoice_state": invoice_state,
        },
    )


def log_sweep_completed(result: SweepResult, duration_ms: float) -> None:
    logging.info(
        "Overdue sweep completed",
        extra={
            "step": "sweep_complete",
            "scanned": result.scanned,
            "reminders_sent": result.reminders_sent,
            "marked_overdue": result.marked_overdue,
            "contracts_suspended": result.contracts_suspended,
            "failures": result.failures,
            "duration_ms": duration_ms,
        },
    )
