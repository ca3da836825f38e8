"""Input validation rules shared by request schemas and services"""

import math
import re
from typing import Any, Dict, Iterable

from isp_billing.domain.exceptions import InvalidArgumentError

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
PASSWORD_PATTERN = r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d]{8,}$"  # 8+ chars, letters and digits
NAME_PATTERN = r"^[A-Za-zÀ-ÖØ-öø-ÿ\s]{2,200}$"
PLAN_NAME_PATTERN = r"^[A-Za-zÀ-ÖØ-öø-ÿ0-9\s]{2,200}$"
PHONE_PATTERN = r"^\+?[0-9]{11}$"
CEDULA_PATTERN = r"^[0-9]{7,8}$"
ADDRESS_PATTERN = r"^[A-Za-zÀ-ÖØ-öø-ÿ0-9\s.\-#]{2,200}$"
DATE_PATTERN = r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"
MESSAGE_MAX_LENGTH = 2000

_RULES = {
    "email": (re.compile(EMAIL_PATTERN), "Invalid email address"),
    "password": (re.compile(PASSWORD_PATTERN), "Password needs 8+ characters with letters and digits"),
    "name": (re.compile(NAME_PATTERN), "Names only allow letters and spaces (2-200 characters)"),
    "plan_name": (re.compile(PLAN_NAME_PATTERN), "Invalid plan name (2-200 letters, digits or spaces)"),
    "phone": (re.compile(PHONE_PATTERN), "Phone numbers have 11 digits"),
    "cedula": (re.compile(CEDULA_PATTERN), "Cedula must have 7 or 8 digits"),
    "address": (re.compile(ADDRESS_PATTERN), "Invalid address"),
    "date": (re.compile(DATE_PATTERN), "Dates use the YYYY-MM-DD format"),
}


def check(rule: str, value: str) -> str:
    """Validate value against a named rule, returning it unchanged"""
    pattern, message = _RULES[rule]
    if not isinstance(value, str) or not pattern.match(value):
        raise InvalidArgumentError(message)
    return value


def require_fields(values: Dict[str, Any], names: Iterable[str]) -> None:
    """Reject None or blank values for every listed field"""
    missing = [
        name for name in names
        if values.get(name) is None or (isinstance(values.get(name), str) and not values[name].strip())
    ]
    if missing:
        raise InvalidArgumentError(f"Missing required fields: {', '.join(missing)}")


def require_positive(name: str, value: float) -> float:
    if value is None or not math.isfinite(value) or value <= 0:
        raise InvalidArgumentError(f"{name} must be a finite number greater than zero")
    return value


def check_text(name: str, value: str, max_length: int = MESSAGE_MAX_LENGTH) -> str:
    """Free text: required, stripped, bounded"""
    text = (value or "").strip()
    if not text:
        raise InvalidArgumentError(f"{name} is required")
    if len(text) > max_length:
        raise InvalidArgumentError(f"{name} is longer than {max_length} characters")
    return text
