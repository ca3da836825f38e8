"""Unit tests for password hashing and access tokens"""

import pytest
from isp_billing.domain.exceptions import AuthenticationError
from isp_billing.domain.models import Role
from isp_billing.infrastructure.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_password_hash_round_trip():
    password_hash = hash_password("secret123")
    assert password_hash != "secret123"
    assert verify_password("secret123", password_hash)
    assert not verify_password("secret124", password_hash)


def test_token_carries_customer_and_role():
    token = create_access_token("cust-1", Role.ADMIN, secret="s3cret")
    principal = decode_access_token(token, secret="s3cret")

    assert principal.customer_id == "cust-1"
    assert principal.is_admin
    assert principal.can_access("someone-else")


def test_customer_principal_only_accesses_own_records():
    principal = decode_access_token(create_access_token("cust-1", Role.CUSTOMER, secret="k"), secret="k")
    assert principal.can_access("cust-1")
    assert not principal.can_access("cust-2")


def test_expired_or_forged_tokens_are_rejected():
    expired = create_access_token("cust-1", Role.CUSTOMER, secret="k", expires_minutes=-1)
    with pytest.raises(AuthenticationError):
        decode_access_token(expired, secret="k")

    forged = create_access_token("cust-1", Role.ADMIN, secret="other")
    with pytest.raises(AuthenticationError):
        decode_access_token(forged, secret="k")
