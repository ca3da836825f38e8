"""Password hashing and JWT issuance/verification"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from isp_billing.config import settings
from isp_billing.domain.exceptions import AuthenticationError
from isp_billing.domain.models import Principal, Role

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(
    customer_id: str,
    role: Role,
    secret: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    """Issue a signed token carrying the customer id (sub) and role"""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes if expires_minutes is not None else settings.jwt_expire_minutes
    )
    payload = {"sub": customer_id, "role": role.value, "exp": expire}
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, secret: str | None = None) -> Principal:
    """
    Verify a token and return the principal it describes.

    Raises:
        AuthenticationError: If the token is expired, tampered with, or incomplete
    """
    try:
        payload = jwt.decode(token, secret or settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError("Invalid token") from e

    customer_id = payload.get("sub")
    try:
        role = Role(payload.get("role"))
    except ValueError as e:
        raise AuthenticationError("Invalid token role") from e
    if not customer_id:
        raise AuthenticationError("Invalid token subject")
    return Principal(customer_id=customer_id, role=role)
