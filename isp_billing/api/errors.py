"""Mapping of domain exceptions to HTTP responses"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from isp_billing.api.dependencies import get_request_id
from isp_billing.domain.exceptions import (
    AuthenticationError,
    ConflictError,
    DomainException,
    ExternalServiceError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)

STATUS_BY_EXCEPTION = [
    (InvalidArgumentError, 400),
    (AuthenticationError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ExternalServiceError, 503),
]


def status_for(exc: DomainException) -> int:
    for exc_type, status_code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    status_code = status_for(exc)
    request_id = get_request_id(request)
    if status_code >= 500:
        logging.error(f"Domain error: {exc}", extra={"request_id": request_id})
        return JSONResponse(status_code=status_code, content={"detail": "Service unavailable"})

    logging.warning(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content={"detail": str(exc)}, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors (400), like any other invalid input"""
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", [])[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": errors})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logging.exception(f"Unexpected error: {exc}", extra={"request_id": get_request_id(request)})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
