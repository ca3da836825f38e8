"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidArgumentError(DomainException):
    """Input is missing or malformed"""

    pass


class AuthenticationError(DomainException):
    """Credentials or token are missing or invalid"""

    pass


class ForbiddenError(DomainException):
    """Caller lacks the role or ownership required"""

    pass


class NotFoundError(DomainException):
    """Referenced entity does not exist"""

    pass


class ConflictError(DomainException):
    """Uniqueness constraint violated"""

    pass


class InvalidTransitionError(ConflictError):
    """Requested state change is not allowed from the current state"""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"{entity} cannot move from '{current}' to '{target}'")
        self.current = current
        self.target = target


class ExternalServiceError(DomainException):
    """An external collaborator failed or timed out"""

    pass


class ExchangeRateError(ExternalServiceError):
    """Exchange rate provider returned an error or is unavailable"""

    pass


class NotificationError(ExternalServiceError):
    """Reminder notification could not be delivered"""

    pass
