"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input rejected before any computation (negative amounts, bad dates, inconsistent ranges)"""

    pass


class InvalidStatusTransitionError(ValidationError):
    """Loan status change violates the monotonic lifecycle"""

    pass


class EntityNotFoundError(DomainException):
    """Requested entity does not exist for this tenant"""

    pass
