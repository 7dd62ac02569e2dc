"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input rejected before any mutation (installment count, principal, mode, nature)"""

    pass


class NotFoundError(DomainException):
    """Referenced transaction, account or duplicate target does not exist"""

    pass


class InstallmentBatchError(DomainException):
    """Persisting an installment batch failed; the whole batch was rolled back"""

    pass
