"""Domain-specific exceptions"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error kinds surfaced to API callers"""

    INVALID_AMOUNT = "invalid_amount"
    INVALID_SALE = "invalid_sale"
    NOT_FOUND = "not_found"
    IDEMPOTENCY_CONFLICT = "idempotency_conflict"
    PERSISTENCE_FAILURE = "persistence_failure"
    UNKNOWN = "unknown"


class DomainException(Exception):
    """Base exception for domain layer; carries a structured kind"""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": str(self)}


class AllocationError(DomainException):
    """Base for errors raised by the allocator"""

    pass


class InvalidAmountError(AllocationError):
    """Amount is non-positive, malformed, or finer than a cent"""

    kind = ErrorKind.INVALID_AMOUNT


class NotFoundError(AllocationError):
    """Installment, customer, or sale does not exist"""

    kind = ErrorKind.NOT_FOUND


class IdempotencyConflictError(AllocationError):
    """Idempotency key already committed for a different installment or amount"""

    kind = ErrorKind.IDEMPOTENCY_CONFLICT


class PersistenceFailureError(AllocationError):
    """Store write or transaction failed and was rolled back"""

    kind = ErrorKind.PERSISTENCE_FAILURE


class OutcomeUnknownError(AllocationError):
    """Commit outcome is indeterminate; re-read state before retrying"""

    kind = ErrorKind.UNKNOWN


class InvalidSaleError(DomainException):
    """Sale data is inconsistent (bad total, count, or missing customer)"""

    kind = ErrorKind.INVALID_SALE
