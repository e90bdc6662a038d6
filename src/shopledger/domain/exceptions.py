"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the application layer can turn them into typed results and the CLI can
display them uniformly.  Anything that is *not* a DomainException (I/O
errors, corrupt data files) is an infrastructure fault and propagates.
"""


class DomainException(Exception):
    """Base class for all domain errors."""

    code = "domain_error"


class ValidationError(DomainException):
    """A business rule or invariant was violated."""

    code = "validation_error"


class InvalidQuantityError(ValidationError):
    """A quantity was zero or negative."""

    code = "invalid_quantity"


class InvalidStateTransitionError(ValidationError):
    """A sale, payment or refund cannot move to the requested status."""

    code = "invalid_transition"


class InsufficientStockError(DomainException):
    """A reserve or sell asked for more than is available."""

    code = "insufficient_stock"


class OverReleaseError(DomainException):
    """A release asked for more than is reserved (strict release policy)."""

    code = "over_release"


class OverRefundError(DomainException):
    """Nothing remains refundable for the requested sale item or payment."""

    code = "over_refund"


class ConcurrencyConflictError(DomainException):
    """A stored record changed underneath us; retry the whole operation."""

    code = "concurrency_conflict"


class EntityNotFoundError(DomainException):
    """A requested entity does not exist (or belongs to another shop)."""

    code = "not_found"
