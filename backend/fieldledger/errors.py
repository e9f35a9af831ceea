# Overview: Error taxonomy shared by the custody services and the API layer.

"""
Every failure the custody core reports is a CustodyError subclass.

- `kind` is the stable machine-readable name returned to API callers.
- `status_code` is the HTTP status the routes answer with.
- `details` carries structured context (e.g. every offending sale line).

Validation errors are raised before any mutation begins. Insufficiency and
state errors are raised before the commit point, after which the session is
rolled back, so a raised CustodyError never leaves partial state behind.
"""


class CustodyError(Exception):
    """Base class for custody ledger failures."""

    kind = "CustodyError"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.kind, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(CustodyError):
    """Malformed input: missing fields, bad phone, non-positive quantity/amount."""

    kind = "ValidationError"
    status_code = 400


class NotFound(CustodyError):
    """Referenced employee, product, sale or request does not exist."""

    kind = "NotFound"
    status_code = 404


class InsufficientStock(CustodyError):
    """Central warehouse stock cannot cover the requested quantity."""

    kind = "InsufficientStock"
    status_code = 409


class InsufficientAssignedStock(CustodyError):
    """The employee's custody does not cover the requested quantity."""

    kind = "InsufficientAssignedStock"
    status_code = 409


class ProductNotAssigned(InsufficientAssignedStock):
    """The employee holds none of the requested product(s)."""

    kind = "ProductNotAssigned"


class InsufficientHoldings(CustodyError):
    """Settlement exceeds the employee's cash or online holdings."""

    kind = "InsufficientHoldings"
    status_code = 409


class InvalidStateTransition(CustodyError):
    """A terminal (Approved/Rejected) request was touched again."""

    kind = "InvalidStateTransition"
    status_code = 409


class ConcurrencyConflict(CustodyError):
    """Lost an optimistic-concurrency race; the caller should retry."""

    kind = "ConcurrencyConflict"
    status_code = 409


class ConflictError(CustodyError):
    """Business-rule conflict on out-of-band data (e.g. duplicate phone number)."""

    kind = "Conflict"
    status_code = 409
