"""
Typed Exception Hierarchy for the Procurement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the approval workflow must distinguish "the receive does not
exist" from "the receive was already approved" without parsing messages.
Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        workflow.approve_rrp("L001T1", approver="costing.lead")
    except AlreadyTransitionedError as e:
        api_response(code=e.code, entity=e.entity_type, ref=e.entity_ref)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ProcurementKernelError.  The five category
bases map one-to-one onto response statuses (see
``procurement_services.errors``):

    ProcurementKernelError (base)
    |
    +-- ValidationError                      (400)
    |   +-- InvalidRRPNumberError
    |   +-- RRPDateOrderError
    |   +-- MissingForexRateError
    |   +-- InvalidQuantityError
    |
    +-- NotFoundError                        (404)
    |   +-- RequestNotFoundError
    |   +-- ReceiveNotFoundError
    |   +-- RRPNotFoundError
    |   +-- UserNotFoundError
    |   +-- StockItemNotFoundError
    |
    +-- ConflictError                        (409)
    |   +-- RRPNumberConflictError
    |   +-- AlreadyTransitionedError
    |   +-- IneligibleRequestError
    |   +-- IneligibleReceiveError
    |   +-- DuplicateRequestNumberError
    |   +-- ConcurrentModificationError
    |
    +-- ComputationError                     (422)
    |   +-- ZeroItemTotalError
    |   +-- LedgerConservationError
    |
    +-- DependencyFailureError               (503)
        +-- ConfigurationMissingError

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation errors are raised while building input DTOs, before any
   session is opened.  Nothing is rolled back because nothing started.

2. Every other category raised inside ``session_scope()`` rolls the
   whole operation back before propagating.

3. Rejection is NOT an error.  A failure to resolve the user to notify
   (UserNotFoundError) IS an error and aborts the rejection.
"""


class ProcurementKernelError(Exception):
    """
    Base exception for all procurement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROCUREMENT_KERNEL_ERROR"


# Validation


class ValidationError(ProcurementKernelError):
    """Missing or malformed input, detected before any transaction starts."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidRRPNumberError(ValidationError):
    """RRP number does not match the L/F + 3 digits [+ T<n>] format."""

    code: str = "INVALID_RRP_NUMBER"

    def __init__(self, rrp_number: str, message: str | None = None):
        self.rrp_number = rrp_number
        super().__init__(
            message or f"Invalid RRP number format: {rrp_number!r}",
            field="rrp_number",
        )


class RRPDateOrderError(ValidationError):
    """Correction date falls outside its neighbouring corrections' dates."""

    code: str = "RRP_DATE_ORDER"

    def __init__(self, rrp_number: str, message: str):
        self.rrp_number = rrp_number
        super().__init__(message, field="date")


class MissingForexRateError(ValidationError):
    """Foreign currency costing submitted without a forex rate."""

    code: str = "MISSING_FOREX_RATE"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(
            f"Forex rate is required for currency {currency}",
            field="forex_rate",
        )


class InvalidQuantityError(ValidationError):
    """Quantity is zero, negative or otherwise unusable."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, field: str = "quantity"):
        self.quantity = quantity
        super().__init__(f"Quantity must be positive, got {quantity}", field=field)


# Not found


class NotFoundError(ProcurementKernelError):
    """Referenced record is absent."""

    code: str = "NOT_FOUND"


class RequestNotFoundError(NotFoundError):
    """Request number or request line id does not exist."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_ref: str):
        self.request_ref = request_ref
        super().__init__(f"Request {request_ref} not found")


class ReceiveNotFoundError(NotFoundError):
    """Receive line does not exist."""

    code: str = "RECEIVE_NOT_FOUND"

    def __init__(self, receive_id: str):
        self.receive_id = receive_id
        super().__init__(f"Receive {receive_id} not found")


class RRPNotFoundError(NotFoundError):
    """No RRP lines carry the given number."""

    code: str = "RRP_NOT_FOUND"

    def __init__(self, rrp_number: str):
        self.rrp_number = rrp_number
        super().__init__(f"RRP {rrp_number} not found")


class UserNotFoundError(NotFoundError):
    """Actor to notify cannot be resolved to a user record."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"User {username!r} not found")


class StockItemNotFoundError(NotFoundError):
    """No stock item exists for the NAC code."""

    code: str = "STOCK_ITEM_NOT_FOUND"

    def __init__(self, nac_code: str):
        self.nac_code = nac_code
        super().__init__(f"Stock item {nac_code!r} not found")


# Conflict


class ConflictError(ProcurementKernelError):
    """Operation collides with the current state of the store."""

    code: str = "CONFLICT"


class RRPNumberConflictError(ConflictError):
    """RRP number is live (non-rejected) and cannot be reused."""

    code: str = "RRP_NUMBER_CONFLICT"

    def __init__(self, rrp_number: str, message: str | None = None):
        self.rrp_number = rrp_number
        super().__init__(
            message or f"RRP number {rrp_number} already exists and is not rejected"
        )


class AlreadyTransitionedError(ConflictError):
    """Conditional status update matched zero rows."""

    code: str = "ALREADY_TRANSITIONED"

    def __init__(self, entity_type: str, entity_ref: str, current_status: str | None):
        self.entity_type = entity_type
        self.entity_ref = entity_ref
        self.current_status = current_status
        super().__init__(
            f"{entity_type} {entity_ref} is already {current_status or 'transitioned'}"
        )


class IneligibleRequestError(ConflictError):
    """Request line cannot be received (not approved, or already received)."""

    code: str = "INELIGIBLE_REQUEST"

    def __init__(self, request_id: str, reason: str):
        self.request_id = request_id
        self.reason = reason
        super().__init__(f"Request {request_id} cannot be received: {reason}")


class IneligibleReceiveError(ConflictError):
    """Receive line cannot be costed (not approved, or already costed)."""

    code: str = "INELIGIBLE_RECEIVE"

    def __init__(self, receive_id: str, reason: str):
        self.receive_id = receive_id
        self.reason = reason
        super().__init__(f"Receive {receive_id} cannot be costed: {reason}")


class DuplicateRequestNumberError(ConflictError):
    """Request number is already in use."""

    code: str = "DUPLICATE_REQUEST_NUMBER"

    def __init__(self, request_number: str):
        self.request_number = request_number
        super().__init__(f"Request number {request_number} already exists")


class ConcurrentModificationError(ConflictError):
    """Store rejected the write because of a concurrent change."""

    code: str = "CONCURRENT_MODIFICATION"


# Computation


class ComputationError(ProcurementKernelError):
    """Unexpected numeric state in allocation or ledger replay."""

    code: str = "COMPUTATION_ERROR"


class ZeroItemTotalError(ComputationError):
    """Sum of converted item prices is zero; shares are undefined."""

    code: str = "ZERO_ITEM_TOTAL"

    def __init__(self, item_count: int):
        self.item_count = item_count
        super().__init__(
            f"Total item price across {item_count} item(s) is zero; "
            "cannot distribute freight and customs service charges"
        )


class LedgerConservationError(ComputationError):
    """Replayed closing balance differs from opening + received - issued."""

    code: str = "LEDGER_CONSERVATION"

    def __init__(self, nac_code: str, expected: object, actual: object):
        self.nac_code = nac_code
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Stock card for {nac_code} does not conserve quantity: "
            f"expected {expected}, replayed {actual}"
        )


# Dependency failure


class DependencyFailureError(ProcurementKernelError):
    """Store or configuration dependency unavailable."""

    code: str = "DEPENDENCY_FAILURE"


class ConfigurationMissingError(DependencyFailureError):
    """Required configuration value is absent from the config store."""

    code: str = "CONFIGURATION_MISSING"

    def __init__(self, config_name: str):
        self.config_name = config_name
        super().__init__(f"Configuration value {config_name!r} is not set")
