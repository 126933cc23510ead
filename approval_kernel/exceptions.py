"""
Typed Exception Hierarchy for the Approval Kernel.

Every error the engine raises on purpose is a subclass of
``ApprovalKernelError`` and carries:

  1. A TYPED class (catch by type, not message)
  2. A ``code`` class attribute (machine-readable, API-safe)
  3. Structured attributes (request_id, level, ...) instead of a parsed
     message string

All of them are local validation failures surfaced synchronously.  None are
retried by the engine.  Infrastructure failures (SQLAlchemy errors, a lost
connection) are NOT wrapped -- they propagate unchanged.

    ApprovalKernelError (base)
    |
    +-- RequestValidationError
    |   +-- InvalidAmountError
    |   +-- EmptyChainError
    |
    +-- InvalidTransitionError
    |
    +-- NotFoundError
    |   +-- RequestNotFoundError
    |   +-- ApprovalNotFoundError
    |
    +-- StaleLevelError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedApproverError
    |   +-- SelfApprovalForbiddenError
    |
    +-- SettingsError
        +-- SettingsNotConfiguredError
        +-- InvalidSettingsError

Category        | Code                      | When Raised
----------------|---------------------------|------------------------------------
Validation      | INVALID_AMOUNT            | Amount <= 0
                | EMPTY_CHAIN               | Resolver produced zero levels
Lifecycle       | INVALID_TRANSITION        | Status change not in the table
Lookup          | REQUEST_NOT_FOUND         | Request id doesn't exist
                | APPROVAL_NOT_FOUND        | No approval row for (request, level)
Concurrency     | STALE_LEVEL               | Level already decided / moved on
Authorization   | UNAUTHORIZED_APPROVER     | Approver lacks the level's role
                | SELF_APPROVAL_FORBIDDEN   | Requester deciding own request
Settings        | SETTINGS_NOT_CONFIGURED   | No settings version published
                | INVALID_SETTINGS          | Settings failed validation

A ``StaleLevelError`` means somebody else won the race.  Callers must NOT
retry it automatically.
"""


class ApprovalKernelError(Exception):
    """
    Base exception for all approval kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "APPROVAL_KERNEL_ERROR"


# Request validation


class RequestValidationError(ApprovalKernelError):
    """Base exception for request content errors."""

    code: str = "REQUEST_VALIDATION_ERROR"


class InvalidAmountError(RequestValidationError):
    """Requested amount is not a finite, positive, storable money value."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str):
        self.amount = amount
        super().__init__(
            f"Amount must be a positive number below 10^13, got {amount}"
        )


class EmptyChainError(RequestValidationError):
    """Chain resolution produced no approval levels."""

    code: str = "EMPTY_CHAIN"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"No approval levels resolved for request {request_id}")


# Lifecycle


class InvalidTransitionError(ApprovalKernelError):
    """Request status change is not allowed by the transition table."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, request_id: str, from_status: str, to_status: str):
        self.request_id = request_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition for request {request_id}: "
            f"{from_status} -> {to_status}"
        )


# Lookup


class NotFoundError(ApprovalKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class RequestNotFoundError(NotFoundError):
    """Request with given ID was not found."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request not found: {request_id}")


class ApprovalNotFoundError(NotFoundError):
    """No approval row exists for the request/level pair."""

    code: str = "APPROVAL_NOT_FOUND"

    def __init__(self, request_id: str, level: int):
        self.request_id = request_id
        self.level = level
        super().__init__(f"No approval at level {level} for request {request_id}")


# Concurrency


class StaleLevelError(ApprovalKernelError):
    """
    The approval level is no longer open for decisions.

    Raised when the approval was already decided, or the request has moved
    to another level or out of ``submitted``.
    """

    code: str = "STALE_LEVEL"

    def __init__(self, request_id: str, level: int, reason: str):
        self.request_id = request_id
        self.level = level
        self.reason = reason
        super().__init__(
            f"Level {level} of request {request_id} is stale: {reason}"
        )


# Authorization


class AuthorizationError(ApprovalKernelError):
    """Base exception for approver authorization failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedApproverError(AuthorizationError):
    """Approver does not hold the role required at this level."""

    code: str = "UNAUTHORIZED_APPROVER"

    def __init__(self, approver_id: str, required_role: str, level: int):
        self.approver_id = approver_id
        self.required_role = required_role
        self.level = level
        super().__init__(
            f"Approver {approver_id} lacks role '{required_role}' "
            f"required at level {level}"
        )


class SelfApprovalForbiddenError(AuthorizationError):
    """Requester attempted to decide on their own request."""

    code: str = "SELF_APPROVAL_FORBIDDEN"

    def __init__(self, request_id: str, approver_id: str):
        self.request_id = request_id
        self.approver_id = approver_id
        super().__init__(
            f"Approver {approver_id} cannot decide on own request {request_id}"
        )


# Settings


class SettingsError(ApprovalKernelError):
    """Base exception for settings errors."""

    code: str = "SETTINGS_ERROR"


class SettingsNotConfiguredError(SettingsError):
    """No settings version has been published yet."""

    code: str = "SETTINGS_NOT_CONFIGURED"

    def __init__(self):
        super().__init__("No approval settings have been published")


class InvalidSettingsError(SettingsError):
    """Settings values failed validation."""

    code: str = "INVALID_SETTINGS"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid approval settings: " + "; ".join(errors))
