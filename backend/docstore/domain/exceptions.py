"""Domain-specific exceptions — framework-independent.

Every ``ServiceError`` is recoverable per request: the HTTP layer maps it to
its ``status`` and a ``{code, message}`` body. Anything else is treated as an
internal fault.
"""


class ServiceError(Exception):
    """Base class for request-level failures."""

    status: int = 400
    default_message: str = "Service Error"

    def __init__(self, message: str | None = None, code: int | str | None = None):
        self.message = message or self.default_message
        self.code = code if code is not None else self.status
        super().__init__(self.message)


class NotFoundError(ServiceError):
    """Raised when a collection or record does not exist."""

    status = 404
    default_message = "Resource not found"


class RequestError(ServiceError):
    """Raised for malformed requests (bad filter syntax, path arity, missing fields)."""

    status = 400
    default_message = "Request error"


class ConflictError(ServiceError):
    """Raised when a unique value is already taken."""

    status = 409
    default_message = "Resource conflict"


class AuthorizationError(ServiceError):
    """Raised when an action requires authentication and none is present."""

    status = 401
    default_message = "Unauthorized"


class CredentialError(ServiceError):
    """Raised when the principal is known but a rule denies the action."""

    status = 403
    default_message = "Forbidden"


class RuleEvaluationError(Exception):
    """Raised when a rule expression cannot be parsed or evaluated.

    Not a ``ServiceError``: callers see a generic server fault, never the
    expression itself.
    """

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Rule '{expression}' failed: {reason}")
