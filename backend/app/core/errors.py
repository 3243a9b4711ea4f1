"""API error classes.

Each error carries a machine-readable code, a message, and the HTTP status
the exception handlers in ``app.main`` map it to.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "UNAUTHORIZED").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Malformed webhook payload (400)."""

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Token missing, consumed, in use, or issued for another plan (401).

    The message never says which check failed.
    """

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(
            code="INVALID_TOKEN",
            message=message,
            status_code=401,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class UnprocessableError(APIError):
    """Well-formed request that cannot be fulfilled (422).

    Accepts a custom code for the specific business rule.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=422,
        )


class UnrecognizedPlanError(UnprocessableError):
    """No line item title matches a known plan (422)."""

    def __init__(self, titles: list[str]) -> None:
        super().__init__(
            code="UNRECOGNIZED_PLAN",
            message=f"No known plan in line items: {', '.join(titles)}",
        )


class PlanNotAvailableError(UnprocessableError):
    """Plan was recognized but has no form configured (422)."""

    def __init__(self, plan_variant: str) -> None:
        super().__init__(
            code="PLAN_NOT_AVAILABLE",
            message=f"Plan '{plan_variant}' has no form configured",
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for downstream failures. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
