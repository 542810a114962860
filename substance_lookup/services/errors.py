"""
Service layer exceptions.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class ValidationError(ServiceError):
    """Request could not be built from the given input. Never retried."""

    pass


class NetworkError(ServiceError):
    """Upstream call failed: bad status, empty body or transport error."""

    def __init__(
        self,
        message: str,
        service_id: str | None = None,
        status: int | None = None,
    ):
        self.status = status
        super().__init__(message, service_id=service_id)


class CircuitOpenError(ServiceError):
    """Circuit breaker is open, request blocked."""

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            f"Circuit breaker open for service '{service_id}', "
            f"retry after {reset_after_seconds:.1f}s",
            service_id=service_id,
        )


class RetriesExhaustedError(ServiceError):
    """Every attempt failed; wraps the last underlying error."""

    def __init__(self, service_id: str, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Request to service '{service_id}' failed after {attempts} attempts: "
            f"{last_error}",
            service_id=service_id,
        )


class SubstanceParseError(ServiceError):
    """An upstream item could not be mapped to a substance record."""

    pass
