"""Error types shared by the key manager, provider adapters and routes."""

from typing import Optional

ALL_KEYS_EXHAUSTED = "ALL_KEYS_EXHAUSTED"
API_CALL_FAILED = "API_CALL_FAILED"


class ApiError(Exception):
    """Base error carrying the HTTP status and code it maps to at the boundary."""

    status_code: int = 500
    code: Optional[str] = None

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class ConfigurationError(ApiError, ValueError):
    """No usable credentials were configured."""

    code = "CONFIGURATION_ERROR"


class PoolExhaustedError(ApiError):
    """Every credential in the pool is currently blocked."""

    status_code = 429
    code = ALL_KEYS_EXHAUSTED

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "All Gemini API keys are currently rate-limited or blocked. "
            "Please try again later."
        )


class AllCredentialsExhaustedError(PoolExhaustedError):
    """Raised by the retry orchestrator when no credential is left to try."""


class OperationFailedError(ApiError):
    """Every attempt ran against an available credential and failed."""

    status_code = 500
    code = API_CALL_FAILED

    def __init__(self, operation_name: str, attempts: int, last_error_message: str):
        self.operation_name = operation_name
        self.attempts = attempts
        self.last_error_message = last_error_message
        super().__init__(
            f"{operation_name} failed after {attempts} attempts: {last_error_message}"
        )


class ProviderError(ApiError):
    """Failure reported by an upstream image provider."""

    code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.upstream_status = upstream_status
        if upstream_status is not None:
            message = f"{upstream_status} {message}"
        super().__init__(message, code=code)


class RequestValidationFailed(ApiError):
    status_code = 400
    code = "INVALID_REQUEST"
