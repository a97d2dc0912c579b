"""
Custom exceptions for the token API.

Each exception carries the ErrorKind it maps to, so the error classifier
can turn it into a UsageFailure without string matching.
"""
from typing import Optional

from token_api.data_models.schemas import ErrorKind


class TokenApiError(Exception):
    """Base exception for all token API errors."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.BAD_DATABASE_RESPONSE,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.detail = detail

    @property
    def status(self) -> int:
        return self.kind.http_status

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {"status": self.status, "code": self.kind.value, "message": self.message}


# ============================================
# 4xx Client Errors
# ============================================

class ParameterBindingError(TokenApiError):
    """400 Bad Request - a bound parameter is missing or has the wrong shape."""

    def __init__(self, message: str, parameter: Optional[str] = None):
        self.parameter = parameter
        super().__init__(message, kind=ErrorKind.BAD_REQUEST, detail=parameter)


class UnknownNetworkError(TokenApiError):
    """404 Not Found - network id is not configured (or not for this chain type)."""

    def __init__(self, network_id: str, message: Optional[str] = None):
        self.network_id = network_id
        super().__init__(
            message or f"Network not found: {network_id}",
            kind=ErrorKind.UNKNOWN_NETWORK,
            detail=network_id,
        )


# ============================================
# Backend Errors
# ============================================

class ClickHouseError(TokenApiError):
    """Structured error returned by the ClickHouse HTTP interface."""

    def __init__(self, message: str, code: Optional[int] = None, http_status: Optional[int] = None):
        self.code = code
        self.http_status = http_status
        super().__init__(message, kind=ErrorKind.BAD_DATABASE_RESPONSE)

    def __str__(self) -> str:
        prefix = f"Code: {self.code}. " if self.code is not None else ""
        return f"{prefix}{self.message}"


# ============================================
# Startup Errors
# ============================================

class ConfigurationError(TokenApiError):
    """Invalid database or network configuration. Raised at startup only."""

    def __init__(self, message: str):
        super().__init__(message, kind=ErrorKind.BAD_DATABASE_RESPONSE)


class TemplateValidationError(ConfigurationError):
    """A query template is not a single read-only SELECT statement."""
