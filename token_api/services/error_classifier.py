"""
Maps raw database, transport and binding errors onto the closed ErrorKind set.
"""
import asyncio
import re
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import ValidationError

from token_api.data_models.schemas import ErrorKind, UsageFailure
from token_api.exceptions import ClickHouseError, TokenApiError

# ClickHouse error codes meaning the credentials were rejected
AUTHENTICATION_CODES = frozenset({
    192,  # UNKNOWN_USER
    194,  # REQUIRED_PASSWORD
    195,  # IP_ADDRESS_NOT_ALLOWED
    497,  # ACCESS_DENIED
    516,  # AUTHENTICATION_FAILED
})

TIMEOUT_MESSAGE = "Query took too long. Consider applying more filter parameters if possible."
TIMEOUT_DETAIL = "database_timeout"

_URL_CREDENTIALS_RE = re.compile(r"(https?://)[^/@\s]+@")


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    detail: Optional[str] = None

    @property
    def status(self) -> int:
        return self.kind.http_status

    def to_failure(self) -> UsageFailure:
        return UsageFailure(
            error_kind=self.kind,
            status=self.status,
            message=self.message,
            detail=self.detail,
        )


def redact(message: str) -> str:
    """Strip user-info from any URL embedded in an error message."""
    return _URL_CREDENTIALS_RE.sub(r"\1***@", message)


def _message_of(error: BaseException) -> str:
    return redact(str(error) or type(error).__name__)


def _classify(error: BaseException) -> ClassifiedError:
    if isinstance(error, ClickHouseError):
        if error.code in AUTHENTICATION_CODES or error.http_status in (401, 403):
            return ClassifiedError(ErrorKind.AUTHENTICATION_FAILED, "Database authentication failed", _message_of(error))
        return ClassifiedError(ErrorKind.BAD_DATABASE_RESPONSE, _message_of(error), f"code={error.code}")

    if isinstance(error, TokenApiError):
        return ClassifiedError(error.kind, redact(error.message), error.detail)

    if isinstance(error, ValidationError):
        issues = " | ".join(
            f"[{issue['type']}] {'/'.join(str(p) for p in issue['loc'])}: {issue['msg']}"
            for issue in error.errors()
        )
        return ClassifiedError(ErrorKind.BAD_REQUEST, issues or "Invalid query input")

    # Unreachable backend, including connect timeouts
    if isinstance(error, (httpx.ConnectError, httpx.ConnectTimeout, ConnectionRefusedError)) or \
            "connection refused" in str(error).lower():
        return ClassifiedError(ErrorKind.CONNECTION_REFUSED, "Database connection refused", _message_of(error))

    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return ClassifiedError(ErrorKind.BAD_DATABASE_RESPONSE, TIMEOUT_MESSAGE, TIMEOUT_DETAIL)

    return ClassifiedError(ErrorKind.BAD_DATABASE_RESPONSE, _message_of(error), type(error).__name__)


def classify(error: BaseException) -> ClassifiedError:
    """Classify a raw error. Never raises."""
    try:
        return _classify(error)
    except Exception as e:
        return ClassifiedError(ErrorKind.BAD_DATABASE_RESPONSE, "An unknown error occurred", repr(e))
