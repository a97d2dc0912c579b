"""
Pydantic schemas shared by the query pipeline and the HTTP layer.

UsageResponse is a tagged union: consumers branch on ``kind`` (or on the
concrete class) and must handle both variants.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field
from typing_extensions import Annotated


class ChainType(str, Enum):
    """Blockchain family a network belongs to."""
    EVM = "evm"
    SVM = "svm"
    TVM = "tvm"


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced to API clients."""
    BAD_REQUEST = "bad_request"
    UNKNOWN_NETWORK = "unknown_network"
    AUTHENTICATION_FAILED = "authentication_failed"
    CONNECTION_REFUSED = "connection_refused"
    BAD_DATABASE_RESPONSE = "bad_database_response"

    @property
    def http_status(self) -> int:
        return ERROR_STATUS[self]


ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNKNOWN_NETWORK: 404,
    ErrorKind.AUTHENTICATION_FAILED: 403,
    ErrorKind.CONNECTION_REFUSED: 502,
    ErrorKind.BAD_DATABASE_RESPONSE: 500,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QueryStatistics(BaseModel):
    elapsed: float = 0.0
    rows_read: int = 0
    bytes_read: int = 0


class Pagination(BaseModel):
    previous_page: int
    current_page: int
    next_page: Optional[int] = None
    total_pages: int


class UsageSuccess(BaseModel):
    """Successful execution: rows in template order plus execution metadata."""
    kind: Literal["success"] = "success"
    data: List[Dict[str, Any]] = Field(default_factory=list)
    statistics: QueryStatistics = Field(default_factory=QueryStatistics)
    pagination: Optional[Pagination] = None
    results: int = 0
    total_results: int = 0
    request_time: datetime = Field(default_factory=utc_now)
    duration_ms: int = 0


class UsageFailure(BaseModel):
    """Classified failure. ``detail`` is diagnostic and never carries credentials."""
    kind: Literal["failure"] = "failure"
    error_kind: ErrorKind
    status: int
    message: str
    detail: Optional[str] = None

    def to_error_body(self) -> Dict[str, Any]:
        """JSON body returned to API clients."""
        return {"status": self.status, "code": self.error_kind.value, "message": self.message}


UsageResponse = Annotated[Union[UsageSuccess, UsageFailure], Field(discriminator="kind")]


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class NetworkHealth(BaseModel):
    network_id: str
    chain_type: ChainType
    reachable: bool
    latency_ms: Optional[float] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None


class HealthResult(BaseModel):
    status: HealthStatus
    networks: List[NetworkHealth] = Field(default_factory=list)
    request_time: datetime = Field(default_factory=utc_now)
    duration_ms: int = 0
