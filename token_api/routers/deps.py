from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import JSONResponse
from typing_extensions import assert_never

from token_api.data_models.schemas import UsageFailure, UsageResponse, UsageSuccess
from token_api.services.clickhouse_client import ClickHouseClientPool
from token_api.services.health import HealthAggregator
from token_api.services.network_registry import NetworkRegistry
from token_api.services.query_registry import QueryTemplateRegistry
from token_api.services.query_service import QueryService


@dataclass
class Services:
    """Everything the routes need, built once at startup."""
    networks: NetworkRegistry
    templates: QueryTemplateRegistry
    pool: ClickHouseClientPool
    queries: QueryService
    health: HealthAggregator


def get_services(request: Request) -> Services:
    return request.app.state.services


def usage_json_response(response: UsageResponse) -> JSONResponse:
    """Map the UsageResponse union onto an HTTP response."""
    if isinstance(response, UsageFailure):
        return JSONResponse(status_code=response.status, content=response.to_error_body())
    elif isinstance(response, UsageSuccess):
        return JSONResponse(status_code=200, content=response.model_dump(mode="json", exclude={"kind"}))
    else:
        assert_never(response)
