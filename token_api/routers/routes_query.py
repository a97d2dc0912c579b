from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from token_api.config import settings
from token_api.data_models.schemas import ChainType
from token_api.exceptions import ParameterBindingError, UnknownNetworkError
from token_api.routers.deps import Services, get_services, usage_json_response
from token_api.services.error_classifier import classify
from token_api.services.query_executor import ExecutionOptions
from token_api.utils.startup_validation import default_network

router = APIRouter(prefix="/v1", tags=["Queries"])

RESERVED_PARAMS = {"network", "limit", "page"}


def _parse_int(name: str, raw: Optional[str], default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ParameterBindingError(f"Parameter '{name}' must be an integer", name)


def parse_query_params(request: Request) -> Tuple[Dict[str, Any], ExecutionOptions]:
    """
    Query-string values become bound parameters. Repeated keys and
    comma-separated values become lists.
    """
    collected: Dict[str, List[str]] = {}
    for key, value in request.query_params.multi_items():
        if key in RESERVED_PARAMS:
            continue
        collected.setdefault(key, []).extend(v.strip() for v in value.split(",") if v.strip())

    params: Dict[str, Any] = {
        key: values[0] if len(values) == 1 else values
        for key, values in collected.items()
        if values
    }
    options = ExecutionOptions(
        limit=_parse_int("limit", request.query_params.get("limit"), settings.DEFAULT_LIMIT),
        page=_parse_int("page", request.query_params.get("page"), settings.DEFAULT_PAGE),
    )
    return params, options


@router.get("/{chain_type}/{query_key}")
async def run_query(
    chain_type: str,
    query_key: str,
    request: Request,
    network: Optional[str] = None,
    services: Services = Depends(get_services),
) -> JSONResponse:
    try:
        chain = ChainType(chain_type)
    except ValueError:
        failure = classify(UnknownNetworkError(chain_type, f"Unsupported chain type: {chain_type}")).to_failure()
        return usage_json_response(failure)

    try:
        params, options = parse_query_params(request)
    except ParameterBindingError as e:
        return usage_json_response(classify(e).to_failure())

    response = await services.queries.run(
        [query_key],
        chain,
        network or default_network(chain),
        params,
        options,
    )
    return usage_json_response(response)
