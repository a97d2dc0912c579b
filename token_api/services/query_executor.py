"""
Query executor.

Runs one or more templates against a database target and returns the
UsageResponse union. No exception escapes ``execute``: binding problems,
backend errors and transport failures all come back as UsageFailure.
"""
import math
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from token_api.config import settings
from token_api.data_models.schemas import (
    ErrorKind,
    Pagination,
    QueryStatistics,
    UsageResponse,
    UsageSuccess,
    utc_now,
)
from token_api.exceptions import ParameterBindingError
from token_api.services.clickhouse_client import DEFAULT_QUERY_SETTINGS, ClickHouseClientPool
from token_api.services.error_classifier import TIMEOUT_DETAIL, TIMEOUT_MESSAGE, ClassifiedError, classify
from token_api.services.network_registry import DatabaseTarget
from token_api.utils.logger import logger
from token_api.utils.sql_validator import extract_placeholders

Scalar = Union[str, int, float, bool]
ParamValue = Union[Scalar, Sequence[str]]
BoundParameters = Mapping[str, ParamValue]

_INTEGER_TYPE_RE = re.compile(r"^U?Int\d+$")
_INTEGER_RE = re.compile(r"^-?\d+$")
_NUMERIC_TYPE_RE = re.compile(r"^(Float\d+|Decimal.*)$")
_WRAPPER_TYPE_RE = re.compile(r"^(Nullable|LowCardinality)\((.*)\)$")
_TRUE = {"true", "1"}
_FALSE = {"false", "0"}


@dataclass(frozen=True)
class ExecutionOptions:
    limit: int = settings.DEFAULT_LIMIT
    page: int = settings.DEFAULT_PAGE
    max_execution_time: float = settings.MAX_QUERY_EXECUTION_TIME


def _base_type(ch_type: str) -> str:
    match = _WRAPPER_TYPE_RE.match(ch_type.strip())
    while match:
        ch_type = match.group(2)
        match = _WRAPPER_TYPE_RE.match(ch_type.strip())
    return ch_type.strip()


def _coerce_integer(name: str, value: Any, unsigned: bool) -> Union[int, str]:
    """Whole numbers only: ints, integral floats and digit strings."""
    kind = "a non-negative integer" if unsigned else "an integer"
    if isinstance(value, bool):
        raise ParameterBindingError(f"Parameter '{name}' must be {kind}", name)
    if isinstance(value, float):
        if not value.is_integer():
            raise ParameterBindingError(f"Parameter '{name}' must be {kind}", name)
        value = int(value)
    if isinstance(value, int):
        if unsigned and value < 0:
            raise ParameterBindingError(f"Parameter '{name}' must be {kind}", name)
        return value
    if isinstance(value, str):
        text = value.strip()
        if not _INTEGER_RE.match(text) or (unsigned and text.startswith("-")):
            raise ParameterBindingError(f"Parameter '{name}' must be {kind}", name)
        return text
    raise ParameterBindingError(f"Parameter '{name}' must be {kind}", name)


def _coerce_scalar(name: str, value: Any, ch_type: str) -> Scalar:
    base = _base_type(ch_type)

    if base == "Bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in _TRUE | _FALSE:
            return value.lower() in _TRUE
        raise ParameterBindingError(f"Parameter '{name}' must be a boolean", name)

    if _INTEGER_TYPE_RE.match(base):
        return _coerce_integer(name, value, unsigned=base.startswith("U"))

    if _NUMERIC_TYPE_RE.match(base):
        if isinstance(value, bool):
            raise ParameterBindingError(f"Parameter '{name}' must be a number", name)
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                number = float(value)
            except ValueError:
                raise ParameterBindingError(f"Parameter '{name}' must be a number", name)
            if math.isnan(number) or math.isinf(number):
                raise ParameterBindingError(f"Parameter '{name}' must be a finite number", name)
            return value.strip()
        raise ParameterBindingError(f"Parameter '{name}' must be a number", name)

    # String, FixedString, DateTime, Date... are all sent as text
    if isinstance(value, bool):
        raise ParameterBindingError(f"Parameter '{name}' must be a string", name)
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ParameterBindingError(f"Parameter '{name}' must be a string", name)


def coerce_parameter(name: str, value: Any, ch_type: str) -> ParamValue:
    """Check a value against its placeholder type; raises ParameterBindingError."""
    base = _base_type(ch_type)
    if value is None:
        raise ParameterBindingError(f"Missing required parameter '{name}'", name)

    if base.startswith("Array(") and base.endswith(")"):
        inner = base[len("Array("):-1]
        items = list(value) if isinstance(value, (list, tuple)) else [value]
        coerced = []
        for item in items:
            if item is None or isinstance(item, (list, tuple, dict, set)):
                raise ParameterBindingError(f"Parameter '{name}' must be a list of scalars", name)
            coerced.append(_coerce_scalar(name, item, inner))
        return coerced

    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            raise ParameterBindingError(f"Parameter '{name}' does not accept multiple values", name)
        value = value[0]
    if isinstance(value, (dict, set)):
        raise ParameterBindingError(f"Parameter '{name}' has an unsupported type", name)
    return _coerce_scalar(name, value, ch_type)


def bind_parameters(templates: Sequence[str], params: BoundParameters) -> Dict[str, ParamValue]:
    """Bind only the parameters the templates reference, validating each one."""
    placeholders: Dict[str, str] = {}
    for template in templates:
        for name, ch_type in extract_placeholders(template).items():
            placeholders.setdefault(name, ch_type)

    bound: Dict[str, ParamValue] = {}
    for name, ch_type in placeholders.items():
        if name not in params:
            raise ParameterBindingError(f"Missing required parameter '{name}'", name)
        bound[name] = coerce_parameter(name, params[name], ch_type)
    return bound


def compute_pagination(page: int, limit: int, total_results: int) -> Pagination:
    total_pages = max(1, math.ceil(total_results / limit)) if limit else 1
    return Pagination(
        previous_page=max(1, page - 1),
        current_page=page,
        next_page=page + 1 if page < total_pages else None,
        total_pages=total_pages,
    )


class UsageQueryExecutor:
    """Executes templates against ClickHouse and normalizes the outcome."""

    def __init__(self, pool: ClickHouseClientPool, max_limit: int = settings.MAX_LIMIT):
        self.pool = pool
        self.max_limit = max_limit

    def _check_options(self, options: ExecutionOptions) -> None:
        if not isinstance(options.limit, int) or isinstance(options.limit, bool) \
                or not 1 <= options.limit <= self.max_limit:
            raise ParameterBindingError(f"Parameter 'limit' must be between 1 and {self.max_limit}", "limit")
        if not isinstance(options.page, int) or isinstance(options.page, bool) or options.page < 1:
            raise ParameterBindingError("Parameter 'page' must be greater or equal to 1", "page")

    async def execute(
        self,
        target: DatabaseTarget,
        templates: Sequence[str],
        params: BoundParameters,
        options: Optional[ExecutionOptions] = None,
    ) -> UsageResponse:
        options = options or ExecutionOptions()
        request_time = utc_now()
        start_time = time.perf_counter()

        try:
            self._check_options(options)
            # Since `page` starts at 1, `offset` is positive for page > 1
            merged = {
                **params,
                "limit": options.limit,
                "offset": options.limit * (options.page - 1),
            }
            bound = bind_parameters(templates, merged)
        except Exception as e:
            failure = classify(e).to_failure()
            logger.warning("UsageQueryExecutor: rejected parameters: %s", failure.message)
            return failure

        client = self.pool.for_target(target)
        query_settings = {**DEFAULT_QUERY_SETTINGS, "max_execution_time": options.max_execution_time}

        data: List[Dict[str, Any]] = []
        statistics = QueryStatistics()
        total_results = 0
        try:
            for template in templates:
                result = await client.query(
                    template,
                    params={k: v for k, v in bound.items() if k in extract_placeholders(template)},
                    database=target.database,
                    settings=query_settings,
                )
                rows = result.get("data") or []
                stats = result.get("statistics") or {}
                elapsed = float(stats.get("elapsed", 0) or 0)

                # ClickHouse sometimes returns an empty result instead of a timeout error
                if not rows and elapsed >= options.max_execution_time:
                    logger.error("UsageQueryExecutor: query on %s hit max_execution_time (%.2fs)",
                                 target.database, elapsed)
                    return ClassifiedError(ErrorKind.BAD_DATABASE_RESPONSE, TIMEOUT_MESSAGE, TIMEOUT_DETAIL).to_failure()

                data.extend(rows)
                statistics.elapsed += elapsed
                statistics.rows_read += int(stats.get("rows_read", 0) or 0)
                statistics.bytes_read += int(stats.get("bytes_read", 0) or 0)
                total_results += int(result.get("rows_before_limit_at_least") or len(rows))
        except Exception as e:
            failure = classify(e).to_failure()
            logger.error("UsageQueryExecutor: %s on %s (%s): %s",
                         failure.error_kind.value, target.database, target.url, failure.detail or failure.message)
            return failure

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info("UsageQueryExecutor: %d templates on %s completed in %dms, %d rows",
                    len(templates), target.database, duration_ms, len(data))
        return UsageSuccess(
            data=data,
            statistics=statistics,
            pagination=compute_pagination(options.page, options.limit, total_results),
            results=len(data),
            total_results=total_results,
            request_time=request_time,
            duration_ms=duration_ms,
        )
