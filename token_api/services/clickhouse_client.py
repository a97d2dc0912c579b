"""
ClickHouse HTTP client and per-target client pool.

Queries go through the ClickHouse HTTP interface with server-side typed
parameters (``{name:Type}`` in the SQL, ``param_<name>`` in the request),
so values are never concatenated into the statement text.
"""

import time
import uuid
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from token_api.exceptions import ClickHouseError
from token_api.services.network_registry import ClusterConfig, DatabaseTarget
from token_api.utils.logger import logger

# Applied to every data query; mirrors a read-only API user
DEFAULT_QUERY_SETTINGS: Dict[str, Any] = {
    "readonly": 1,
    "output_format_json_quote_64bit_integers": 0,
    "exact_rows_before_limit": 1,
    "cancel_http_readonly_queries_on_client_close": 1,
}


def encode_param(value: Any) -> str:
    """Encode a bound value in the text form ClickHouse expects for param_<name>."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode_array_item(v) for v in value) + "]"
    return str(value)


def _encode_array_item(value: Any) -> str:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'"
    return encode_param(value)


def _parse_exception_code(response: httpx.Response) -> Optional[int]:
    code = response.headers.get("X-ClickHouse-Exception-Code")
    if code and code.isdigit():
        return int(code)
    # Older servers only report the code in the body: "Code: 516. DB::Exception: ..."
    text = response.text
    if text.startswith("Code: "):
        number = text[len("Code: "):].split(".", 1)[0]
        if number.isdigit():
            return int(number)
    return None


class ClickHouseClient:
    """Thin async wrapper over one ClickHouse HTTP endpoint."""

    def __init__(self, cluster: ClusterConfig, http_client: httpx.AsyncClient):
        self.cluster = cluster
        self._http = http_client

    def _headers(self) -> Dict[str, str]:
        return {
            "X-ClickHouse-User": self.cluster.username,
            "X-ClickHouse-Key": self.cluster.password,
        }

    def _handle_response(self, response: httpx.Response) -> Dict[str, Any]:
        """
        Parse a ClickHouse JSON response, raising ClickHouseError on failure.
        """
        if response.status_code >= 400 or "X-ClickHouse-Exception-Code" in response.headers:
            code = _parse_exception_code(response)
            message = response.text.strip() or f"HTTP {response.status_code}"
            raise ClickHouseError(message, code=code, http_status=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ClickHouseError(f"Failed to parse database response: {e}", http_status=response.status_code) from e

    async def query(
        self,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
        database: Optional[str] = None,
        settings: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Run one statement and return the decoded JSON document
        ({"data", "rows", "rows_before_limit_at_least", "statistics", ...}).
        """
        query_id = str(uuid.uuid4())
        request_params: Dict[str, Any] = {"default_format": "JSON", "query_id": query_id}
        if database:
            request_params["database"] = database
        for key, value in (settings or {}).items():
            request_params[key] = encode_param(value)
        for name, value in (params or {}).items():
            request_params[f"param_{name}"] = encode_param(value)

        logger.debug("ClickHouseClient: query_id=%s database=%s sql=%s params=%s",
                     query_id, database, sql, dict(params or {}))
        start_time = time.perf_counter()
        response = await self._http.post(
            self.cluster.url,
            params=request_params,
            content=sql.encode("utf-8"),
            headers=self._headers(),
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )
        result = self._handle_response(response)
        logger.debug("ClickHouseClient: query_id=%s completed in %.3fs, %s rows",
                     query_id, time.perf_counter() - start_time, result.get("rows"))
        return result

    async def probe(self, timeout: Optional[float] = None) -> float:
        """Liveness probe with credentials. Returns latency in milliseconds."""
        start_time = time.perf_counter()
        await self.query("SELECT 1", timeout=timeout)
        return (time.perf_counter() - start_time) * 1000


class ClickHouseClientPool:
    """One shared httpx.AsyncClient per physical ClickHouse target."""

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._timeout = timeout
        self._transport = transport
        self._clients: Dict[Tuple[str, str], httpx.AsyncClient] = {}

    def _create_client(self, cluster: ClusterConfig) -> httpx.AsyncClient:
        logger.info("ClickHouseClientPool: creating client for %s (user=%s)", cluster.url, cluster.username)
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def get_client(self, cluster: ClusterConfig) -> ClickHouseClient:
        """Get (or lazily create) the client for a cluster."""
        http_client = self._clients.get(cluster.probe_key)
        if http_client is None:
            http_client = self._create_client(cluster)
            self._clients[cluster.probe_key] = http_client
        return ClickHouseClient(cluster, http_client)

    def for_target(self, target: DatabaseTarget) -> ClickHouseClient:
        return self.get_client(target.cluster)

    async def close(self) -> None:
        """Close every pooled client."""
        clients, self._clients = self._clients, {}
        for key, http_client in clients.items():
            try:
                await http_client.aclose()
            except Exception as e:
                logger.error("ClickHouseClientPool: error closing client for %s: %s", key[0], e)
        logger.info("ClickHouseClientPool: closed %d clients", len(clients))

    def get_stats(self) -> Dict[str, Any]:
        """Get client pool statistics."""
        return {
            "clients": len(self._clients),
            "targets": [url for url, _ in self._clients],
            "timeout": self._timeout,
        }
