"""
Query service: the single entry point route handlers call for data queries.

network lookup -> template resolution -> parameter normalization ->
execution -> symbol and icon enrichment
"""
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from token_api.data_models.schemas import ChainType, UsageFailure, UsageResponse, UsageSuccess, utc_now
from token_api.exceptions import UnknownNetworkError
from token_api.services.enrichment import IconTable, SymbolTable, inject_icons, inject_symbols, normalize_address
from token_api.services.error_classifier import classify
from token_api.services.network_registry import NetworkRegistry
from token_api.services.query_executor import ExecutionOptions, UsageQueryExecutor
from token_api.services.query_registry import QueryTemplateRegistry
from token_api.utils.logger import logger

# Parameters holding EVM addresses
EVM_ADDRESS_PARAMS = frozenset({"address", "contract", "owner", "pool", "token", "from", "to"})

_BARE_EVM_ADDRESS_RE = re.compile(r"^[0-9a-f]{40}$")


def normalize_evm_address(value: Any) -> Any:
    """Lowercase, drop any chain prefix and add a missing 0x. Non-strings pass through."""
    if not isinstance(value, str):
        return value
    address = normalize_address(value)
    if _BARE_EVM_ADDRESS_RE.match(address):
        address = "0x" + address
    return address


def normalize_params(chain_type: ChainType, params: Mapping[str, Any]) -> Dict[str, Any]:
    normalized = dict(params)
    # base58 (SVM) and TVM addresses are case-sensitive
    if chain_type != ChainType.EVM:
        return normalized
    for name in EVM_ADDRESS_PARAMS.intersection(normalized):
        value = normalized[name]
        if isinstance(value, (list, tuple)):
            normalized[name] = [normalize_evm_address(v) for v in value]
        else:
            normalized[name] = normalize_evm_address(value)
    return normalized


class QueryService:
    def __init__(
        self,
        templates: QueryTemplateRegistry,
        networks: NetworkRegistry,
        executor: UsageQueryExecutor,
        symbols: SymbolTable,
        icons: IconTable,
    ):
        self.templates = templates
        self.networks = networks
        self.executor = executor
        self.symbols = symbols
        self.icons = icons

    def _reject(self, error: Exception) -> UsageFailure:
        failure = classify(error).to_failure()
        logger.warning("QueryService: %s: %s", failure.error_kind.value, failure.message)
        return failure

    async def run(
        self,
        query_keys: Sequence[str],
        chain_type: ChainType,
        network_id: str,
        params: Mapping[str, Any],
        options: Optional[ExecutionOptions] = None,
        enrich: bool = True,
    ) -> UsageResponse:
        try:
            chain_type = ChainType(chain_type)
        except ValueError:
            return self._reject(UnknownNetworkError(network_id, f"Unsupported chain type: {chain_type}"))

        network = self.networks.lookup(network_id)
        if network is None or network.chain_type != chain_type:
            return self._reject(UnknownNetworkError(network_id))

        resolved = self.templates.resolve_many(query_keys, chain_type)
        keys: List[str] = [key for key, template in zip(query_keys, resolved) if template is not None]
        templates: List[str] = [template for template in resolved if template is not None]
        if not templates:
            logger.info("QueryService: no template for %s on %s, returning empty result",
                        ", ".join(query_keys), chain_type.value)
            return UsageSuccess(request_time=utc_now())

        categories = {self.templates.category(key) for key in keys}
        if len(categories) != 1:
            return self._reject(UnknownNetworkError(
                network_id, f"Queries {', '.join(keys)} span several databases: {', '.join(sorted(categories))}"
            ))
        category = categories.pop()
        target = network.database_target(category)
        if target is None:
            return self._reject(UnknownNetworkError(
                network_id, f"Network {network_id} has no {category} database"
            ))

        bound = normalize_params(chain_type, params)
        bound["network"] = network.id

        response = await self.executor.execute(target, templates, bound, options)
        if enrich:
            response = inject_icons(inject_symbols(response, self.symbols), self.icons)
        return response
