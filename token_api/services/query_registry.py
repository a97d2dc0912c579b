"""
Query template registry.

Maps a logical query key (e.g. "balances") and a chain type to the SQL
template that implements it. Templates live on disk as
``<sql_dir>/<query_key>/<chain_type>.sql`` and are loaded once at startup.
A missing template is not an error: the query is simply not supported on
that chain.
"""
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from token_api.data_models.schemas import ChainType
from token_api.exceptions import TemplateValidationError
from token_api.utils.logger import logger
from token_api.utils.sql_validator import fold_statement, is_valid_sql_select

# Database category each query key reads from
QUERY_CATEGORIES: Mapping[str, str] = MappingProxyType({
    "balances": "balances",
    "balances_native": "balances",
    "historical_balances": "balances",
    "holders": "balances",
    "transfers": "transfers",
    "tokens": "contracts",
    "swaps": "dexes",
    "pools": "dexes",
    "nft_ownerships": "nfts",
})

DEFAULT_CATEGORY = "balances"


class QueryTemplateRegistry:
    """Immutable (query key, chain type) -> template lookup."""

    def __init__(
        self,
        templates: Mapping[str, Mapping[ChainType, str]],
        categories: Mapping[str, str] = QUERY_CATEGORIES,
    ):
        self._templates = MappingProxyType({
            key: MappingProxyType(dict(by_chain)) for key, by_chain in templates.items()
        })
        self._categories = categories

    @classmethod
    def load(cls, sql_dir: str) -> "QueryTemplateRegistry":
        """Load every ``<query_key>/<chain_type>.sql`` under sql_dir."""
        root = Path(sql_dir)
        if not root.is_dir():
            raise TemplateValidationError(f"SQL directory not found: {root}")

        chain_types = {c.value: c for c in ChainType}
        templates: Dict[str, Dict[ChainType, str]] = {}
        for query_dir in sorted(p for p in root.iterdir() if p.is_dir()):
            for sql_file in sorted(query_dir.glob("*.sql")):
                chain_type = chain_types.get(sql_file.stem)
                if chain_type is None:
                    logger.warning("QueryTemplateRegistry: ignoring %s (unknown chain type)", sql_file)
                    continue
                query = fold_statement(sql_file.read_text(encoding="utf-8"))
                if not is_valid_sql_select(query):
                    raise TemplateValidationError(
                        f"Template {query_dir.name}/{sql_file.name} is not a single read-only SELECT"
                    )
                templates.setdefault(query_dir.name, {})[chain_type] = query

        logger.info(
            "QueryTemplateRegistry: loaded %d templates for %d query keys",
            sum(len(v) for v in templates.values()), len(templates),
        )
        return cls(templates)

    def resolve(self, query_key: str, chain_type: ChainType) -> Optional[str]:
        by_chain = self._templates.get(query_key)
        if by_chain is None:
            return None
        return by_chain.get(ChainType(chain_type))

    def resolve_many(self, query_keys: Iterable[str], chain_type: ChainType) -> List[Optional[str]]:
        """Parallel to query_keys; unsupported keys yield None in place."""
        return [self.resolve(key, chain_type) for key in query_keys]

    def category(self, query_key: str) -> str:
        return self._categories.get(query_key, DEFAULT_CATEGORY)

    def keys(self) -> List[str]:
        return sorted(self._templates)

    def __len__(self) -> int:
        return sum(len(v) for v in self._templates.values())
