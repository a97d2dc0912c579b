"""
Response enrichment.

Two in-place passes over a successful UsageResponse:

- symbol patching for a small set of legacy contracts whose on-chain
  metadata is wrong or missing
- web3icon attachment by symbol, with a single leading "W" stripped as a
  fallback for wrapped assets (WETH -> ETH)

Both passes are no-ops on failures and idempotent on successes.
"""
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional

import yaml
from typing_extensions import assert_never

from token_api.data_models.schemas import UsageFailure, UsageResponse, UsageSuccess
from token_api.exceptions import ConfigurationError
from token_api.knowledge.token_icons import WEB3ICON_TOKENS
from token_api.knowledge.token_symbols import SYMBOL_RECORDS
from token_api.utils.logger import logger

SYMBOL_FIELDS = ("symbol", "decimals", "name")


def normalize_address(address: str) -> str:
    """Trim, drop any chain prefix ("eth:", "eip155:1:") and lowercase."""
    cleaned = address.strip()
    if ":" in cleaned:
        cleaned = cleaned.rsplit(":", 1)[1]
    return cleaned.lower()


def _read_table_file(path: str) -> Any:
    file_path = Path(path).resolve()
    if not file_path.exists():
        raise ConfigurationError(f"Enrichment table not found: {file_path}")
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            # YAML is a superset of JSON
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing enrichment table {file_path}: {e}") from e


class SymbolTable:
    """Immutable address -> {symbol, decimals, name} patch table."""

    def __init__(self, records: Mapping[str, Mapping[str, Any]]):
        table: Dict[str, Mapping[str, Any]] = {}
        for address, record in records.items():
            missing = [f for f in SYMBOL_FIELDS if f not in record]
            if missing:
                raise ConfigurationError(f"Symbol record for {address} is missing {', '.join(missing)}")
            table[normalize_address(address)] = MappingProxyType({f: record[f] for f in SYMBOL_FIELDS})
        self._records = MappingProxyType(table)

    @classmethod
    def default(cls) -> "SymbolTable":
        return cls(SYMBOL_RECORDS)

    @classmethod
    def from_file(cls, path: str) -> "SymbolTable":
        raw = _read_table_file(path)
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Symbol table {path} must be a mapping of address to record")
        table = cls(raw)
        logger.info("SymbolTable: loaded %d records from %s", len(table), path)
        return table

    def get(self, address: str) -> Optional[Mapping[str, Any]]:
        return self._records.get(normalize_address(address))

    def __len__(self) -> int:
        return len(self._records)


class IconTable:
    """Immutable symbol -> web3icon id table."""

    def __init__(self, icons: Mapping[str, str]):
        self._icons = MappingProxyType(dict(icons))

    @classmethod
    def from_symbols(cls, symbols: Iterable[str]) -> "IconTable":
        return cls({symbol: symbol for symbol in symbols})

    @classmethod
    def default(cls) -> "IconTable":
        return cls.from_symbols(WEB3ICON_TOKENS)

    @classmethod
    def from_file(cls, path: str) -> "IconTable":
        """Accepts either a list of symbols or a symbol -> icon id mapping."""
        raw = _read_table_file(path)
        if isinstance(raw, list):
            table = cls.from_symbols(str(s) for s in raw)
        elif isinstance(raw, dict):
            table = cls({str(k): str(v) for k, v in raw.items()})
        else:
            raise ConfigurationError(f"Icon table {path} must be a list or a mapping")
        logger.info("IconTable: loaded %d icons from %s", len(table), path)
        return table

    def find(self, symbol: str) -> Optional[str]:
        icon = self._icons.get(symbol)
        if icon is None and symbol.startswith("W"):
            icon = self._icons.get(symbol[1:])
        return icon

    def __len__(self) -> int:
        return len(self._icons)


def inject_symbols(response: UsageResponse, table: SymbolTable) -> UsageResponse:
    """Overwrite symbol/decimals/name on rows whose address or contract is patched."""
    if isinstance(response, UsageFailure):
        return response
    elif isinstance(response, UsageSuccess):
        for row in response.data:
            address = row.get("address") or row.get("contract")
            if not isinstance(address, str):
                continue
            record = table.get(address)
            if record:
                row.update(record)
        return response
    else:
        assert_never(response)


def inject_icons(response: UsageResponse, table: IconTable) -> UsageResponse:
    """Attach ``icon.web3icon`` to rows with a known symbol."""
    if isinstance(response, UsageFailure):
        return response
    elif isinstance(response, UsageSuccess):
        for row in response.data:
            symbol = row.get("symbol")
            if not symbol or not isinstance(symbol, str):
                continue
            icon = table.find(symbol)
            if icon:
                row["icon"] = {"web3icon": icon}
        return response
    else:
        assert_never(response)
