"""Tests for the query service pipeline."""
import asyncio

import httpx

from ..clickhouse_client import ClickHouseClientPool
from ..enrichment import IconTable, SymbolTable
from ..network_registry import ClusterConfig, NetworkDescriptor, NetworkRegistry
from ..query_executor import UsageQueryExecutor
from ..query_registry import QueryTemplateRegistry
from ..query_service import QueryService, normalize_evm_address, normalize_params
from ...config import settings
from ...data_models.schemas import ChainType, ErrorKind, UsageFailure, UsageSuccess

CLUSTER = ClusterConfig(name="default", url="http://clickhouse:8123")
MKR = "0x9f8f72aa9304c8b593d555f12ef6589cc3a579a2"
VITALIK_MIXED = "0x95222290DD7278Aa3Ddd389Cc1E1d165CC4BAfe5"
VITALIK = "0x95222290dd7278aa3ddd389cc1e1d165cc4bafe5"

NETWORKS = NetworkRegistry([
    NetworkDescriptor(
        id="eth-mainnet",
        chain_type=ChainType.EVM,
        cluster=CLUSTER,
        databases={
            "balances": "mainnet:evm-tokens@v1.9.0:db_out",
            "transfers": "mainnet:evm-transfers@v1.0.0:db_out",
        },
    ),
    NetworkDescriptor(
        id="solana",
        chain_type=ChainType.SVM,
        cluster=CLUSTER,
        databases={"balances": "solana:svm-tokens@v1.0.0:db_out"},
    ),
])


def _ch_response(rows):
    return httpx.Response(200, json={
        "data": rows,
        "rows": len(rows),
        "rows_before_limit_at_least": len(rows),
        "statistics": {"elapsed": 0.01, "rows_read": 10, "bytes_read": 100},
    })


class Recorder:
    def __init__(self, rows=None):
        self.rows = rows or []
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return _ch_response([dict(r) for r in self.rows])


def _run(recorder, query_keys, chain_type, network_id, params, templates=None):
    async def run():
        pool = ClickHouseClientPool(transport=httpx.MockTransport(recorder))
        service = QueryService(
            templates or QueryTemplateRegistry.load(settings.SQL_DIR),
            NETWORKS,
            UsageQueryExecutor(pool),
            SymbolTable.default(),
            IconTable.default(),
        )
        try:
            return await service.run(query_keys, chain_type, network_id, params)
        finally:
            await pool.close()

    return asyncio.run(run())


class TestNormalizeParams:

    def test_evm_addresses_lowercased_and_prefixed(self):
        """Test EVM address parameters are lowercased and 0x-prefixed."""
        params = normalize_params(ChainType.EVM, {
            "address": [VITALIK_MIXED, "eth:" + VITALIK_MIXED],
            "contract": MKR[2:].upper(),
            "symbol": "MKR",
        })

        assert params["address"] == [VITALIK, VITALIK]
        assert params["contract"] == MKR
        assert params["symbol"] == "MKR"

    def test_svm_addresses_untouched(self):
        """Test SVM addresses keep their case."""
        owner = "GThUX1Atko4tqhN2NaiTazWSeFWMuiUvfFnyJyUghFMJ"

        assert normalize_params(ChainType.SVM, {"address": owner}) == {"address": owner}

    def test_non_string_passthrough(self):
        """Non string passthrough."""
        assert normalize_evm_address(5) == 5


class TestRun:

    def test_end_to_end_balances(self):
        """Test eth-mainnet balances end to end with enrichment."""
        recorder = Recorder(rows=[
            {"contract": MKR, "amount": "1000", "symbol": "", "decimals": 0, "name": ""},
            {"contract": "0x0000000000000000000000000000000000000001", "amount": "5", "symbol": "WETH"},
        ])

        response = _run(recorder, ["balances"], ChainType.EVM, "eth-mainnet", {"address": VITALIK_MIXED})

        assert isinstance(response, UsageSuccess)
        request = recorder.requests[0]
        assert "FROM balances" in request.content.decode()
        assert request.url.params["database"] == "mainnet:evm-tokens@v1.9.0:db_out"
        assert request.url.params["param_address"] == f"['{VITALIK}']"
        assert request.url.params["param_network"] == "eth-mainnet"
        patched, wrapped = response.data
        assert (patched["symbol"], patched["decimals"], patched["name"]) == ("MKR", 18, "Maker")
        assert patched["icon"] == {"web3icon": "MKR"}
        assert wrapped["icon"] == {"web3icon": "ETH"}

    def test_unknown_network(self):
        """Test an unknown network is a 404 without a database call."""
        recorder = Recorder()

        response = _run(recorder, ["balances"], ChainType.EVM, "goerli", {"address": VITALIK})

        assert isinstance(response, UsageFailure)
        assert response.error_kind == ErrorKind.UNKNOWN_NETWORK
        assert recorder.requests == []

    def test_network_of_other_chain_type(self):
        """Network of other chain type."""
        response = _run(Recorder(), ["balances"], ChainType.EVM, "solana", {"address": VITALIK})

        assert isinstance(response, UsageFailure)
        assert response.error_kind == ErrorKind.UNKNOWN_NETWORK

    def test_unsupported_keys_filtered(self):
        """Unsupported keys filtered."""
        templates = QueryTemplateRegistry({
            "balances": {ChainType.EVM: "SELECT {network:String} AS network"},
            "swaps": {ChainType.SVM: "SELECT 1"},
        })
        recorder = Recorder(rows=[{"network": "eth-mainnet"}])

        response = _run(recorder, ["swaps", "balances"], ChainType.EVM, "eth-mainnet", {}, templates)

        assert isinstance(response, UsageSuccess)
        assert len(recorder.requests) == 1
        assert response.data == [{"network": "eth-mainnet"}]

    def test_no_supported_keys_is_empty_success(self):
        """No supported keys is empty success."""
        recorder = Recorder()
        templates = QueryTemplateRegistry({"swaps": {ChainType.SVM: "SELECT 1"}})

        response = _run(recorder, ["swaps"], ChainType.EVM, "eth-mainnet", {}, templates)

        assert isinstance(response, UsageSuccess)
        assert response.data == []
        assert recorder.requests == []

    def test_mixed_categories_rejected(self):
        """Mixed categories rejected."""
        templates = QueryTemplateRegistry({
            "balances": {ChainType.EVM: "SELECT 1"},
            "transfers": {ChainType.EVM: "SELECT 2"},
        })

        response = _run(Recorder(), ["balances", "transfers"], ChainType.EVM, "eth-mainnet", {}, templates)

        assert isinstance(response, UsageFailure)
        assert response.error_kind == ErrorKind.UNKNOWN_NETWORK

    def test_missing_category_database(self):
        """Missing category database."""
        templates = QueryTemplateRegistry({"nft_ownerships": {ChainType.EVM: "SELECT 1"}})

        response = _run(Recorder(), ["nft_ownerships"], ChainType.EVM, "eth-mainnet", {}, templates)

        assert isinstance(response, UsageFailure)
        assert response.error_kind == ErrorKind.UNKNOWN_NETWORK

    def test_binding_failure(self):
        """Test a missing parameter is a bad_request."""
        recorder = Recorder()

        response = _run(recorder, ["balances"], ChainType.EVM, "eth-mainnet", {})

        assert isinstance(response, UsageFailure)
        assert response.error_kind == ErrorKind.BAD_REQUEST
        assert recorder.requests == []
