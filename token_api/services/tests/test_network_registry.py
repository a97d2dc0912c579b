"""Tests for the network registry."""
import pytest

from ..network_registry import ClusterConfig, NetworkDescriptor, NetworkRegistry
from ...data_models.schemas import ChainType
from ...exceptions import ConfigurationError

PRIMARY = ClusterConfig(name="primary", url="http://ch-1:8123", username="reader", password="secret")
SECONDARY = ClusterConfig(name="secondary", url="http://ch-2:8123")
# Same physical target as PRIMARY under another name
PRIMARY_ALIAS = ClusterConfig(name="alias", url="http://ch-1:8123/", username="reader", password="secret")


def _network(network_id, chain_type=ChainType.EVM, cluster=PRIMARY, **databases):
    return NetworkDescriptor(id=network_id, chain_type=chain_type, cluster=cluster, databases=databases)


class TestNetworkRegistry:

    def test_lookup(self):
        """Test looking up a network by id."""
        registry = NetworkRegistry([_network("mainnet"), _network("solana", ChainType.SVM)])

        assert registry.lookup("mainnet").chain_type == ChainType.EVM
        assert registry.lookup("unknown") is None
        assert "solana" in registry
        assert len(registry) == 2

    def test_duplicate_id_rejected(self):
        """Duplicate id rejected."""
        with pytest.raises(ConfigurationError):
            NetworkRegistry([_network("mainnet"), _network("mainnet", cluster=SECONDARY)])

    def test_list_sorted_and_filtered(self):
        """List sorted and filtered."""
        registry = NetworkRegistry([
            _network("optimism"),
            _network("solana", ChainType.SVM),
            _network("base"),
        ])

        assert [n.id for n in registry.list()] == ["base", "optimism", "solana"]
        assert [n.id for n in registry.list(ChainType.EVM)] == ["base", "optimism"]
        assert [n.id for n in registry.list("svm")] == ["solana"]

    def test_distinct_targets_deduplicates(self):
        """Distinct targets deduplicates."""
        registry = NetworkRegistry([
            _network("mainnet", cluster=PRIMARY),
            _network("base", cluster=PRIMARY_ALIAS),
            _network("solana", ChainType.SVM, cluster=SECONDARY),
        ])

        targets = registry.distinct_targets()

        assert len(targets) == 2
        assert set(targets) == {("http://ch-1:8123", "reader"), ("http://ch-2:8123", "default")}


class TestNetworkDescriptor:

    def test_database_target(self):
        """Test resolving a network category to a database target."""
        network = _network("mainnet", balances="mainnet:evm-tokens")

        target = network.database_target("balances")

        assert target.database == "mainnet:evm-tokens"
        assert target.url == "http://ch-1:8123"
        assert target.probe_key == PRIMARY.probe_key

    def test_missing_category(self):
        """Test a category the network does not serve."""
        assert _network("mainnet", balances="db").database_target("nfts") is None

    def test_password_not_in_repr(self):
        """Test the cluster password stays out of repr."""
        assert "secret" not in repr(PRIMARY)
