"""Tests for startup validation."""
from unittest.mock import patch

from ..startup_validation import StartupValidator, validate_startup
from ...data_models.schemas import ChainType
from ...services.network_registry import ClusterConfig, NetworkDescriptor, NetworkRegistry
from ...services.query_registry import QueryTemplateRegistry

CLUSTER = ClusterConfig(name="default", url="http://ch:8123")
TEMPLATES = QueryTemplateRegistry({"balances": {ChainType.EVM: "SELECT 1"}})


def _networks(*pairs):
    return NetworkRegistry([
        NetworkDescriptor(id=network_id, chain_type=chain_type, cluster=CLUSTER)
        for network_id, chain_type in pairs
    ])


class TestStartupValidator:

    @patch("token_api.config.settings.DEFAULT_EVM_NETWORK", "mainnet")
    def test_valid_configuration(self):
        """Test a valid configuration passes."""
        assert validate_startup(_networks(("mainnet", ChainType.EVM)), TEMPLATES)

    def test_no_networks(self):
        """Test an empty network registry is an error."""
        validator = StartupValidator(_networks(), TEMPLATES)

        assert not validator.validate_all()
        assert any("No networks" in e for e in validator.errors)

    def test_no_templates(self):
        """Test an empty template registry is an error."""
        validator = StartupValidator(_networks(("mainnet", ChainType.EVM)), QueryTemplateRegistry({}))

        assert not validator.validate_all()
        assert any("No query templates" in e for e in validator.errors)

    @patch("token_api.config.settings.DEFAULT_EVM_NETWORK", "mainnet")
    def test_missing_default_network(self):
        """Missing default network."""
        validator = StartupValidator(_networks(("base", ChainType.EVM)), TEMPLATES)

        assert not validator.validate_all()
        assert any("DEFAULT_EVM_NETWORK=mainnet" in e for e in validator.errors)

    @patch("token_api.config.settings.DEFAULT_SVM_NETWORK", "solana")
    def test_default_network_of_wrong_chain(self):
        """Default network of wrong chain."""
        validator = StartupValidator(
            _networks(("solana", ChainType.EVM), ("eclipse", ChainType.SVM)),
            TEMPLATES,
        )

        validator.validate_all()

        assert any("DEFAULT_SVM_NETWORK=solana is a evm network" in e for e in validator.errors)

    def test_unserved_chain_type_needs_no_default(self):
        """Unserved chain type needs no default."""
        with patch("token_api.config.settings.DEFAULT_EVM_NETWORK", "mainnet"), \
                patch("token_api.config.settings.DEFAULT_TVM_NETWORK", "does-not-exist"):
            validator = StartupValidator(_networks(("mainnet", ChainType.EVM)), TEMPLATES)

            assert validator.validate_all()
