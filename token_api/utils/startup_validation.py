"""
Startup validation utilities to check configuration before serving requests.

Checks that networks and templates were loaded and that every chain type's
default network is configured. Problems are collected and reported, not
raised, so the process can still answer liveness checks.
"""

import os
from typing import List

from token_api.config import settings
from token_api.data_models.schemas import ChainType
from token_api.services.network_registry import NetworkRegistry
from token_api.services.query_registry import QueryTemplateRegistry
from token_api.utils.logger import logger

DEFAULT_NETWORKS = {
    ChainType.EVM: "DEFAULT_EVM_NETWORK",
    ChainType.SVM: "DEFAULT_SVM_NETWORK",
    ChainType.TVM: "DEFAULT_TVM_NETWORK",
}


def default_network(chain_type: ChainType) -> str:
    return getattr(settings, DEFAULT_NETWORKS[ChainType(chain_type)])


class StartupValidator:
    """Startup validation for the token API."""

    def __init__(self, networks: NetworkRegistry, templates: QueryTemplateRegistry):
        self.networks = networks
        self.templates = templates
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_all(self) -> bool:
        """
        Run all validation checks.

        Returns:
            True if all critical checks pass, False otherwise.
        """
        logger.info("StartupValidator: Beginning system validation")

        # Critical validations (must pass)
        self._validate_networks()
        self._validate_templates()

        # Non-critical validations (warnings only)
        self._validate_default_networks()
        self._validate_optional_config()

        self._report_results()

        return len(self.errors) == 0

    def _validate_networks(self) -> None:
        if len(self.networks) == 0:
            self.errors.append("No networks configured (set DBS_CONFIG or NETWORKS)")
        else:
            logger.info("StartupValidator: %d networks configured", len(self.networks))

    def _validate_templates(self) -> None:
        if len(self.templates) == 0:
            self.errors.append(f"No query templates loaded from {settings.SQL_DIR}")
        else:
            logger.info("StartupValidator: %d query templates loaded", len(self.templates))

    def _validate_default_networks(self) -> None:
        """A chain type's default network must exist if that chain type is served at all."""
        for chain_type in ChainType:
            if not self.networks.list(chain_type):
                continue
            network_id = default_network(chain_type)
            network = self.networks.lookup(network_id)
            if network is None:
                self.errors.append(f"{DEFAULT_NETWORKS[chain_type]}={network_id} is not a configured network")
            elif network.chain_type != chain_type:
                self.errors.append(
                    f"{DEFAULT_NETWORKS[chain_type]}={network_id} is a {network.chain_type.value} network"
                )

    def _validate_optional_config(self) -> None:
        """Validate optional configuration with warnings."""
        optional_configs = {
            "ALLOWED_ORIGINS": "CORS configuration (defaults to *)",
            "SYMBOLS_FILE": "Symbol patch table (defaults to the embedded table)",
            "ICONS_FILE": "Icon table (defaults to the embedded table)",
        }

        for var, description in optional_configs.items():
            if not os.environ.get(var):
                self.warnings.append(f"Optional config {var} not set: {description}")

    def _report_results(self) -> None:
        """Report validation results."""
        if self.errors:
            logger.error("StartupValidator: %d critical errors found:", len(self.errors))
            for error in self.errors:
                logger.error("  - %s", error)

        if self.warnings:
            logger.warning("StartupValidator: %d warnings found:", len(self.warnings))
            for warning in self.warnings:
                logger.warning("  - %s", warning)

        if not self.errors and not self.warnings:
            logger.info("StartupValidator: All validation checks passed successfully")
        elif not self.errors:
            logger.info("StartupValidator: Critical validation passed with %d warnings", len(self.warnings))


def validate_startup(networks: NetworkRegistry, templates: QueryTemplateRegistry) -> bool:
    """
    Run startup validation and return success status.

    Returns:
        True if validation passes, False if critical errors found.
    """
    return StartupValidator(networks, templates).validate_all()
