"""
Database configuration and validation utilities.

This module builds the NetworkRegistry from either a YAML file (DBS_CONFIG)
describing ClickHouse clusters and per-network databases, or, when no file
is given, from the single-cluster environment settings.
"""

from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from token_api.config import settings
from token_api.data_models.schemas import ChainType
from token_api.exceptions import ConfigurationError
from token_api.services.network_registry import (
    DATABASE_CATEGORIES,
    ClusterConfig,
    NetworkDescriptor,
    NetworkRegistry,
)
from token_api.utils.logger import logger


class ClusterSchema(BaseModel):
    url: str
    username: str = "default"
    password: str = ""

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("Invalid cluster URL")
        return value.rstrip("/")


class NetworkSchema(BaseModel):
    type: ChainType
    cluster: str
    balances: Optional[str] = None
    transfers: Optional[str] = None
    nfts: Optional[str] = None
    dexes: Optional[str] = None
    contracts: Optional[str] = None


class DbsConfigSchema(BaseModel):
    clusters: Dict[str, ClusterSchema]
    networks: Dict[str, NetworkSchema]


def parse_dbs_config(raw: dict) -> NetworkRegistry:
    """Validate a parsed DBS config document and build the registry."""
    try:
        config = DbsConfigSchema.model_validate(raw or {})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid database configuration: {e}") from e

    clusters = {
        name: ClusterConfig(name=name, url=c.url, username=c.username, password=c.password)
        for name, c in config.clusters.items()
    }

    networks: List[NetworkDescriptor] = []
    for network_id, network in config.networks.items():
        cluster = clusters.get(network.cluster)
        if cluster is None:
            raise ConfigurationError(
                f"Network {network_id} references unknown cluster: {network.cluster}"
            )
        databases = {
            category: getattr(network, category)
            for category in DATABASE_CATEGORIES
            if getattr(network, category)
        }
        networks.append(NetworkDescriptor(
            id=network_id,
            chain_type=network.type,
            cluster=cluster,
            databases=MappingProxyType(databases),
        ))

    return NetworkRegistry(networks)


def load_dbs_config(config_path: str) -> NetworkRegistry:
    """Load the YAML database configuration file."""
    path = Path(config_path).resolve()
    if not path.exists():
        raise ConfigurationError(f"Database config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML database configuration: {e}") from e

    registry = parse_dbs_config(raw)
    logger.info("DatabaseConfig: loaded %d networks from %s", len(registry), path)
    return registry


def _suffix_for(chain_type: ChainType) -> str:
    return {
        ChainType.EVM: settings.DB_EVM_SUFFIX,
        ChainType.SVM: settings.DB_SVM_SUFFIX,
        ChainType.TVM: settings.DB_TVM_SUFFIX,
    }[chain_type]


def registry_from_environment(
    networks: Optional[str] = None,
    url: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> NetworkRegistry:
    """
    Build the registry from NETWORKS ("mainnet=evm,solana=svm") and the
    default cluster settings. Every category maps to "<id>:<suffix>".
    """
    cluster = ClusterConfig(
        name="default",
        url=(url or settings.URL).rstrip("/"),
        username=username if username is not None else settings.USERNAME,
        password=password if password is not None else settings.PASSWORD,
    )

    descriptors: List[NetworkDescriptor] = []
    for entry in (networks if networks is not None else settings.NETWORKS).split(","):
        entry = entry.strip()
        if not entry:
            continue
        network_id, _, chain = entry.partition("=")
        try:
            chain_type = ChainType(chain.strip() or ChainType.EVM.value)
        except ValueError:
            raise ConfigurationError(f"Invalid chain type for network {network_id}: {chain}")
        database = f"{network_id.strip()}:{_suffix_for(chain_type)}"
        descriptors.append(NetworkDescriptor(
            id=network_id.strip(),
            chain_type=chain_type,
            cluster=cluster,
            databases=MappingProxyType({category: database for category in DATABASE_CATEGORIES}),
        ))

    return NetworkRegistry(descriptors)


def build_network_registry() -> NetworkRegistry:
    """Registry from DBS_CONFIG when set, otherwise from the environment."""
    if settings.DBS_CONFIG:
        return load_dbs_config(settings.DBS_CONFIG)
    registry = registry_from_environment()
    logger.info("DatabaseConfig: loaded %d networks from environment", len(registry))
    return registry


def get_connection_string(cluster: ClusterConfig) -> str:
    """
    Get a connection string for debugging purposes (password redacted).
    """
    return f"{cluster.url} (user={cluster.username}, password=***)"
