"""
Network registry.

Holds one frozen NetworkDescriptor per configured network id. Built once at
startup from the database configuration and shared read-only afterwards.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from token_api.data_models.schemas import ChainType
from token_api.exceptions import ConfigurationError

DATABASE_CATEGORIES = ("balances", "transfers", "nfts", "dexes", "contracts")


@dataclass(frozen=True)
class ClusterConfig:
    name: str
    url: str
    username: str = "default"
    password: str = field(default="", repr=False)

    @property
    def probe_key(self) -> Tuple[str, str]:
        """Identifies one physical target; clusters sharing url and user are probed once."""
        return (self.url.rstrip("/"), self.username)


@dataclass(frozen=True)
class DatabaseTarget:
    cluster: ClusterConfig
    database: str

    @property
    def url(self) -> str:
        return self.cluster.url

    @property
    def probe_key(self) -> Tuple[str, str]:
        return self.cluster.probe_key


@dataclass(frozen=True)
class NetworkDescriptor:
    id: str
    chain_type: ChainType
    cluster: ClusterConfig
    databases: Mapping[str, str] = field(default_factory=dict)

    def database_target(self, category: str) -> Optional[DatabaseTarget]:
        database = self.databases.get(category)
        if not database:
            return None
        return DatabaseTarget(cluster=self.cluster, database=database)


class NetworkRegistry:
    """Immutable network id -> NetworkDescriptor mapping."""

    def __init__(self, networks: Iterable[NetworkDescriptor]):
        by_id: Dict[str, NetworkDescriptor] = {}
        for network in networks:
            if network.id in by_id:
                raise ConfigurationError(f"Duplicate network id: {network.id}")
            by_id[network.id] = network
        self._networks = MappingProxyType(by_id)

    def lookup(self, network_id: str) -> Optional[NetworkDescriptor]:
        return self._networks.get(network_id)

    def list(self, chain_type: Optional[ChainType] = None) -> List[NetworkDescriptor]:
        networks = sorted(self._networks.values(), key=lambda n: n.id)
        if chain_type is None:
            return networks
        return [n for n in networks if n.chain_type == ChainType(chain_type)]

    def distinct_targets(self) -> Dict[Tuple[str, str], ClusterConfig]:
        """One cluster per physical target, in network id order."""
        targets: Dict[Tuple[str, str], ClusterConfig] = {}
        for network in self.list():
            targets.setdefault(network.cluster.probe_key, network.cluster)
        return targets

    def __len__(self) -> int:
        return len(self._networks)

    def __contains__(self, network_id: object) -> bool:
        return network_id in self._networks
