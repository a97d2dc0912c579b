"""
Health aggregator.

Probes every distinct ClickHouse target once, concurrently, and reduces the
outcomes to healthy / degraded / unhealthy. Total backend unavailability is
reported as data, never raised.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from token_api.config import settings
from token_api.data_models.schemas import HealthResult, HealthStatus, NetworkHealth, utc_now
from token_api.services.clickhouse_client import ClickHouseClientPool
from token_api.services.error_classifier import ClassifiedError, classify
from token_api.services.network_registry import ClusterConfig, NetworkRegistry
from token_api.utils.logger import logger


@dataclass(frozen=True)
class ProbeOutcome:
    reachable: bool
    latency_ms: Optional[float] = None
    error: Optional[ClassifiedError] = None


def reduce_status(outcomes: List[ProbeOutcome]) -> HealthStatus:
    failed = sum(1 for o in outcomes if not o.reachable)
    if failed == 0:
        return HealthStatus.HEALTHY
    if failed == len(outcomes):
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


class HealthAggregator:
    def __init__(
        self,
        registry: NetworkRegistry,
        pool: ClickHouseClientPool,
        probe_timeout: float = settings.HEALTH_PROBE_TIMEOUT,
        max_concurrency: int = settings.HEALTH_MAX_CONCURRENCY,
    ):
        self.registry = registry
        self.pool = pool
        self.probe_timeout = probe_timeout
        self.max_concurrency = max(1, max_concurrency)

    async def _probe(self, cluster: ClusterConfig, semaphore: asyncio.Semaphore) -> ProbeOutcome:
        async with semaphore:
            try:
                latency = await asyncio.wait_for(
                    self.pool.get_client(cluster).probe(timeout=self.probe_timeout),
                    timeout=self.probe_timeout,
                )
                return ProbeOutcome(reachable=True, latency_ms=round(latency, 2))
            except Exception as e:
                classified = classify(e)
                logger.warning("HealthAggregator: probe of %s failed (%s): %s",
                               cluster.url, classified.kind.value, classified.detail or classified.message)
                return ProbeOutcome(reachable=False, error=classified)

    async def evaluate_health(self, skip_endpoints: bool = False) -> HealthResult:
        """
        Probe all distinct targets unless ``skip_endpoints`` is set, in which
        case this is a liveness check of the process only.
        """
        request_time = utc_now()
        start_time = time.perf_counter()
        if skip_endpoints:
            return HealthResult(status=HealthStatus.HEALTHY, request_time=request_time)

        targets = self.registry.distinct_targets()
        semaphore = asyncio.Semaphore(self.max_concurrency)
        keys: List[Tuple[str, str]] = list(targets)
        results = await asyncio.gather(*[self._probe(targets[key], semaphore) for key in keys])
        outcomes: Dict[Tuple[str, str], ProbeOutcome] = dict(zip(keys, results))

        networks: List[NetworkHealth] = []
        for network in self.registry.list():
            outcome = outcomes[network.cluster.probe_key]
            networks.append(NetworkHealth(
                network_id=network.id,
                chain_type=network.chain_type,
                reachable=outcome.reachable,
                latency_ms=outcome.latency_ms,
                error_kind=outcome.error.kind if outcome.error else None,
                error=outcome.error.message if outcome.error else None,
            ))

        status = reduce_status(results)
        duration_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info("HealthAggregator: %s (%d targets, %d networks) in %dms",
                    status.value, len(keys), len(networks), duration_ms)
        return HealthResult(status=status, networks=networks, request_time=request_time, duration_ms=duration_ms)
