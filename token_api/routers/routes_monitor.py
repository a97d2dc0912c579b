from importlib.metadata import PackageNotFoundError, version

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from token_api.config import settings
from token_api.data_models.schemas import HealthStatus
from token_api.routers.deps import Services, get_services

router = APIRouter(prefix="/v1", tags=["Monitoring"])


def _package_version() -> str:
    try:
        return version("token-api")
    except PackageNotFoundError:
        return "0.0.0"


@router.get("/health")
async def health(skip_endpoints: bool = True, services: Services = Depends(get_services)):
    """Liveness by default; ``skip_endpoints=false`` probes every database target."""
    result = await services.health.evaluate_health(skip_endpoints=skip_endpoints)
    status_code = 503 if result.status == HealthStatus.UNHEALTHY else 200
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.get("/networks")
async def networks(services: Services = Depends(get_services)) -> dict:
    return {
        "networks": [
            {"id": n.id, "chain_type": n.chain_type.value}
            for n in services.networks.list()
        ]
    }


@router.get("/version")
async def version_info() -> dict:
    return {
        "version": _package_version(),
        "commit": settings.GIT_COMMIT,
        "date": settings.GIT_DATE,
    }
