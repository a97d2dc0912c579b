from fastapi import APIRouter

# Aggregate sub-routers; monitoring routes must be registered before the
# generic /v1/{chain_type}/{query_key} route
from .routes_monitor import router as monitor_router
from .routes_query import router as query_router

router = APIRouter()
router.include_router(monitor_router)
router.include_router(query_router)
