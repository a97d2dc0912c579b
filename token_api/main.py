from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from token_api.config import settings
from token_api.config.database_config import build_network_registry
from token_api.routers import router as api_router
from token_api.routers.deps import Services
from token_api.services.clickhouse_client import ClickHouseClientPool
from token_api.services.enrichment import IconTable, SymbolTable
from token_api.services.health import HealthAggregator
from token_api.services.query_executor import UsageQueryExecutor
from token_api.services.query_registry import QueryTemplateRegistry
from token_api.services.query_service import QueryService
from token_api.utils.logger import logger
from token_api.utils.startup_validation import validate_startup


def build_services() -> Services:
    """Load registries and tables once and wire the pipeline."""
    networks = build_network_registry()
    templates = QueryTemplateRegistry.load(settings.SQL_DIR)
    symbols = SymbolTable.from_file(settings.SYMBOLS_FILE) if settings.SYMBOLS_FILE else SymbolTable.default()
    icons = IconTable.from_file(settings.ICONS_FILE) if settings.ICONS_FILE else IconTable.default()

    if not validate_startup(networks, templates):
        logger.error("Startup validation failed. Please check configuration.")
        # Keep serving so /v1/health can report the problem

    # Client-side timeout leaves room for the server-side max_execution_time
    pool = ClickHouseClientPool(timeout=settings.MAX_QUERY_EXECUTION_TIME + 5)
    executor = UsageQueryExecutor(pool, max_limit=settings.MAX_LIMIT)
    return Services(
        networks=networks,
        templates=templates,
        pool=pool,
        queries=QueryService(templates, networks, executor, symbols, icons),
        health=HealthAggregator(networks, pool),
    )


app = FastAPI(title="Token API", version="0.1.0")

allowed_origins = [origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",") if origin.strip()]
logger.info(f"Allowed origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Initialize services on application startup."""
    logger.info("Starting Token API...")
    # Tests may install their own services before startup
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()


@app.on_event("shutdown")
async def shutdown_event():
    """Clean up resources on application shutdown."""
    logger.info("Shutting down Token API...")
    services = getattr(app.state, "services", None)
    if services is not None:
        try:
            await services.pool.close()
        except Exception as e:
            logger.warning(f"Error closing ClickHouse clients: {e}")


# Mount API routes
app.include_router(api_router)
