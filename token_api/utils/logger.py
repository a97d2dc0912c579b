import logging
import os

LOG_FORMAT = "%(asctime)s - [%(levelname)s] - %(name)s - %(funcName)s() - %(message)s"

logger = logging.getLogger("token-api-logger")
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
logger.propagate = False  # uvicorn's root handler would print every record twice

if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    logger.addHandler(console_handler)

# httpx logs every ClickHouse request URL (with bound parameters) at INFO;
# queries are already logged at DEBUG with their query_id
logging.getLogger("httpx").setLevel(logging.WARNING)
