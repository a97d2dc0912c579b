import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _as_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        raise RuntimeError(f"{name} must be a valid integer")


def _as_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        raise RuntimeError(f"{name} must be a valid number")


# --------------------------------------------------
# ClickHouse Configuration
# --------------------------------------------------
# Default cluster, used when no DBS_CONFIG file is provided
URL = os.environ.get("URL", "http://localhost:8123")
USERNAME = os.environ.get("USERNAME", "default")
PASSWORD = os.environ.get("PASSWORD", "")
DATABASE = os.environ.get("DATABASE", "default")

# Optional YAML file describing clusters and per-network databases
DBS_CONFIG = os.environ.get("DBS_CONFIG")

# Fallback network list: "mainnet=evm,solana=svm,tron=tvm"
NETWORKS = os.environ.get("NETWORKS", "mainnet=evm")
DB_EVM_SUFFIX = os.environ.get("DB_EVM_SUFFIX", "evm-tokens@v1.9.0:db_out")
DB_SVM_SUFFIX = os.environ.get("DB_SVM_SUFFIX", "svm-tokens@v1.0.0:db_out")
DB_TVM_SUFFIX = os.environ.get("DB_TVM_SUFFIX", "tvm-tokens@v1.0.0:db_out")

DEFAULT_EVM_NETWORK = os.environ.get("DEFAULT_EVM_NETWORK", "mainnet")
DEFAULT_SVM_NETWORK = os.environ.get("DEFAULT_SVM_NETWORK", "solana")
DEFAULT_TVM_NETWORK = os.environ.get("DEFAULT_TVM_NETWORK", "tron")

# --------------------------------------------------
# Query Configuration
# --------------------------------------------------
SQL_DIR = os.environ.get("SQL_DIR") or str(Path(__file__).resolve().parent.parent / "sql")
DEFAULT_LIMIT = _as_int("DEFAULT_LIMIT", 10)
DEFAULT_PAGE = 1
MAX_LIMIT = _as_int("MAX_LIMIT", 1000)
# Seconds
MAX_QUERY_EXECUTION_TIME = _as_float("MAX_QUERY_EXECUTION_TIME", 10)

# --------------------------------------------------
# Health Configuration
# --------------------------------------------------
HEALTH_PROBE_TIMEOUT = _as_float("HEALTH_PROBE_TIMEOUT", 5)
HEALTH_MAX_CONCURRENCY = _as_int("HEALTH_MAX_CONCURRENCY", 8)

# --------------------------------------------------
# Enrichment Tables
# --------------------------------------------------
SYMBOLS_FILE = os.environ.get("SYMBOLS_FILE")
ICONS_FILE = os.environ.get("ICONS_FILE")

# --------------------------------------------------
# HTTP / Build Metadata
# --------------------------------------------------
ALLOWED_ORIGINS = os.environ.get("ALLOWED_ORIGINS", "*")
GIT_COMMIT = os.environ.get("GIT_COMMIT", "unknown")[:7]
GIT_DATE = os.environ.get("GIT_DATE", "unknown")
