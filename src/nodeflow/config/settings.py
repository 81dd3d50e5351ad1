import os
from dotenv import load_dotenv
load_dotenv()
# ---- MongoDB (primary raw source + profile sink) ----
MONGODB_URI = os.environ.get("MONGODB_URI")
SWAP_DB_NAME = os.environ.get("SWAP_DB_NAME", "swap_db")
SWAP_COLLECTION_NAME = os.environ.get("SWAP_COLLECTION_NAME", "swap_logs")
ATOM_COLLECTION_NAME = os.environ.get("ATOM_COLLECTION_NAME", "atom_base")
ATONE_COLLECTION_NAME = os.environ.get("ATONE_COLLECTION_NAME", "atone_base")

NODES_DB_NAME = os.environ.get("NODES_DB_NAME") or os.environ.get("MONGODB_DB") or SWAP_DB_NAME
NODES_COLLECTION_NAME = os.environ.get("NODES_COLLECTION_NAME", "nodes")

# ---- DuckDB (secondary raw source + daily prices) ----
DUCKDB_PATH = os.environ.get("DUCKDB_PATH", "data/analytics.duckdb")
DUCKDB_ENSURE_VIEWS = os.environ.get("DUCKDB_ENSURE_VIEWS", "1").lower() not in {"0", "false", "no"}

SWAP_TABLE = "swap_data"
ATOM_BASE_TABLE = "atom_base_information"
ATONE_BASE_TABLE = "atone_base_information"
ATOM_DAILY_VIEW = "atom_daily_price"
ATONE_DAILY_VIEW = "atone_daily_price"

# ----- Calendar ------

# All calendar dates are KST (fixed +09:00, no DST)
KST_OFFSET_HOURS = 9

# ----- Lead/lag ------
LEAD_LAG_MAX_LAG = int(os.environ.get("LEAD_LAG_MAX_LAG", "5"))
LEAD_LAG_MIN_PAIRS = int(os.environ.get("LEAD_LAG_MIN_PAIRS", "3"))

# ----- Profiles ------
MAX_ROUTE_SAMPLES = 3
MARKET_HISTORY_ROWS = 240

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
