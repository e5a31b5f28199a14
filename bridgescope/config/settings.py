import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bridgescope.db")

# ── cache ───────────────────────────────────────────────────────────────
REDIS_URL = os.getenv("REDIS_URL")
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "auto")      # auto | memory | redis

# ── external endpoints ─────────────────────────────────────────────────
BASE_RPC_URL = os.getenv("BASE_RPC_URL", "https://mainnet.base.org")
SUBGRAPH_URL_BASE = os.getenv("SUBGRAPH_URL_BASE", "")
SUBGRAPH_URL_SOLANA = os.getenv("SUBGRAPH_URL_SOLANA", "")
COINGECKO_API_BASE = os.getenv("COINGECKO_API_BASE", "https://api.coingecko.com/api/v3")

COINGECKO_PRICE_TIMEOUT = 5
COINGECKO_HISTORY_TIMEOUT = 10
SUBGRAPH_TIMEOUT = 15
RPC_TIMEOUT = 10

# ── secrets ────────────────────────────────────────────────────────────
HELIUS_WEBHOOK_SECRET = os.getenv("HELIUS_WEBHOOK_SECRET")
CRON_SECRET = os.getenv("CRON_SECRET")

# ── workers ────────────────────────────────────────────────────────────
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/0")
LOCK_REDIS_URL = os.getenv("LOCK_REDIS_URL", CELERY_BROKER_URL)

INGEST_CONCURRENCY = int(os.getenv("INGEST_CONCURRENCY", "4"))
SYNC_INTERVAL_SECONDS = int(os.getenv("SYNC_INTERVAL_SECONDS", "30"))
SYNC_PAGE_SIZE = int(os.getenv("SYNC_PAGE_SIZE", "100"))
CRON_REFRESH_LIMIT = 1000
CRON_LOOKBACK_SECONDS = 24 * 60 * 60
