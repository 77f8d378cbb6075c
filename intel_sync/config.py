"""
Intel Sync — Runtime Configuration
───────────────────────────────────
Connection settings for the upstream analytics service.
Override via environment variables; durations live in cache/ttl_config.py.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ── Upstream analytics service ────────────────────────────────
INTELLIGENCE_API_URL = os.environ.get("INTELLIGENCE_API_URL", "http://intelligence-api:8001").rstrip("/")
INTELLIGENCE_API_KEY = os.environ.get("INTELLIGENCE_API_KEY", "")
INTELLIGENCE_ENABLED = os.environ.get("INTELLIGENCE_ENABLED", "false").lower() == "true"

REQUEST_TIMEOUT = float(os.environ.get("INTELLIGENCE_TIMEOUT_S", "10"))

# ── Collaborators ─────────────────────────────────────────────
REDIS_URL = os.environ.get("REDIS_URL", "")
BFF_URL   = os.environ.get("BFF_URL", "http://localhost:8000").rstrip("/")

# ── Response markers ──────────────────────────────────────────
STALE_HEADER    = "X-Data-Stale"
FALLBACK_HEADER = "X-Data-Fallback"
USER_HEADER     = "X-User-Id"
