# sitescan/core/config.py

from __future__ import annotations

import os
from pathlib import Path
from dotenv import load_dotenv


def _load_env():
    """
    Load .env from the project root (works locally + on hosts where env vars exist anyway).
    We don't override existing OS env vars.
    """
    # This file: sitescan/core/config.py -> parents[2] = project root
    root_dir = Path(__file__).resolve().parents[2]
    env_path = root_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)
    else:
        # fallback: try current working directory
        load_dotenv(override=False)


_load_env()


def _clean(s: str | None) -> str:
    s = (s or "").strip()
    # remove wrapping quotes if present
    if len(s) >= 2 and ((s[0] == s[-1] == '"') or (s[0] == s[-1] == "'")):
        s = s[1:-1].strip()
    return s


def _int(name: str, default: int) -> int:
    try:
        return int(_clean(os.getenv(name)) or str(default))
    except ValueError:
        return default


def _float(name: str, default: float) -> float:
    try:
        return float(_clean(os.getenv(name)) or str(default))
    except ValueError:
        return default


def _flag(name: str, default: bool) -> bool:
    raw = _clean(os.getenv(name)).lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


DATABASE_URL = _clean(os.getenv("DATABASE_URL")) or "sqlite:///./sitescan.db"

# Helpful local fallback: if user kept docker hostname "db", replace with localhost
if DATABASE_URL.startswith("postgresql://") and "@db:" in DATABASE_URL:
    DATABASE_URL = DATABASE_URL.replace("@db:", "@localhost:")

FRONTEND_ORIGIN = _clean(os.getenv("FRONTEND_ORIGIN")) or "*"

LOG_LEVEL = (_clean(os.getenv("LOG_LEVEL")) or "INFO").upper()
LOG_FILE = _clean(os.getenv("LOG_FILE"))

# Fetch limits (seconds, bytes)
FETCH_TIMEOUT_SEC = _float("FETCH_TIMEOUT_SEC", 10.0)
FETCH_MAX_BYTES = _int("FETCH_MAX_BYTES", 5_000_000)

USER_AGENT = _clean(os.getenv("SCANNER_USER_AGENT")) or "Mozilla/5.0 (compatible; SiteScanBot/1.0)"
SSRF_GUARD = _flag("SSRF_GUARD", True)

# PageSpeed Insights (optional)
PAGESPEED_API_KEY = _clean(os.getenv("PAGESPEED_API_KEY")) or _clean(os.getenv("GOOGLE_PAGESPEED_API_KEY"))
PAGESPEED_TIMEOUT_SEC = _float("PAGESPEED_TIMEOUT_SEC", 60.0)

# Narrative analysis via an OpenAI-compatible chat completions endpoint (optional)
AI_API_KEY = _clean(os.getenv("AI_API_KEY"))
AI_BASE_URL = _clean(os.getenv("AI_BASE_URL")) or "https://api.groq.com/openai/v1/chat/completions"
AI_MODEL = _clean(os.getenv("AI_MODEL")) or "llama-3.3-70b-versatile"
AI_TIMEOUT_SEC = _float("AI_TIMEOUT_SEC", 30.0)
# cap on JSON bodies read back from PageSpeed and the completion service
SERVICE_MAX_BYTES = _int("SERVICE_MAX_BYTES", 10_000_000)

# Per-domain admission
RATE_LIMIT_MAX_SCANS = _int("RATE_LIMIT_MAX_SCANS", 5)
RATE_LIMIT_WINDOW_MIN = _int("RATE_LIMIT_WINDOW_MIN", 60)

# HTTP intake throttle (slowapi expression)
INTAKE_RATE_LIMIT = _clean(os.getenv("INTAKE_RATE_LIMIT")) or "30/minute"

# worker | celery
SCAN_DISPATCH = (_clean(os.getenv("SCAN_DISPATCH")) or "worker").lower()
WORKER_POLL_SECONDS = _float("WORKER_POLL_SECONDS", 1.0)
ANALYZER_CONCURRENCY = _int("ANALYZER_CONCURRENCY", 6)

SCAN_RETENTION_DAYS = _int("SCAN_RETENTION_DAYS", 30)
ORPHAN_TTL_MINUTES = _int("ORPHAN_TTL_MINUTES", 30)

CELERY_BROKER_URL = _clean(os.getenv("CELERY_BROKER_URL")) or "memory://"
CELERY_RESULT_BACKEND = _clean(os.getenv("CELERY_RESULT_BACKEND")) or "cache+memory://"
CELERY_EAGER = _flag("CELERY_EAGER", False)
