# sitescan/main.py

import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# SlowAPI setup
from slowapi.errors import RateLimitExceeded as IntakeRateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from sitescan.core import config
from sitescan.core.logger import setup_logging
from sitescan.core.ratelimit import intake_rate_limit_handler, limiter
from sitescan.db.init_db import init_db
from sitescan.scans.routes import get_orchestrator
from sitescan.scans.routes import router as scans_router
from sitescan.scans.worker import scans_worker_loop

logger = logging.getLogger(__name__)

app = FastAPI(title="SiteScan")


# CORS (Frontend -> Backend)
# FRONTEND_ORIGIN = https://your-frontend.example.com
# Or multiple: https://a.example.com,http://localhost:5173
raw_origins = config.FRONTEND_ORIGIN.strip()

if raw_origins == "*":
    allow_origins = ["*"]
    allow_credentials = False  # can't use credentials with "*"
else:
    allow_origins = [o.strip().rstrip("/") for o in raw_origins.split(",") if o.strip()]
    allow_credentials = True

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# attach limiter + middleware + handler
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(IntakeRateLimitExceeded, intake_rate_limit_handler)


@app.on_event("startup")
async def on_startup():
    setup_logging()
    init_db()

    if config.SCAN_DISPATCH == "worker":
        asyncio.create_task(
            scans_worker_loop(poll_seconds=config.WORKER_POLL_SECONDS, orchestrator=get_orchestrator())
        )
    logger.info("SiteScan started (dispatch=%s)", config.SCAN_DISPATCH)


app.include_router(scans_router)


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/")
def root():
    return {"ok": True, "message": "SiteScan API is running", "docs": "/docs"}
