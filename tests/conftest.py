"""
Test configuration and fixtures for the SiteScan service.

The environment is pinned before anything from sitescan is imported: a
throwaway sqlite database, no external service keys, no SSRF DNS lookups and
no background worker loop.
"""

import os
import tempfile
import time
import uuid
from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient

test_db_path = tempfile.mktemp(suffix=".db")
os.environ["DATABASE_URL"] = f"sqlite:///{test_db_path}"
os.environ["SCAN_DISPATCH"] = "manual"
os.environ["SSRF_GUARD"] = "0"
os.environ["PAGESPEED_API_KEY"] = ""
os.environ["GOOGLE_PAGESPEED_API_KEY"] = ""
os.environ["AI_API_KEY"] = ""

from sitescan.db.init_db import init_db  # noqa: E402
from sitescan.db.session import SessionLocal  # noqa: E402
from sitescan.ssrf.http import FetchResult  # noqa: E402

SAMPLE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Example</title>
  <meta property="og:image" content="/static/og.png">
  <script src="https://code.jquery.com/jquery-3.6.0.min.js"></script>
</head>
<body>
  <a href="#main">Skip to content</a>
  <h1>Welcome</h1>
  <form action="/subscribe"><label for="e">Email</label><input id="e" name="email"></form>
  <button>Sign up</button>
  <button>Learn more</button>
  <a href="/about">About</a>
  <img src="/logo.png" alt="Logo">
  <script>
    fetch('/api/users').then(r => r.json());
    axios.post('/api/login', {});
  </script>
</body>
</html>
"""

SECURE_HEADERS = {
    "strict-transport-security": "max-age=63072000",
    "content-security-policy": "default-src 'self'; frame-ancestors 'none'",
    "x-frame-options": "DENY",
    "x-content-type-options": "nosniff",
    "x-xss-protection": "1; mode=block",
    "content-encoding": "gzip",
    "cache-control": "max-age=600",
    "server": "nginx/1.25.3",
}


def make_page(body: str = SAMPLE_HTML, *, url: str = "https://example.com/", status_code: int = 200,
              headers: dict | None = None, elapsed_ms: int = 400) -> FetchResult:
    return FetchResult(
        url=url,
        status_code=status_code,
        headers={k.lower(): v for k, v in (headers if headers is not None else SECURE_HEADERS).items()},
        body=body,
        elapsed_ms=elapsed_ms,
        size_bytes=len(body.encode()),
    )


class TrickleStream(httpx.SyncByteStream):
    """Response body that dribbles out one chunk at a time, each well inside any read timeout."""

    def __init__(self, chunks: int = 12, delay: float = 0.05, chunk: bytes = b"x"):
        self.chunks = chunks
        self.delay = delay
        self.chunk = chunk

    def __iter__(self):
        for _ in range(self.chunks):
            time.sleep(self.delay)
            yield self.chunk


@pytest.fixture(scope="session", autouse=True)
def database():
    init_db()
    yield
    try:
        os.remove(test_db_path)
    except OSError:
        pass


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from sitescan.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture
def repo():
    from sitescan.scans.repository import ScanRepository

    return ScanRepository(SessionLocal)


@pytest.fixture
def scan_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def orchestrator(repo):
    """Orchestrator with a canned page, in-memory admission and no narrative service."""
    from sitescan.ratelimit.limiter import DomainRateLimiter
    from sitescan.ratelimit.store import MemoryRateLimitStore
    from sitescan.scans.orchestrator import ScanOrchestrator
    from sitescan.services.narrative import NarrativeService

    return ScanOrchestrator(
        repo,
        DomainRateLimiter(MemoryRateLimitStore()),
        fetcher=lambda url: make_page(url=url),
        narrator=NarrativeService(api_key=None),
        max_workers=3,
    )
