import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from sitescan.core.errors import RateLimitExceeded
from sitescan.db.session import SessionLocal
from sitescan.ratelimit.limiter import DomainRateLimiter
from sitescan.ratelimit.models import RateLimitWindow
from sitescan.ratelimit.store import MemoryRateLimitStore, SqlRateLimitStore

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return MemoryRateLimitStore()
    return SqlRateLimitStore(SessionLocal)


@pytest.fixture
def domain():
    return f"{uuid.uuid4().hex[:12]}.example.com"


def test_fifth_admitted_sixth_rejected(store, domain):
    clock = Clock()
    limiter = DomainRateLimiter(store, limit=5, window=timedelta(minutes=60), clock=clock)

    counts = []
    for _ in range(5):
        counts.append(limiter.admit(domain).count)
        clock.advance(minutes=1)
    assert counts == [1, 2, 3, 4, 5]

    with pytest.raises(RateLimitExceeded) as exc:
        limiter.admit(domain)
    assert exc.value.domain == domain
    assert exc.value.count == 5
    # window opened at T0, it is now T0+5min
    assert exc.value.retry_after == 55 * 60


def test_window_elapses_and_resets_to_one(store, domain):
    clock = Clock()
    limiter = DomainRateLimiter(store, limit=5, clock=clock)
    for _ in range(5):
        limiter.admit(domain)

    clock.advance(minutes=61)
    assert limiter.admit(domain).count == 1
    assert limiter.admit(domain).count == 2


def test_domains_are_independent(store, domain):
    limiter = DomainRateLimiter(store, limit=1, clock=Clock())
    limiter.admit(domain)

    assert limiter.admit("other-" + domain).count == 1
    with pytest.raises(RateLimitExceeded):
        limiter.admit(domain)


def test_domain_is_case_insensitive(store, domain):
    limiter = DomainRateLimiter(store, limit=1, clock=Clock())
    limiter.admit(domain.upper())

    with pytest.raises(RateLimitExceeded):
        limiter.admit(domain)


def test_concurrent_admissions_never_exceed_limit(store, domain):
    limiter = DomainRateLimiter(store, limit=5, clock=Clock())

    def attempt(_):
        try:
            return limiter.admit(domain).count
        except RateLimitExceeded:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(20)))

    admitted = sorted(c for c in outcomes if c is not None)
    assert admitted == [1, 2, 3, 4, 5]


def test_sql_store_keeps_one_row_per_domain(domain):
    limiter = DomainRateLimiter(SqlRateLimitStore(SessionLocal), limit=5, clock=Clock())
    for _ in range(3):
        limiter.admit(domain)

    db = SessionLocal()
    try:
        rows = db.query(RateLimitWindow).filter(RateLimitWindow.domain == domain).all()
    finally:
        db.close()
    assert len(rows) == 1
    assert rows[0].scan_count == 3
