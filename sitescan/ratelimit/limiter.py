from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sitescan.core import config
from sitescan.core.dates import utcnow
from sitescan.core.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Admission:
    domain: str
    count: int


class DomainRateLimiter:
    """
    Rolling per-domain admission: at most `limit` scans per `window`.

    A window older than `window` is restarted at count=1 by the next admission.
    """

    def __init__(
        self,
        store,
        *,
        limit: int = config.RATE_LIMIT_MAX_SCANS,
        window: timedelta = timedelta(minutes=config.RATE_LIMIT_WINDOW_MIN),
        clock=utcnow,
    ):
        self.store = store
        self.limit = limit
        self.window = window
        self._clock = clock

    def admit(self, domain: str) -> Admission:
        domain = (domain or "").lower().strip(".")
        now: datetime = self._clock()
        cutoff = now - self.window

        self.store.get_or_create_window(domain, now)

        # two rounds: a concurrent reset between our increment and our reset
        # leaves a fresh window we can still count into
        for _ in range(2):
            count = self.store.increment(domain, now=now, cutoff=cutoff, limit=self.limit)
            if count is not None:
                return Admission(domain=domain, count=count)
            if self.store.reset_expired(domain, now=now, cutoff=cutoff):
                logger.info("Rate limit window restarted for %s", domain)
                return Admission(domain=domain, count=1)

        snapshot = self.store.get_or_create_window(domain, now)
        retry_after = int((snapshot.window_start + self.window - now).total_seconds())
        raise RateLimitExceeded(domain, snapshot.count, max(0, retry_after))
