# sitescan/ratelimit/store.py

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from threading import Lock

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sitescan.core.dates import as_utc
from sitescan.core.errors import PersistenceFailure
from sitescan.ratelimit.models import RateLimitWindow


@dataclass(frozen=True)
class WindowSnapshot:
    domain: str
    count: int
    window_start: datetime
    last_scan_at: datetime | None = None


def _snapshot(row: RateLimitWindow) -> WindowSnapshot:
    return WindowSnapshot(
        domain=row.domain,
        count=int(row.scan_count or 0),
        window_start=as_utc(row.window_start),
        last_scan_at=as_utc(row.last_scan_at),
    )


class SqlRateLimitStore:
    """
    One row per domain. Every mutation is a single conditional UPDATE, so two
    workers admitting the same domain can never both read "4" and both write "5".
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def get_or_create_window(self, domain: str, now: datetime) -> WindowSnapshot:
        db = self._session_factory()
        try:
            row = db.query(RateLimitWindow).filter(RateLimitWindow.domain == domain).first()
            if row:
                return _snapshot(row)

            db.add(RateLimitWindow(domain=domain, scan_count=0, window_start=now, last_scan_at=None))
            try:
                db.commit()
            except IntegrityError:
                # created concurrently by another worker
                db.rollback()

            row = db.query(RateLimitWindow).filter(RateLimitWindow.domain == domain).one()
            return _snapshot(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"rate limit window lookup failed for {domain}") from e
        finally:
            db.close()

    def increment(self, domain: str, *, now: datetime, cutoff: datetime, limit: int) -> int | None:
        """Compare-and-increment inside a live window. Returns the new count, or None when refused."""
        stmt = (
            update(RateLimitWindow)
            .where(
                RateLimitWindow.domain == domain,
                RateLimitWindow.window_start > cutoff,
                RateLimitWindow.scan_count < limit,
            )
            .values(scan_count=RateLimitWindow.scan_count + 1, last_scan_at=now)
        )
        db = self._session_factory()
        try:
            res = db.execute(stmt)
            db.commit()
            if res.rowcount != 1:
                return None
            count = db.query(RateLimitWindow.scan_count).filter(RateLimitWindow.domain == domain).scalar()
            return int(count or 0)
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"rate limit increment failed for {domain}") from e
        finally:
            db.close()

    def reset_expired(self, domain: str, *, now: datetime, cutoff: datetime) -> bool:
        """Start a fresh window (count=1) if the current one has elapsed."""
        stmt = (
            update(RateLimitWindow)
            .where(RateLimitWindow.domain == domain, RateLimitWindow.window_start <= cutoff)
            .values(scan_count=1, window_start=now, last_scan_at=now)
        )
        db = self._session_factory()
        try:
            res = db.execute(stmt)
            db.commit()
            return res.rowcount == 1
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"rate limit reset failed for {domain}") from e
        finally:
            db.close()


class MemoryRateLimitStore:
    """Single-process store (tests, local runs). The lock makes each method atomic."""

    def __init__(self):
        self._windows: dict[str, WindowSnapshot] = {}
        self._lock = Lock()

    def get_or_create_window(self, domain: str, now: datetime) -> WindowSnapshot:
        with self._lock:
            w = self._windows.get(domain)
            if w is None:
                w = WindowSnapshot(domain=domain, count=0, window_start=now)
                self._windows[domain] = w
            return w

    def increment(self, domain: str, *, now: datetime, cutoff: datetime, limit: int) -> int | None:
        with self._lock:
            w = self._windows.get(domain)
            if w is None or w.window_start <= cutoff or w.count >= limit:
                return None
            w = replace(w, count=w.count + 1, last_scan_at=now)
            self._windows[domain] = w
            return w.count

    def reset_expired(self, domain: str, *, now: datetime, cutoff: datetime) -> bool:
        with self._lock:
            w = self._windows.get(domain)
            if w is None or w.window_start > cutoff:
                return False
            self._windows[domain] = WindowSnapshot(domain=domain, count=1, window_start=now, last_scan_at=now)
            return True
