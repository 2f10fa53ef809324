# sitescan/scans/repository.py

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from urllib.parse import urlparse

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sitescan.core import config
from sitescan.core.dates import as_utc, utcnow
from sitescan.core.errors import InvalidTransition, PersistenceFailure, ScanAlreadyExists
from sitescan.db.session import SessionLocal
from sitescan.scans.models import (
    ALLOWED_PREDECESSORS,
    PENDING,
    PROCESSING,
    Scan,
)

logger = logging.getLogger(__name__)

# columns callers may set through update()
WRITABLE = {
    "overall_score",
    "security_results",
    "performance_results",
    "accessibility_results",
    "api_results",
    "tech_stack",
    "interactive_results",
    "top_issues",
    "technologies",
    "exposed_endpoints",
    "og_image",
    "ai_summary",
    "ai_recommendations",
    "report_pdf",
    "report_size",
    "report_pages",
    "error",
    "started_at",
    "finished_at",
}

_DATES = ("created_at", "started_at", "finished_at", "expires_at")


def domain_of(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def _as_dict(s: Scan) -> dict:
    out = {c.name: getattr(s, c.name) for c in Scan.__table__.columns if c.name != "report_pdf"}
    for k in _DATES:
        out[k] = as_utc(out[k])
    return out


class ScanRepository:
    """
    The only code that touches the scans table.

    Status changes go through update(), which is a single conditional UPDATE:
    it applies only while the row is still in an allowed predecessor status.
    A second worker claiming the same pending scan therefore gets
    InvalidTransition instead of processing it twice.
    """

    def __init__(self, session_factory=SessionLocal, *, retention_days: int = config.SCAN_RETENTION_DAYS):
        self._session_factory = session_factory
        self.retention_days = retention_days

    def create(self, scan_id: str, target_url: str, *, now: datetime | None = None) -> dict:
        now = now or utcnow()
        db = self._session_factory()
        try:
            s = Scan(
                id=scan_id,
                target_url=target_url,
                domain=domain_of(target_url),
                status=PENDING,
                created_at=now,
                expires_at=now + timedelta(days=self.retention_days),
            )
            db.add(s)
            db.commit()
            db.refresh(s)
            return _as_dict(s)
        except IntegrityError as e:
            db.rollback()
            raise ScanAlreadyExists(scan_id) from e
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"could not create scan {scan_id}") from e
        finally:
            db.close()

    def update(self, scan_id: str, status: str, **fields) -> None:
        unknown = set(fields) - WRITABLE
        if unknown:
            raise ValueError(f"not writable: {', '.join(sorted(unknown))}")

        allowed = ALLOWED_PREDECESSORS.get(status)
        if not allowed:
            raise InvalidTransition(scan_id, status)

        stmt = (
            update(Scan)
            .where(Scan.id == scan_id, Scan.status.in_(allowed))
            .values(status=status, **fields)
        )
        db = self._session_factory()
        try:
            matched = db.execute(stmt).rowcount
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"could not move scan {scan_id} to {status}") from e
        finally:
            db.close()

        if matched != 1:
            raise InvalidTransition(scan_id, status)
        logger.debug("Scan %s -> %s", scan_id, status)

    def read(self, scan_id: str) -> dict | None:
        db = self._session_factory()
        try:
            s = db.query(Scan).filter(Scan.id == scan_id).first()
            return _as_dict(s) if s else None
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"could not read scan {scan_id}") from e
        finally:
            db.close()

    def read_report(self, scan_id: str) -> bytes | None:
        db = self._session_factory()
        try:
            return db.query(Scan.report_pdf).filter(Scan.id == scan_id).scalar()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"could not read report for {scan_id}") from e
        finally:
            db.close()

    def next_pending(self) -> str | None:
        """Oldest pending scan id (FIFO), not claimed."""
        db = self._session_factory()
        try:
            return (
                db.query(Scan.id)
                .filter(Scan.status == PENDING)
                .order_by(Scan.created_at.asc(), Scan.id.asc())
                .limit(1)
                .scalar()
            )
        except SQLAlchemyError as e:
            raise PersistenceFailure("could not poll pending scans") from e
        finally:
            db.close()

    def find_orphaned(self, ttl_minutes: int = config.ORPHAN_TTL_MINUTES, *, now: datetime | None = None) -> list[dict]:
        """
        Read-only:
          - processing scans whose started_at is older than the ttl
          - pending scans created longer ago than the ttl
        """
        cutoff = (now or utcnow()) - timedelta(minutes=ttl_minutes)
        db = self._session_factory()
        try:
            rows = (
                db.query(Scan)
                .filter(
                    or_(
                        (Scan.status == PROCESSING) & (Scan.started_at <= cutoff),
                        (Scan.status == PENDING) & (Scan.created_at <= cutoff),
                    )
                )
                .order_by(Scan.created_at.asc())
                .all()
            )
            return [_as_dict(s) for s in rows]
        except SQLAlchemyError as e:
            raise PersistenceFailure("could not query orphaned scans") from e
        finally:
            db.close()
