# sitescan/scans/orchestrator.py

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor

from sitescan.analyzers.base import PageContext
from sitescan.analyzers.registry import RESULT_COLUMNS, default_analyzers
from sitescan.core import config
from sitescan.core.dates import utcnow
from sitescan.core.errors import (
    FetchError,
    InvalidTransition,
    PersistenceFailure,
    RateLimitExceeded,
    ReportGenerationFailure,
)
from sitescan.db.session import SessionLocal
from sitescan.ratelimit.limiter import DomainRateLimiter
from sitescan.ratelimit.store import SqlRateLimitStore
from sitescan.reports.builder import ReportData
from sitescan.reports.pdf import generate_report
from sitescan.scans.dispatch import schedule_scan
from sitescan.scans.models import COMPLETED, FAILED, PENDING, PROCESSING
from sitescan.scans.og_image import extract_og_image
from sitescan.scans.repository import ScanRepository, domain_of
from sitescan.scans.scoring import aggregate
from sitescan.services.narrative import NO_ANALYSIS, Narrative, NarrativeService
from sitescan.ssrf.http import fetch

logger = logging.getLogger(__name__)

MAX_ERROR_LEN = 500


def _no_schedule(scan_id: str):
    pass


class ScanOrchestrator:
    """
    Drives one scan: pending -> processing -> completed | failed.

    Writes per scan: create (intake), claim (processing) and one terminal
    write carrying every result. Nothing is persisted in between.
    """

    def __init__(
        self,
        repo: ScanRepository,
        limiter: DomainRateLimiter,
        *,
        fetcher=fetch,
        analyzers=None,
        narrator=None,
        report_fn=generate_report,
        schedule=_no_schedule,
        max_workers: int = config.ANALYZER_CONCURRENCY,
        clock=utcnow,
    ):
        self.repo = repo
        self.limiter = limiter
        self.fetcher = fetcher
        self.analyzers = analyzers if analyzers is not None else default_analyzers()
        self.narrator = narrator if narrator is not None else NarrativeService()
        self.report_fn = report_fn
        self.schedule = schedule
        self.max_workers = max(1, int(max_workers))
        self._clock = clock

    # --- intake ---

    def submit(self, target_url: str, scan_id: str | None = None) -> dict:
        """
        Persist as pending and hand off to the scheduler. Never runs analyzers.
        PersistenceFailure propagates: no scan exists to report on.
        """
        scan_id = scan_id or str(uuid.uuid4())
        self.repo.create(scan_id, target_url, now=self._clock())
        self.schedule(scan_id)
        logger.info("Scan %s accepted for %s", scan_id, target_url)
        return {"accepted": True, "scan_id": scan_id, "status": PENDING}

    # --- processing ---

    def process(self, scan_id: str) -> str | None:
        """
        Returns the terminal status, or None when the scan was missing or
        already claimed by another worker.
        """
        scan = self.repo.read(scan_id)
        if scan is None:
            logger.warning("Scan %s not found", scan_id)
            return None

        started_at = self._clock()
        try:
            self.repo.update(scan_id, PROCESSING, started_at=started_at)
        except InvalidTransition:
            logger.info("Scan %s not claimable (status=%s)", scan_id, scan["status"])
            return None
        logger.info("Scan %s processing %s", scan_id, scan["target_url"])

        try:
            return self._run(scan_id, scan["target_url"], started_at)
        except Exception as e:
            logger.exception("Scan %s failed", scan_id)
            self._fail(scan_id, f"{type(e).__name__}: {e}")
            return FAILED

    def _run(self, scan_id: str, url: str, started_at) -> str:
        domain = domain_of(url)
        try:
            admission = self.limiter.admit(domain)
        except RateLimitExceeded as e:
            logger.warning("Scan %s rejected: %s (retry in %ss)", scan_id, e, e.retry_after)
            self._fail(scan_id, str(e))
            return FAILED
        logger.info("Scan %s admitted for %s (%s in window)", scan_id, admission.domain, admission.count)

        ctx = self._fetch_page(url)
        results = self._run_analyzers(ctx)
        agg = aggregate(results)

        if not agg.completed:
            logger.warning("Scan %s: no analyzer completed", scan_id)
            self._fail(scan_id, "no analyzer completed", overall_score=0)
            return FAILED

        narrative = self._narrate(scan_id, url, agg, results)

        report = None
        try:
            report = self.report_fn(ReportData.from_results(url, started_at, agg, results, narrative))
        except ReportGenerationFailure as e:
            logger.error("Scan %s completing without report: %s", scan_id, e)

        tech = results.get("tech_stack")
        api = results.get("api")
        fields = {RESULT_COLUMNS[name]: r.model_dump(mode="json") for name, r in results.items()}
        fields.update(
            overall_score=agg.overall_score,
            top_issues=agg.issues_payload(),
            technologies=[t.name for t in tech.detected] if tech is not None and tech.completed else [],
            exposed_endpoints=[e.path for e in api.endpoints] if api is not None and api.completed else [],
            og_image=extract_og_image(ctx.page.body, url) if ctx.page is not None else None,
            ai_summary=narrative.summary,
            ai_recommendations=narrative.recommendations or None,
            finished_at=self._clock(),
        )
        if report is not None:
            fields.update(report_pdf=report.pdf, report_size=report.size, report_pages=report.pages)

        self.repo.update(scan_id, COMPLETED, **fields)
        logger.info(
            "Scan %s completed: score=%s, analyzers=%s",
            scan_id,
            agg.overall_score,
            ",".join(agg.completed),
        )
        return COMPLETED

    def _narrate(self, scan_id: str, url: str, agg, results: dict) -> Narrative:
        # optional enrichment, never fails the scan
        try:
            narrative = self.narrator.analyze(url, agg.overall_score, results, agg.top_issues)
        except Exception:
            logger.exception("Scan %s completing without narrative analysis", scan_id)
            return NO_ANALYSIS
        if narrative.summary is not None and not isinstance(narrative.summary, str):
            logger.warning("Scan %s: discarding non-text narrative summary", scan_id)
            return NO_ANALYSIS
        return narrative

    def _fetch_page(self, url: str) -> PageContext:
        # one fetch shared by every analyzer; a failure here only fails the
        # analyzers that need the page
        try:
            return PageContext(url=url, page=self.fetcher(url))
        except FetchError as e:
            logger.warning("Fetch failed for %s: %s", url, e)
            return PageContext(url=url, fetch_error=e)

    def _run_analyzers(self, ctx: PageContext) -> dict:
        workers = min(self.max_workers, len(self.analyzers)) or 1
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="analyzer") as pool:
            outcomes = list(pool.map(lambda a: a.run(ctx), self.analyzers))
        return {a.name: r for a, r in zip(self.analyzers, outcomes)}

    def _fail(self, scan_id: str, error: str, **fields):
        try:
            self.repo.update(
                scan_id,
                FAILED,
                error=(error or "unknown error")[:MAX_ERROR_LEN],
                finished_at=self._clock(),
                **fields,
            )
        except (PersistenceFailure, InvalidTransition):
            # left in processing; find_orphaned() will surface it
            logger.exception("Could not mark scan %s as failed", scan_id)


def build_orchestrator(schedule=None) -> ScanOrchestrator:
    return ScanOrchestrator(
        ScanRepository(SessionLocal),
        DomainRateLimiter(SqlRateLimitStore(SessionLocal)),
        schedule=schedule or schedule_scan,
    )
