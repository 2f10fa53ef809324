"""
Performance analyzer.

Two strategies behind one analyzer: the keyed PageSpeed Insights service when an
API key is configured, and a header/markup heuristic over the already-fetched
page otherwise (or whenever PageSpeed fails).
"""

from __future__ import annotations

import logging
import re

from sitescan.analyzers.base import Analyzer, PageContext
from sitescan.analyzers.results import CategoryScores, CoreWebVitals, Opportunity, PerformanceResult
from sitescan.services.pagespeed import PageSpeedError, clamp_score, fetch_lighthouse

logger = logging.getLogger(__name__)

IMG_RE = re.compile(r"<img[^>]*>", re.I)
SCRIPT_RE = re.compile(r"<script[^>]*>", re.I)
STYLESHEET_RE = re.compile(r"<link[^>]*rel=[\"']stylesheet[\"'][^>]*>", re.I)

OPPORTUNITY_AUDITS = (
    "render-blocking-resources",
    "unused-css-rules",
    "unused-javascript",
    "modern-image-formats",
    "offscreen-images",
    "unminified-css",
    "unminified-javascript",
    "reduce-unused-code",
)

DIAGNOSTIC_AUDITS = (
    "dom-size",
    "total-byte-weight",
    "mainthread-work-breakdown",
    "bootup-time",
    "duplicated-javascript",
)


def heuristic_score(
    load_time_ms: float,
    image_count: int,
    scripts_count: int,
    stylesheets_count: int,
    compression_enabled: bool,
    caching_enabled: bool,
) -> int:
    score = 100
    if load_time_ms > 3000:
        score -= 30
    elif load_time_ms > 1500:
        score -= 15

    if image_count > 20:
        score -= 10
    if scripts_count > 15:
        score -= 10
    if stylesheets_count > 5:
        score -= 5
    if not compression_enabled:
        score -= 15
    if not caching_enabled:
        score -= 10

    return max(0, score)


class HeuristicStrategy:
    source = "basic-scan"

    def measure(self, ctx: PageContext) -> PerformanceResult:
        page = ctx.require_page()
        html = page.body or ""

        image_count = len(IMG_RE.findall(html))
        scripts_count = len(SCRIPT_RE.findall(html))
        stylesheets_count = len(STYLESHEET_RE.findall(html))

        encoding = (page.header("content-encoding") or "").lower()
        compression = "gzip" in encoding or "br" in encoding
        caching = bool(page.header("cache-control"))

        return PerformanceResult(
            score=heuristic_score(
                page.elapsed_ms, image_count, scripts_count, stylesheets_count, compression, caching
            ),
            load_time_ms=int(page.elapsed_ms),
            page_size_kb=round(page.size_bytes / 1024),
            image_count=image_count,
            scripts_count=scripts_count,
            stylesheets_count=stylesheets_count,
            compression_enabled=compression,
            caching_enabled=caching,
            source=self.source,
        )


def _audit_list(audits: dict, ids: tuple, *, with_savings: bool) -> list[Opportunity]:
    out: list[Opportunity] = []
    for audit_id in ids:
        audit = audits.get(audit_id) or {}
        score = audit.get("score")
        if not isinstance(score, (int, float)) or score >= 1:
            continue
        details = audit.get("details") or {}
        savings = details.get("overallSavingsMs") if with_savings else 0
        out.append(
            Opportunity(
                title=audit.get("title") or audit_id,
                description=audit.get("description"),
                score=score,
                savings_ms=savings if isinstance(savings, (int, float)) else 0,
            )
        )
    return out[:5]


def lighthouse_to_result(lighthouse: dict) -> PerformanceResult:
    categories = lighthouse.get("categories") or {}
    audits = lighthouse.get("audits") or {}

    def cat(key: str) -> int:
        return clamp_score((categories.get(key) or {}).get("score"))

    scores = CategoryScores(
        performance=cat("performance"),
        accessibility=cat("accessibility"),
        best_practices=cat("best-practices"),
        seo=cat("seo"),
    )

    items = ((audits.get("metrics") or {}).get("details") or {}).get("items") or [{}]
    m = items[0] or {}

    vitals = CoreWebVitals(
        fcp=round(m.get("firstContentfulPaint") or 0),
        lcp=round(m.get("largestContentfulPaint") or 0),
        tti=round(m.get("interactive") or 0),
        tbt=round(m.get("totalBlockingTime") or 0),
        cls=round(float(m.get("cumulativeLayoutShift") or 0), 3),
        speed_index=round(m.get("speedIndex") or 0),
    )

    optimized = ((audits.get("uses-optimized-images") or {}).get("details") or {}).get("items") or []
    cache_score = (audits.get("uses-long-cache-ttl") or {}).get("score")

    return PerformanceResult(
        score=scores.performance,
        load_time_ms=round(m.get("observedLoad") or 0),
        image_count=len(optimized),
        compression_enabled=(audits.get("uses-text-compression") or {}).get("score") == 1,
        caching_enabled=isinstance(cache_score, (int, float)) and cache_score > 0.5,
        category_scores=scores,
        core_web_vitals=vitals,
        opportunities=_audit_list(audits, OPPORTUNITY_AUDITS, with_savings=True),
        diagnostics=_audit_list(audits, DIAGNOSTIC_AUDITS, with_savings=False),
        source="google-pagespeed",
    )


class PageSpeedStrategy:
    source = "google-pagespeed"

    def __init__(self, api_key: str, *, timeout: float | None = None, transport=None):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def measure(self, ctx: PageContext) -> PerformanceResult:
        kwargs = {"transport": self.transport}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return lighthouse_to_result(fetch_lighthouse(ctx.url, self.api_key, **kwargs))


class PerformanceAnalyzer(Analyzer):
    name = "performance"
    label = "Performance"
    result_type = PerformanceResult

    def __init__(self, api_key: str | None = None, *, pagespeed_timeout: float | None = None, transport=None):
        self.primary = PageSpeedStrategy(api_key, timeout=pagespeed_timeout, transport=transport) if api_key else None
        self.fallback = HeuristicStrategy()

    def analyze(self, ctx: PageContext) -> PerformanceResult:
        if self.primary is not None:
            try:
                return self.primary.measure(ctx)
            except (PageSpeedError, ValueError, TypeError) as e:
                logger.warning("PageSpeed unavailable for %s (%s); falling back to basic scan", ctx.url, e)
        return self.fallback.measure(ctx)
