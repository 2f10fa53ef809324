from datetime import datetime, timezone

import pytest

from sitescan.analyzers.results import (
    AccessibilityResult,
    AnalyzerStatus,
    CategoryScores,
    CoreWebVitals,
    InteractiveResult,
    Issue,
    PerformanceResult,
    SecurityResult,
    Technology,
)
from sitescan.core.errors import ReportGenerationFailure
from sitescan.reports import pdf as pdf_module
from sitescan.reports.builder import ReportData, build_document
from sitescan.reports.layout import (
    BRAND,
    CHAR_WIDTH_FACTOR,
    CONTENT_BOTTOM,
    FOOTER_CAPTION,
    MARGIN_X,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    Box,
    Text,
    printable,
    wrap_text,
)
from sitescan.reports.pdf import generate_report, render_pdf
from sitescan.scans.scoring import AggregateResult

SCANNED_AT = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)

CWV = CoreWebVitals(fcp=1200, lcp=2400, tti=3100, tbt=150, cls=0.05, speed_index=2000)

CWV_LABELS = [
    "First Contentful Paint (FCP)",
    "Largest Contentful Paint (LCP)",
    "Time to Interactive (TTI)",
    "Total Blocking Time (TBT)",
    "Cumulative Layout Shift (CLS)",
    "Speed Index",
]


def _minimal(**extra):
    return ReportData(target_url="https://example.com", overall_score=72, scanned_at=SCANNED_AT, **extra)


def _full():
    done = AnalyzerStatus.COMPLETED
    return _minimal(
        top_issues=[Issue(severity="high", category="Security", description="Missing HSTS header")],
        security=SecurityResult(status=done, checks_performed=7, checks_passed=6, https_enabled=True,
                                issues=[Issue(severity="high", category="Security", description="Missing HSTS header")]),
        performance=PerformanceResult(status=done, score=88, load_time_ms=900, source="google-pagespeed",
                                      core_web_vitals=CWV, category_scores=CategoryScores(performance=88, seo=90)),
        accessibility=AccessibilityResult(status=done, score=100, wcag_level="Passes Level A (potential AA issues)"),
        interactive=InteractiveResult(status=done, buttons_found=2, links_found=5, forms_found=1,
                                      primary_actions=["Sign up", "Learn more"]),
        technologies=[
            Technology(name="jQuery", category="Library", confidence="high", version="3.6.0"),
            Technology(name="nginx", category="Web Server", confidence="high"),
            Technology(name="React", category="Library", confidence="medium"),
        ],
        core_web_vitals=CWV,
        category_scores=CategoryScores(performance=88, seo=90),
        summary="The site is fast but misses HSTS.",
        recommendations=["Enable HSTS", "Add a CSP"],
    )


class TestPagination:
    def test_executive_summary_only_is_one_page(self):
        doc = build_document(_minimal())

        assert doc.page_count == 1
        texts = doc.pages[0].texts()
        assert "https://example.com" in texts
        assert "72" in texts
        assert "Scan date: 2026-03-01 09:30 UTC" in texts

    def test_core_web_vitals_adds_exactly_one_page(self):
        base = build_document(_minimal())
        with_cwv = build_document(_minimal(core_web_vitals=CWV))

        assert with_cwv.page_count == base.page_count + 1
        page = with_cwv.pages[-1]
        assert page.title == "Core Web Vitals"
        assert [label for label in CWV_LABELS if label in page.texts()] == CWV_LABELS

    def test_section_order(self):
        titles = [p.title for p in build_document(_full()).pages]

        assert titles == [
            "Executive Summary",
            "Metrics Overview",
            "Detailed Issues",
            "Security & Performance",
            "Accessibility & Technologies",
            "Core Web Vitals",
            "Category Scores",
            "Interactive Elements",
            "Technologies",
            "Analysis & Recommendations",
        ]

    def test_every_page_has_header_and_footer(self):
        doc = build_document(_full())

        for page in doc.pages:
            texts = page.texts()
            assert texts[0] == BRAND
            assert texts[1] == page.title
            assert texts[2] == f"Page {page.number}"
            assert texts[-1] == FOOTER_CAPTION
            assert isinstance(page.ops[0], Box) and page.ops[0].y == PAGE_HEIGHT - 80

    def test_long_issue_list_spills_onto_new_pages(self):
        issues = [
            Issue(severity="medium", category="Accessibility", description="word " * 120)
            for _ in range(10)
        ]
        doc = build_document(_minimal(top_issues=issues))
        issue_pages = [p for p in doc.pages if p.title == "Detailed Issues"]

        assert len(issue_pages) > 1
        for page in issue_pages:
            # header and footer ops excluded
            boxes = [op for op in page.ops[4:-3] if isinstance(op, Box)]
            assert boxes
            assert all(op.y >= CONTENT_BOTTOM for op in boxes)

    def test_layout_is_deterministic(self):
        assert build_document(_full()) == build_document(_full())

    def test_issues_capped_at_ten(self):
        issues = [Issue(severity="low", category="Security", description=f"issue {i}") for i in range(14)]
        texts = [t for p in build_document(_minimal(top_issues=issues)).pages for t in p.texts()]

        assert any(t.startswith("10. [LOW]") for t in texts)
        assert not any(t.startswith("11. [LOW]") for t in texts)


def test_wrap_text_uses_character_width_heuristic():
    # 9pt -> 5.4 units per char -> 100 units fit 18 chars
    lines = wrap_text("aaaa bbbb cccc dddd eeee", max_width=100, font_size=9)

    assert lines == ["aaaa bbbb cccc", "dddd eeee"]
    assert wrap_text("", 100) == []


def test_wrap_text_cuts_unbroken_words():
    lines = wrap_text("go " + "x" * 40 + " end", max_width=100, font_size=9)

    assert lines == ["go", "x" * 18, "x" * 18, "xxxx end"]


def test_wrap_text_keeps_line_breaks():
    assert wrap_text("first line\nsecond\n\nthird", max_width=450) == ["first line", "second", "third"]


def test_control_characters_never_reach_the_page():
    assert printable("a\tb\r\nc") == "a b c"


def test_long_narrative_stays_inside_the_page():
    long_url = "https://example.com/" + "a" * 300
    doc = build_document(_minimal(summary=f"Intro line.\n{long_url} is slow.", recommendations=[long_url]))

    texts = [op for p in doc.pages for op in p.ops if isinstance(op, Text)]
    assert not any("\n" in t.text for t in texts)
    wrapped = [t for t in texts if "aaaa" in t.text]
    assert len(wrapped) > 4
    for t in wrapped:
        assert t.x + len(t.text) * t.size * CHAR_WIDTH_FACTOR <= PAGE_WIDTH - MARGIN_X


def test_non_latin_text_is_made_printable():
    doc = build_document(_minimal(summary="Résumé ✓ done"))
    texts = [t for p in doc.pages for t in p.texts()]

    assert any(t.startswith("Résumé ? done") for t in texts)


class TestPdf:
    def test_renders_pdf_bytes(self):
        report = generate_report(_full())

        assert report.pdf.startswith(b"%PDF")
        assert report.size == len(report.pdf)
        assert report.pages == 10

    def test_rendering_is_byte_stable(self):
        doc = build_document(_full())
        assert render_pdf(doc) == render_pdf(doc)

    def test_failure_is_wrapped(self, monkeypatch):
        def boom(document):
            raise RuntimeError("canvas exploded")

        monkeypatch.setattr(pdf_module, "render_pdf", boom)

        with pytest.raises(ReportGenerationFailure):
            generate_report(_minimal())


def test_from_results_skips_failed_analyzers():
    results = {
        "security": SecurityResult.failed("Security scan failed: x"),
        "performance": PerformanceResult(status=AnalyzerStatus.COMPLETED, score=90, core_web_vitals=CWV),
    }
    data = ReportData.from_results(
        "https://example.com", SCANNED_AT, AggregateResult(overall_score=90), results, None
    )

    assert data.security is None
    assert data.core_web_vitals == CWV
    assert data.summary is None
    assert data.recommendations == []
