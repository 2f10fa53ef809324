# sitescan/reports/builder.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sitescan.analyzers.results import (
    AccessibilityResult,
    CategoryScores,
    CoreWebVitals,
    InteractiveResult,
    Issue,
    PerformanceResult,
    SecurityResult,
    Technology,
)
from sitescan.core.dates import as_utc
from sitescan.reports.layout import (
    AMBER,
    CONTENT_WIDTH,
    DARK_GREY,
    GREEN,
    LIGHT_GREY,
    MARGIN_X,
    MID_GREY,
    NAVY,
    PANEL,
    PANEL_BORDER,
    RED,
    TEXT_GREY,
    WHITE,
    PageWriter,
    ReportDocument,
    score_color,
    truncate,
    wrap_text,
)
from sitescan.scans.scoring import score_band

MAX_REPORT_ISSUES = 10
MAX_PRIMARY_ACTIONS = 8
MAX_RECOMMENDATIONS = 12

SEVERITY_COLORS = {
    "critical": RED,
    "high": (1, 0.4, 0),
    "medium": AMBER,
    "low": (0.4, 0.6, 0.9),
}


@dataclass
class ReportData:
    """
    Everything a report can show. A section is emitted only when its field is
    present, so the page count follows from which fields are filled.
    """

    target_url: str
    overall_score: int
    scanned_at: datetime
    top_issues: list[Issue] = field(default_factory=list)
    security: Optional[SecurityResult] = None
    performance: Optional[PerformanceResult] = None
    accessibility: Optional[AccessibilityResult] = None
    interactive: Optional[InteractiveResult] = None
    technologies: list[Technology] = field(default_factory=list)
    core_web_vitals: Optional[CoreWebVitals] = None
    category_scores: Optional[CategoryScores] = None
    summary: Optional[str] = None
    recommendations: list[str] = field(default_factory=list)

    @classmethod
    def from_results(cls, target_url: str, scanned_at: datetime, aggregate, results: dict, narrative=None) -> "ReportData":
        def done(name):
            r = results.get(name)
            return r if r is not None and r.completed else None

        performance = done("performance")
        tech = done("tech_stack")
        return cls(
            target_url=target_url,
            overall_score=aggregate.overall_score,
            scanned_at=scanned_at,
            top_issues=list(aggregate.top_issues),
            security=done("security"),
            performance=performance,
            accessibility=done("accessibility"),
            interactive=done("interactive"),
            technologies=list(tech.detected) if tech else [],
            core_web_vitals=performance.core_web_vitals if performance else None,
            category_scores=performance.category_scores if performance else None,
            summary=getattr(narrative, "summary", None),
            recommendations=list(getattr(narrative, "recommendations", None) or []),
        )


def _fmt_date(dt: datetime) -> str:
    return as_utc(dt).strftime("%Y-%m-%d %H:%M UTC")


def _yes_no(flag: bool) -> str:
    return "Enabled" if flag else "Disabled"


def _panel(w: PageWriter, height: float, *, fill=PANEL, stroke=PANEL_BORDER):
    w.ensure(height)
    w.box(MARGIN_X, w.y - height, CONTENT_WIDTH, height, fill=fill, stroke=stroke, stroke_width=1)


def _rows(w: PageWriter, rows: list[tuple[str, str]], *, leading: float = 18):
    for label, value in rows:
        w.ensure(leading)
        w.text(MARGIN_X + 10, w.y, label, 10, TEXT_GREY)
        w.text(MARGIN_X + 260, w.y, value, 10, DARK_GREY, bold=True)
        w.advance(leading)


# --- sections ---------------------------------------------------------------


def executive_summary(w: PageWriter, data: ReportData):
    w.start_page("Executive Summary")

    w.text(MARGIN_X, w.y - 10, "Web Scanner Full Report", 24, NAVY, bold=True)
    w.advance(34)
    w.text(MARGIN_X, w.y, "Security, performance and accessibility analysis", 11, MID_GREY)
    w.advance(20)

    _panel(w, 50, fill=(0.95, 0.95, 0.98), stroke=None)
    w.text(MARGIN_X + 15, w.y - 20, "URL Analyzed:", 10, TEXT_GREY, bold=True)
    w.text(MARGIN_X + 15, w.y - 38, truncate(data.target_url, 80), 11, NAVY)
    w.advance(60)

    w.text(MARGIN_X, w.y, f"Scan date: {_fmt_date(data.scanned_at)}", 10, TEXT_GREY)
    w.advance(20)

    color = score_color(data.overall_score)
    _panel(w, 80, fill=WHITE, stroke=color)
    w.text(MARGIN_X + 20, w.y - 25, "OVERALL SCORE", 11, TEXT_GREY, bold=True)
    w.text(MARGIN_X + 20, w.y - 65, str(data.overall_score), 36, color, bold=True)
    w.text(MARGIN_X + 100, w.y - 65, "/100", 16, MID_GREY)
    w.text(MARGIN_X + 300, w.y - 50, score_band(data.overall_score), 16, color, bold=True)
    w.advance(100)

    w.heading("Quick Metrics")
    sec = data.security
    perf = data.performance
    acc = data.accessibility
    _rows(
        w,
        [
            ("Performance Score", f"{perf.score}/100" if perf else "N/A"),
            ("Security Checks", f"{sec.checks_passed}/{sec.checks_performed} passed" if sec else "N/A"),
            ("Accessibility Issues", str(acc.total_issues) if acc else "N/A"),
            ("Technologies Detected", str(len(data.technologies))),
            ("Issues Found", str(len(data.top_issues))),
        ],
        leading=25,
    )


def metrics_overview(w: PageWriter, data: ReportData):
    w.start_page("Metrics Overview")
    w.heading("Key Metrics", 16)

    cards = []
    if data.performance:
        cards.append(("Performance", f"{data.performance.score}", data.performance.score))
    if data.category_scores:
        cards.append(("SEO", f"{data.category_scores.seo}", data.category_scores.seo))
    if data.accessibility:
        cards.append(("A11y Score", f"{data.accessibility.score}", data.accessibility.score))
    if data.security:
        s = data.security
        pct = round(s.checks_passed / (s.checks_performed or 1) * 100)
        cards.append(("Security", f"{s.checks_passed}/{s.checks_performed}", pct))
    if data.interactive:
        i = data.interactive
        cards.append(("Elements", f"{i.buttons_found + i.links_found + i.forms_found}", 80 if i.buttons_found else 50))

    card_w, card_h, gap = 98, 85, 5
    w.ensure(card_h + 20)
    for n, (label, value, score) in enumerate(cards):
        x = MARGIN_X + n * (card_w + gap)
        w.box(x, w.y - card_h, card_w, card_h, fill=PANEL, stroke=score_color(score), stroke_width=2)
        w.text(x + 10, w.y - 20, label, 9, TEXT_GREY, bold=True)
        w.text(x + 10, w.y - 55, value, 20, score_color(score), bold=True)
    w.advance(card_h + 25)

    w.heading("How to read these numbers")
    w.paragraph(
        "Scores run from 0 to 100. Green (80 and above) is healthy, amber (60 to 79) needs attention, "
        "and red (below 60) should be addressed first. Security counts the response-header and script "
        "checks that passed. Elements counts buttons, links and forms found on the page."
    )


def detailed_issues(w: PageWriter, data: ReportData):
    issues = data.top_issues[:MAX_REPORT_ISSUES]
    w.start_page("Detailed Issues")
    w.heading(f"Top Issues Found ({len(issues)})", 16)

    for n, issue in enumerate(issues, start=1):
        lines = wrap_text(issue.description, CONTENT_WIDTH - 40, 9)
        height = 22 + 12 * len(lines)
        w.ensure(height + 8)
        color = SEVERITY_COLORS.get(issue.severity, MID_GREY)
        w.box(MARGIN_X, w.y - height, CONTENT_WIDTH, height, fill=PANEL, stroke=color, stroke_width=1)
        w.box(MARGIN_X, w.y - height, 4, height, fill=color)

        tag = f"{n}. [{issue.severity.upper()}] {issue.category}"
        if issue.count:
            tag += f" (x{issue.count})"
        if issue.wcag:
            tag += f" - WCAG {issue.wcag}"
        w.text(MARGIN_X + 12, w.y - 14, tag, 9, color, bold=True)
        for k, line in enumerate(lines):
            w.text(MARGIN_X + 12, w.y - 28 - 12 * k, line, 9, DARK_GREY)
        w.advance(height + 8)


def security_performance(w: PageWriter, data: ReportData):
    w.start_page("Security & Performance")

    sec = data.security
    if sec:
        w.heading("Security Analysis", 16)
        _rows(
            w,
            [
                ("Checks Passed", f"{sec.checks_passed}/{sec.checks_performed}"),
                ("HTTPS", "Yes" if sec.https_enabled else "No"),
                ("Issues", str(len(sec.issues))),
            ],
        )
        if sec.issues:
            for issue in sec.issues:
                w.paragraph(f"- [{issue.severity.upper()}] {issue.description}", x=MARGIN_X + 10)
        else:
            w.paragraph("All security header checks passed.", x=MARGIN_X + 10, color=GREEN)
        w.advance(15)

    perf = data.performance
    if perf:
        w.heading("Performance Analysis", 16)
        rows = [
            ("Score", f"{perf.score}/100"),
            ("Load Time", f"{perf.load_time_ms} ms"),
        ]
        if perf.page_size_kb is not None:
            rows.append(("Page Size", f"{perf.page_size_kb} KB"))
        rows += [
            ("Images", str(perf.image_count)),
            ("Scripts", str(perf.scripts_count)),
            ("Stylesheets", str(perf.stylesheets_count)),
            ("Compression", _yes_no(perf.compression_enabled)),
            ("Caching", _yes_no(perf.caching_enabled)),
            ("Measured by", perf.source or "-"),
        ]
        _rows(w, rows)

        if perf.opportunities:
            w.advance(5)
            w.heading("Opportunities")
            for opp in perf.opportunities:
                saving = f" (save ~{round(opp.savings_ms)} ms)" if opp.savings_ms else ""
                w.paragraph(f"- {opp.title}{saving}", x=MARGIN_X + 10)


def accessibility_and_stack(w: PageWriter, data: ReportData):
    w.start_page("Accessibility & Technologies")

    acc = data.accessibility
    if acc:
        w.heading("Accessibility Analysis", 16)
        color = score_color(acc.score)
        _panel(w, 60, fill=WHITE, stroke=color)
        w.text(MARGIN_X + 15, w.y - 25, f"Score: {acc.score}/100", 14, color, bold=True)
        w.text(MARGIN_X + 15, w.y - 45, f"WCAG: {acc.wcag_level}", 10, TEXT_GREY)
        w.text(MARGIN_X + 300, w.y - 25, f"Issues: {acc.total_issues}", 12, DARK_GREY, bold=True)
        w.advance(75)

        for issue in acc.issues:
            ref = f" (WCAG {issue.wcag})" if issue.wcag else ""
            w.paragraph(f"- [{issue.severity.upper()}] {issue.description}{ref}", x=MARGIN_X + 10)
        w.advance(15)

    if data.technologies:
        w.heading(f"Technology Stack ({len(data.technologies)})", 16)
        w.paragraph(" | ".join(t.name for t in data.technologies[:15]), size=10, leading=14)


def core_web_vitals(w: PageWriter, data: ReportData):
    cwv = data.core_web_vitals
    w.start_page("Core Web Vitals")
    w.heading("Core Web Vitals", 16)
    w.text(MARGIN_X, w.y, "Powered by Google PageSpeed Insights", 9, MID_GREY)
    w.advance(20)

    metrics = [
        ("First Contentful Paint (FCP)", f"{cwv.fcp / 1000:.2f} s", "Time until the first text or image is painted", cwv.fcp <= 1800),
        ("Largest Contentful Paint (LCP)", f"{cwv.lcp / 1000:.2f} s", "Time until the largest element is painted", cwv.lcp <= 2500),
        ("Time to Interactive (TTI)", f"{cwv.tti / 1000:.2f} s", "Time until the page responds reliably to input", cwv.tti <= 3800),
        ("Total Blocking Time (TBT)", f"{cwv.tbt} ms", "Main-thread time blocked between FCP and TTI", cwv.tbt <= 200),
        ("Cumulative Layout Shift (CLS)", f"{cwv.cls:.3f}", "Visual stability while the page loads", cwv.cls <= 0.1),
        ("Speed Index", f"{cwv.speed_index / 1000:.2f} s", "How quickly content is visibly populated", cwv.speed_index <= 3400),
    ]
    for label, value, desc, good in metrics:
        color = GREEN if good else AMBER
        w.ensure(45)
        w.box(MARGIN_X, w.y - 35, CONTENT_WIDTH, 35, fill=PANEL, stroke=color, stroke_width=1)
        w.text(MARGIN_X + 10, w.y - 15, label, 10, NAVY, bold=True)
        w.text(MARGIN_X + 10, w.y - 28, desc, 8, MID_GREY)
        w.text(MARGIN_X + 400, w.y - 22, value, 12, color, bold=True)
        w.advance(45)

    w.advance(10)
    w.paragraph(
        "Core Web Vitals are lab measurements from a simulated mobile device. Values in green are within "
        "the recommended thresholds; amber values are worth investigating."
    )


def category_scores(w: PageWriter, data: ReportData):
    cats = data.category_scores
    w.start_page("Category Scores")
    w.heading("Lighthouse Category Scores", 16)

    bar_w = 300
    for label, score in (
        ("Performance", cats.performance),
        ("Accessibility", cats.accessibility),
        ("Best Practices", cats.best_practices),
        ("SEO", cats.seo),
    ):
        w.ensure(40)
        color = score_color(score)
        w.text(MARGIN_X, w.y - 12, label, 11, DARK_GREY, bold=True)
        w.box(MARGIN_X + 130, w.y - 18, bar_w, 14, fill=(0.93, 0.93, 0.93))
        w.box(MARGIN_X + 130, w.y - 18, bar_w * max(0, min(100, score)) / 100, 14, fill=color)
        w.text(MARGIN_X + 445, w.y - 14, f"{score}/100", 11, color, bold=True)
        w.advance(40)


def interactive_elements(w: PageWriter, data: ReportData):
    it = data.interactive
    w.start_page("Interactive Elements")
    w.heading("Interactive Elements", 16)

    box_w, box_h, gap = 165, 60, 10
    w.ensure(box_h + 20)
    for n, (label, value) in enumerate(
        (("Buttons", it.buttons_found), ("Links", it.links_found), ("Forms", it.forms_found))
    ):
        x = MARGIN_X + n * (box_w + gap)
        w.box(x, w.y - box_h, box_w, box_h, fill=PANEL, stroke=PANEL_BORDER, stroke_width=1)
        w.text(x + 12, w.y - 20, label, 10, TEXT_GREY, bold=True)
        w.text(x + 12, w.y - 48, str(value), 20, NAVY, bold=True)
    w.advance(box_h + 25)

    actions = it.primary_actions[:MAX_PRIMARY_ACTIONS]
    if actions:
        w.heading("Primary Actions")
        for action in actions:
            w.paragraph(f"- {truncate(action, 80)}", x=MARGIN_X + 10)


def technologies(w: PageWriter, data: ReportData):
    techs = data.technologies
    w.start_page("Technologies")
    w.heading(f"Detected Technologies ({len(techs)})", 16)

    cell_w, cell_h, row_step = 250, 28, 35
    for start in range(0, len(techs), 2):
        w.ensure(row_step)
        for col, tech in enumerate(techs[start : start + 2]):
            x = MARGIN_X + col * (cell_w + 15)
            w.box(x, w.y - cell_h, cell_w, cell_h, fill=PANEL, stroke=LIGHT_GREY, stroke_width=0.5)
            name = tech.name + (f" {tech.version}" if tech.version else "")
            w.text(x + 10, w.y - 12, truncate(name, 38), 10, NAVY, bold=True)
            w.text(x + 10, w.y - 23, f"{tech.category} - {tech.confidence} confidence", 7, MID_GREY)
        w.advance(row_step)


def narrative(w: PageWriter, data: ReportData):
    w.start_page("Analysis & Recommendations")
    if data.summary:
        w.heading("Summary", 16)
        w.paragraph(data.summary, size=10, leading=14)
        w.advance(15)

    recs = data.recommendations[:MAX_RECOMMENDATIONS]
    if recs:
        w.heading("Recommendations", 16)
        for n, rec in enumerate(recs, start=1):
            w.paragraph(f"{n}. {rec}", x=MARGIN_X + 10, size=10, leading=14)
            w.advance(4)


# (section, predicate); order is fixed
SECTIONS = (
    (executive_summary, lambda d: True),
    (metrics_overview, lambda d: any((d.security, d.performance, d.accessibility, d.interactive))),
    (detailed_issues, lambda d: bool(d.top_issues)),
    (security_performance, lambda d: bool(d.security or d.performance)),
    (accessibility_and_stack, lambda d: bool(d.accessibility or d.technologies)),
    (core_web_vitals, lambda d: d.core_web_vitals is not None),
    (category_scores, lambda d: d.category_scores is not None),
    (interactive_elements, lambda d: d.interactive is not None),
    (technologies, lambda d: bool(d.technologies)),
    (narrative, lambda d: bool(d.summary or d.recommendations)),
)


def build_document(data: ReportData) -> ReportDocument:
    writer = PageWriter()
    for section, wanted in SECTIONS:
        if wanted(data):
            section(writer, data)
    return writer.finish()
