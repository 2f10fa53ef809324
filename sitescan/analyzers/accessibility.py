# sitescan/analyzers/accessibility.py

from __future__ import annotations

import re
from typing import Callable, Optional

from sitescan.analyzers.base import Analyzer, PageContext
from sitescan.analyzers.results import AccessibilityResult, Issue

# points deducted per issue (not per occurrence)
SEVERITY_POINTS = {"critical": 25, "high": 15, "medium": 8, "low": 3}

FAILS_A = "Fails Level A"
PASSES_A = "Passes Level A (potential AA issues)"

IMG_NO_ALT_RE = re.compile(r"<img(?![^>]*alt=)[^>]*>", re.I)
HTML_LANG_RE = re.compile(r"<html[^>]*lang=", re.I)
EMPTY_BUTTON_RE = re.compile(r"<button[^>]*>\s*</button>", re.I)
INPUT_RE = re.compile(r"<input[^>]*>", re.I)
LABEL_RE = re.compile(r"<label[^>]*>", re.I)
HEADING_RE = re.compile(r"<h[1-6][^>]*>", re.I)
H1_RE = re.compile(r"<h1[^>]*>", re.I)
EMPTY_LINK_RE = re.compile(r"<a[^>]*href=[^>]*>\s*</a>", re.I)
SKIP_LINK_RE = re.compile(r"<a[^>]*href=[\"']#(main|content|skip)[\"'][^>]*>", re.I)
NEGATIVE_TABINDEX_RE = re.compile(r"tabindex=[\"']-\d+[\"']", re.I)

Check = Callable[[str], Optional[Issue]]


def _issue(severity: str, message: str, wcag: str, count: int | None = None) -> Issue:
    return Issue(severity=severity, category="Accessibility", description=message, count=count, wcag=wcag)


def check_image_alt(html: str):
    n = len(IMG_NO_ALT_RE.findall(html))
    if n:
        return _issue(
            "critical",
            f"{n} images missing alt text - screen readers cannot describe images",
            "WCAG 2.1 Level A (1.1.1)",
            count=n,
        )


def check_language(html: str):
    if not HTML_LANG_RE.search(html):
        return _issue(
            "high",
            "Missing lang attribute on html element - affects screen reader pronunciation",
            "WCAG 2.1 Level A (3.1.1)",
        )


def check_button_text(html: str):
    n = len(EMPTY_BUTTON_RE.findall(html))
    if n:
        return _issue(
            "critical",
            f"{n} buttons without accessible text - screen readers cannot announce purpose",
            "WCAG 2.1 Level A (4.1.2)",
            count=n,
        )


def check_form_labels(html: str):
    inputs = len(INPUT_RE.findall(html))
    labels = len(LABEL_RE.findall(html))
    # hidden/submit inputs rarely carry labels; allow a little slack
    if inputs > labels + 2:
        n = inputs - labels
        return _issue(
            "high",
            f"{n} form inputs possibly without labels - difficult for screen reader users",
            "WCAG 2.1 Level A (1.3.1, 3.3.2)",
            count=n,
        )


def check_headings(html: str):
    h1 = len(H1_RE.findall(html))
    if h1 == 0 and HEADING_RE.search(html):
        return _issue(
            "medium",
            "Page has no H1 heading - impacts document structure and navigation",
            "WCAG 2.1 Level A (1.3.1)",
        )
    if h1 > 1:
        return _issue(
            "medium",
            f"Page has {h1} H1 headings - should typically have only one",
            "WCAG 2.1 Best Practice",
        )


def check_link_text(html: str):
    n = len(EMPTY_LINK_RE.findall(html))
    if n:
        return _issue(
            "high",
            f"{n} links without text - screen readers cannot announce destination",
            "WCAG 2.1 Level A (2.4.4)",
            count=n,
        )


def check_skip_link(html: str):
    if not SKIP_LINK_RE.search(html):
        return _issue(
            "low",
            "No skip navigation link found - keyboard users must tab through all navigation",
            "WCAG 2.1 Level A (2.4.1)",
        )


def check_tabindex(html: str):
    n = len(NEGATIVE_TABINDEX_RE.findall(html))
    if n:
        return _issue(
            "medium",
            f"{n} elements with negative tabindex - removes from keyboard navigation",
            "WCAG 2.1 Level A (2.1.1)",
            count=n,
        )


DEFAULT_CHECKS: tuple[Check, ...] = (
    check_image_alt,
    check_language,
    check_button_text,
    check_form_labels,
    check_headings,
    check_link_text,
    check_skip_link,
    check_tabindex,
)


def score_issues(issues: list[Issue]) -> int:
    deducted = sum(SEVERITY_POINTS.get(i.severity, 10) for i in issues)
    return max(0, 100 - deducted)


def wcag_level(issues: list[Issue]) -> str:
    if any(i.severity in ("critical", "high") for i in issues):
        return FAILS_A
    return PASSES_A


class AccessibilityAnalyzer(Analyzer):
    """Heuristic subset of WCAG 2.1 Level A; each check is a pluggable callable."""

    name = "accessibility"
    label = "Accessibility"
    result_type = AccessibilityResult

    def __init__(self, checks: tuple[Check, ...] = DEFAULT_CHECKS):
        self.checks = checks

    def analyze(self, ctx: PageContext) -> AccessibilityResult:
        html = ctx.require_page().body or ""
        issues = [issue for issue in (check(html) for check in self.checks) if issue is not None]
        return AccessibilityResult(
            issues=issues,
            total_issues=len(issues),
            score=score_issues(issues),
            wcag_level=wcag_level(issues),
        )
