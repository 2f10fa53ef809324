from conftest import SAMPLE_HTML, make_page

from sitescan.analyzers.accessibility import (
    FAILS_A,
    PASSES_A,
    AccessibilityAnalyzer,
    check_form_labels,
    check_headings,
    check_tabindex,
    score_issues,
)
from sitescan.analyzers.base import PageContext


def _run(html):
    return AccessibilityAnalyzer().run(PageContext(url="https://example.com", page=make_page(html)))


def test_missing_alt_and_lang_scenario():
    html = (
        "<html><body><a href=\"#main\">Skip</a><h1>Title</h1>"
        "<img src=\"a.png\"><img src=\"b.png\"><img src=\"c.png\">"
        "</body></html>"
    )
    result = _run(html)

    assert result.total_issues == 2
    critical, high = result.issues
    assert critical.severity == "critical"
    assert critical.count == 3
    assert critical.wcag == "WCAG 2.1 Level A (1.1.1)"
    assert high.severity == "high"
    assert high.count is None
    assert result.wcag_level == FAILS_A
    assert result.score == 100 - 25 - 15


def test_clean_page_passes():
    result = _run(SAMPLE_HTML)

    assert result.issues == []
    assert result.score == 100
    assert result.wcag_level == PASSES_A


def test_only_low_and_medium_still_pass_level_a():
    html = '<html lang="en"><h2>a</h2><div tabindex="-1"></div></html>'
    result = _run(html)

    assert {i.severity for i in result.issues} == {"medium", "low"}
    assert result.wcag_level == PASSES_A


def test_multiple_h1():
    issue = check_headings("<h1>a</h1><h1>b</h1>")
    assert issue.severity == "medium"
    assert "2 H1" in issue.description


def test_no_headings_at_all_is_not_flagged():
    assert check_headings("<p>plain</p>") is None


def test_form_label_slack():
    assert check_form_labels("<input><input><input>") is not None
    assert check_form_labels("<label></label><input><input><input>") is None


def test_negative_tabindex_count():
    issue = check_tabindex('<a tabindex="-1"></a><div tabindex="-1"></div>')
    assert issue.count == 2


def test_score_floor():
    issues = [check_tabindex('<a tabindex="-1">')] * 20
    assert score_issues(issues) == 0


def test_checks_are_pluggable():
    analyzer = AccessibilityAnalyzer(checks=(check_headings,))
    result = analyzer.run(PageContext(url="https://example.com", page=make_page("<img src=x>")))

    assert result.issues == []
