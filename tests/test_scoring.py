from sitescan.analyzers.results import (
    AccessibilityResult,
    AnalyzerStatus,
    ApiSurfaceResult,
    InteractiveResult,
    Issue,
    PerformanceResult,
    SecurityResult,
    TechStackResult,
)
from sitescan.scans.scoring import (
    MAX_TOP_ISSUES,
    aggregate,
    analyzer_score,
    compute_overall_score,
    score_band,
)

DONE = AnalyzerStatus.COMPLETED


def _issue(sev, text, category="Security"):
    return Issue(severity=sev, category=category, description=text)


def _results():
    return {
        "security": SecurityResult(
            status=DONE,
            issues=[_issue("medium", "s-medium"), _issue("high", "s-high"), _issue("low", "s-low")],
            checks_performed=7,
            checks_passed=4,
        ),
        "performance": PerformanceResult(status=DONE, score=40),
        "accessibility": AccessibilityResult(
            status=DONE,
            issues=[_issue("critical", "a-critical", "Accessibility"), _issue("high", "a-high", "Accessibility")],
            score=60,
        ),
        "interactive": InteractiveResult(status=DONE, buttons_found=3),
        "api": ApiSurfaceResult(status=DONE),
        "tech_stack": TechStackResult(status=DONE),
    }


def test_weighted_score_over_all_analyzers():
    # 57.14*.30 + 40*.25 + 60*.25 + 80*.10 + 70*.10 = 57.14
    assert aggregate(_results()).overall_score == 57


def test_failed_analyzers_carry_no_weight():
    results = _results()
    results["security"] = SecurityResult.failed("Security scan failed: boom")
    results["performance"] = PerformanceResult.failed("Performance scan failed: boom")

    agg = aggregate(results)

    # (60*.25 + 80*.10 + 70*.10) / .45 = 66.67
    assert agg.overall_score == 67
    assert agg.completed == ("accessibility", "interactive", "api")


def test_no_completed_analyzer_scores_zero():
    failed = {name: type(r).failed("x") for name, r in _results().items()}
    agg = aggregate(failed)

    assert agg.overall_score == 0
    assert agg.completed == ()
    assert agg.top_issues == []


def test_top_issues_ordering_is_by_severity_then_source():
    agg = aggregate(_results())

    assert [i.description for i in agg.top_issues] == [
        "a-critical",
        "s-high",
        "a-high",
        "Poor performance score (40/100) - site loads slowly",
        "s-medium",
        "s-low",
    ]


def test_poor_performance_issue_only_below_fifty():
    results = _results()
    results["performance"] = PerformanceResult(status=DONE, score=50)

    assert all(i.category != "Performance" for i in aggregate(results).top_issues)


def test_top_issues_capped():
    results = _results()
    results["security"] = SecurityResult(
        status=DONE,
        issues=[_issue("low", f"n{i}") for i in range(15)],
        checks_performed=7,
        checks_passed=0,
    )
    assert len(aggregate(results).top_issues) == MAX_TOP_ISSUES


def test_aggregation_is_idempotent():
    results = _results()
    first = aggregate(results)
    second = aggregate(dict(results))

    assert first.overall_score == second.overall_score
    assert first.issues_payload() == second.issues_payload()


def test_accepts_an_iterable_of_results():
    assert aggregate(list(_results().values())).overall_score == aggregate(_results()).overall_score


def test_score_bounds():
    results = _results()
    results["performance"] = PerformanceResult(status=DONE, score=100)
    results["accessibility"] = AccessibilityResult(status=DONE, score=100)
    results["security"] = SecurityResult(status=DONE, checks_performed=7, checks_passed=7)
    score, _ = compute_overall_score(results)

    assert 0 <= score <= 100


def test_per_analyzer_mapping():
    assert analyzer_score(InteractiveResult(status=DONE)) == 50
    assert analyzer_score(ApiSurfaceResult(status=DONE)) == 70
    assert analyzer_score(TechStackResult(status=DONE)) is None
    assert analyzer_score(ApiSurfaceResult.failed("x")) is None


def test_score_band():
    assert [score_band(s) for s in (95, 80, 65, 40, 10)] == ["Excellent", "Excellent", "Good", "Fair", "Poor"]
