# sitescan/scans/scoring.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable

from sitescan.analyzers.results import (
    AccessibilityResult,
    ApiSurfaceResult,
    InteractiveResult,
    Issue,
    PerformanceResult,
    SecurityResult,
    SEVERITY_RANK,
)

MAX_TOP_ISSUES = 10
POOR_PERFORMANCE_THRESHOLD = 50

# share of the overall score per analyzer; tech stack is informational only
WEIGHTS = {
    "security": 0.30,
    "performance": 0.25,
    "accessibility": 0.25,
    "interactive": 0.10,
    "api": 0.10,
}

API_SURFACE_SCORE = 70


@dataclass(frozen=True)
class AggregateResult:
    overall_score: int
    top_issues: list[Issue] = field(default_factory=list)
    completed: tuple[str, ...] = ()

    def issues_payload(self) -> list[dict]:
        return [i.model_dump(exclude_none=True) for i in self.top_issues]


def normalize_severity(sev: str | None) -> str:
    s = (sev or "").strip().lower()
    if s in SEVERITY_RANK:
        return s
    return "low"


def sort_issues(issues: Iterable[Issue]) -> list[Issue]:
    # sorted() is stable: equal severities keep source order
    return sorted(issues, key=lambda i: SEVERITY_RANK[normalize_severity(i.severity)])


def analyzer_score(result) -> float | None:
    """Per-analyzer 0..100 contribution, or None when it doesn't count."""
    if result is None or not result.completed:
        return None
    if isinstance(result, SecurityResult):
        return (result.checks_passed / (result.checks_performed or 1)) * 100
    if isinstance(result, (PerformanceResult, AccessibilityResult)):
        return float(result.score)
    if isinstance(result, InteractiveResult):
        return 80.0 if result.buttons_found > 0 else 50.0
    if isinstance(result, ApiSurfaceResult):
        return float(API_SURFACE_SCORE)
    return None


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def compute_overall_score(results: dict) -> tuple[int, tuple[str, ...]]:
    """
    score = sum(score_i * w_i) / sum(w_i) over completed analyzers only.
    returns: (score 0..100, names that contributed)
    """
    total = 0.0
    weight = 0.0
    used: list[str] = []
    for name, w in WEIGHTS.items():
        s = analyzer_score(results.get(name))
        if s is None:
            continue
        total += s * w
        weight += w
        used.append(name)

    if weight <= 0:
        return 0, ()
    score = _round_half_up(total / weight)
    return max(0, min(100, score)), tuple(used)


def collect_top_issues(results: dict) -> list[Issue]:
    issues: list[Issue] = []

    security = results.get("security")
    if security is not None and security.completed:
        issues.extend(security.issues)

    accessibility = results.get("accessibility")
    if accessibility is not None and accessibility.completed:
        issues.extend(accessibility.issues)

    performance = results.get("performance")
    if performance is not None and performance.completed and performance.score < POOR_PERFORMANCE_THRESHOLD:
        issues.append(
            Issue(
                severity="high",
                category="Performance",
                description=f"Poor performance score ({performance.score}/100) - site loads slowly",
            )
        )

    return sort_issues(issues)[:MAX_TOP_ISSUES]


def aggregate(results) -> AggregateResult:
    """
    Accepts {analyzer name: result} or an iterable of results (keyed by their kind).
    Pure: the same input always yields the same score and issue order.
    """
    if not isinstance(results, dict):
        results = {r.kind: r for r in results}

    score, used = compute_overall_score(results)
    return AggregateResult(overall_score=score, top_issues=collect_top_issues(results), completed=used)


def score_band(score: int) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Poor"
