"""
Typed analyzer payloads.

Each analyzer produces one variant, tagged by ``kind``; ``AnalyzerResult`` is the
discriminated union the orchestrator stores and the aggregator / report read back.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

Severity = Literal["critical", "high", "medium", "low"]

SEVERITY_ORDER: tuple[str, ...] = ("critical", "high", "medium", "low")
SEVERITY_RANK = {s: i for i, s in enumerate(SEVERITY_ORDER)}


class AnalyzerStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Issue(BaseModel):
    severity: Severity
    category: str
    description: str
    count: Optional[int] = None
    wcag: Optional[str] = None


class _Result(BaseModel):
    status: AnalyzerStatus = AnalyzerStatus.PENDING
    error: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.status == AnalyzerStatus.COMPLETED

    @classmethod
    def failed(cls, error: str):
        # every metric field defaults to its zero value
        return cls(status=AnalyzerStatus.FAILED, error=error)


class SecurityResult(_Result):
    kind: Literal["security"] = "security"
    issues: list[Issue] = Field(default_factory=list)
    checks_performed: int = 0
    checks_passed: int = 0
    https_enabled: bool = False


class CategoryScores(BaseModel):
    performance: int = 0
    accessibility: int = 0
    best_practices: int = 0
    seo: int = 0


class CoreWebVitals(BaseModel):
    """Timings in milliseconds, CLS unitless."""

    fcp: int = 0
    lcp: int = 0
    tti: int = 0
    tbt: int = 0
    cls: float = 0.0
    speed_index: int = 0


class Opportunity(BaseModel):
    title: str
    description: Optional[str] = None
    score: Optional[float] = None
    savings_ms: float = 0


class PerformanceResult(_Result):
    kind: Literal["performance"] = "performance"
    score: int = 0
    load_time_ms: int = 0
    page_size_kb: Optional[int] = None
    image_count: int = 0
    scripts_count: int = 0
    stylesheets_count: int = 0
    compression_enabled: bool = False
    caching_enabled: bool = False
    category_scores: Optional[CategoryScores] = None
    core_web_vitals: Optional[CoreWebVitals] = None
    opportunities: list[Opportunity] = Field(default_factory=list)
    diagnostics: list[Opportunity] = Field(default_factory=list)
    source: Optional[str] = None


class AccessibilityResult(_Result):
    kind: Literal["accessibility"] = "accessibility"
    issues: list[Issue] = Field(default_factory=list)
    total_issues: int = 0
    score: int = 0
    wcag_level: str = "Unable to determine"


class Endpoint(BaseModel):
    method: str = "GET"
    path: str


class ApiSurfaceResult(_Result):
    kind: Literal["api"] = "api"
    endpoints_detected: int = 0
    endpoints: list[Endpoint] = Field(default_factory=list)


class Technology(BaseModel):
    name: str
    category: str
    confidence: Literal["high", "medium", "low"]
    version: Optional[str] = None


class TechStackResult(_Result):
    kind: Literal["tech_stack"] = "tech_stack"
    detected: list[Technology] = Field(default_factory=list)
    total_detected: int = 0


class InteractiveResult(_Result):
    kind: Literal["interactive"] = "interactive"
    buttons_found: int = 0
    links_found: int = 0
    forms_found: int = 0
    primary_actions: list[str] = Field(default_factory=list)


AnalyzerResult = Annotated[
    Union[
        SecurityResult,
        PerformanceResult,
        AccessibilityResult,
        ApiSurfaceResult,
        TechStackResult,
        InteractiveResult,
    ],
    Field(discriminator="kind"),
]

_adapter = TypeAdapter(AnalyzerResult)


def load_result(payload: dict | None):
    """Rebuild a stored payload into its typed variant (None stays None)."""
    if not payload:
        return None
    return _adapter.validate_python(payload)
