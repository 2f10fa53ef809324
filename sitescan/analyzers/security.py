# sitescan/analyzers/security.py

import re

from sitescan.analyzers.base import Analyzer, PageContext
from sitescan.analyzers.results import Issue, SecurityResult

CHECKS_PERFORMED = 7

COOKIE_WRITE_RE = re.compile(r"document\.cookie\s*=", re.I)


def _issue(severity: str, description: str) -> Issue:
    return Issue(severity=severity, category="Security", description=description)


def header_findings(headers: dict) -> list[Issue]:
    h = {k.lower(): v for k, v in (headers or {}).items()}
    csp = h.get("content-security-policy") or ""
    findings: list[Issue] = []

    if not h.get("strict-transport-security"):
        findings.append(_issue("high", "Missing HSTS header - site vulnerable to protocol downgrade attacks"))

    if not h.get("x-content-type-options"):
        findings.append(_issue("medium", "Missing X-Content-Type-Options header - vulnerable to MIME sniffing"))

    if not h.get("x-frame-options") and "frame-ancestors" not in csp.lower():
        findings.append(_issue("high", "Missing X-Frame-Options/CSP frame-ancestors - vulnerable to clickjacking attacks"))

    if not csp:
        findings.append(_issue("medium", "No Content-Security-Policy - vulnerable to XSS attacks"))

    if not h.get("x-xss-protection"):
        findings.append(_issue("low", "Missing X-XSS-Protection header"))

    return findings


def script_findings(html: str) -> list[Issue]:
    if COOKIE_WRITE_RE.search(html or ""):
        return [_issue("high", "JavaScript cookie manipulation detected - potential XSS vector")]
    return []


class SecurityAnalyzer(Analyzer):
    name = "security"
    label = "Security"
    result_type = SecurityResult

    def analyze(self, ctx: PageContext) -> SecurityResult:
        page = ctx.require_page()
        issues = header_findings(page.headers) + script_findings(page.body)
        return SecurityResult(
            issues=issues,
            checks_performed=CHECKS_PERFORMED,
            checks_passed=CHECKS_PERFORMED - len(issues),
            https_enabled=ctx.url.lower().startswith("https"),
        )
