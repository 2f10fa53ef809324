from __future__ import annotations

import re

from sitescan.analyzers.base import Analyzer, PageContext
from sitescan.analyzers.results import ApiSurfaceResult, Endpoint

MAX_ENDPOINTS = 10

INLINE_SCRIPT_RE = re.compile(r"<script\b([^>]*)>(.*?)</script\s*>", re.I | re.S)
SRC_ATTR_RE = re.compile(r"\bsrc\s*=", re.I)

# (pattern, method or None when the verb is captured as group "verb")
CALL_PATTERNS = (
    (re.compile(r"\bfetch\(\s*[\"'`](?P<path>/[^\"'`]*)[\"'`](?P<rest>[^)]{0,200})", re.I), "GET"),
    (re.compile(r"\baxios\.(?P<verb>get|post|put|patch|delete|head)\(\s*[\"'`](?P<path>/[^\"'`]*)[\"'`]", re.I), None),
    (re.compile(r"\$\.ajax\(\s*[\"'`](?P<path>/[^\"'`]*)[\"'`](?P<rest>[^)]{0,200})", re.I), "GET"),
    (re.compile(r"\$\.(?P<verb>get|post)\(\s*[\"'`](?P<path>/[^\"'`]*)[\"'`]", re.I), None),
    (re.compile(r"\.open\(\s*[\"'](?P<verb>[A-Za-z]+)[\"']\s*,\s*[\"'`](?P<path>/[^\"'`]*)[\"'`]"), None),
)

METHOD_OPTION_RE = re.compile(r"\b(?:method|type)\s*:\s*[\"'](?P<verb>[A-Za-z]+)[\"']")


def inline_scripts(html: str) -> list[str]:
    return [body for attrs, body in INLINE_SCRIPT_RE.findall(html or "") if not SRC_ATTR_RE.search(attrs)]


def find_endpoints(script: str) -> list[Endpoint]:
    found: list[tuple[int, Endpoint]] = []
    for pattern, default_method in CALL_PATTERNS:
        for m in pattern.finditer(script):
            groups = m.groupdict()
            method = groups.get("verb") or default_method
            option = METHOD_OPTION_RE.search(groups.get("rest") or "")
            if option:
                method = option.group("verb")
            path = groups["path"]
            # root-relative only: "//cdn..." is protocol-relative, not ours
            if path.startswith("//"):
                continue
            found.append((m.start(), Endpoint(method=method.upper(), path=path)))
    found.sort(key=lambda t: t[0])
    return [e for _, e in found]


class ApiSurfaceAnalyzer(Analyzer):
    name = "api"
    label = "API"
    result_type = ApiSurfaceResult

    def analyze(self, ctx: PageContext) -> ApiSurfaceResult:
        html = ctx.require_page().body or ""

        unique: list[Endpoint] = []
        seen: set[tuple[str, str]] = set()
        for script in inline_scripts(html):
            for ep in find_endpoints(script):
                key = (ep.method, ep.path)
                if key not in seen:
                    seen.add(key)
                    unique.append(ep)

        return ApiSurfaceResult(endpoints_detected=len(unique), endpoints=unique[:MAX_ENDPOINTS])
