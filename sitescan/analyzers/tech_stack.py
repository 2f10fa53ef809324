"""
Tech stack fingerprinting: a fixed signature table matched against markup,
script/link references and response headers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from sitescan.analyzers.base import Analyzer, PageContext
from sitescan.analyzers.results import TechStackResult, Technology


@dataclass(frozen=True)
class Signature:
    name: str
    category: str
    confidence: str
    patterns: tuple = ()
    version: re.Pattern | None = None
    # suppressed when any of these already matched (Next.js implies React, ...)
    unless: tuple = field(default=())


def _re(p: str, flags=re.I) -> re.Pattern:
    return re.compile(p, flags)


SIGNATURES: tuple[Signature, ...] = (
    Signature("Next.js", "Framework", "high", (_re(r"__NEXT_DATA__", 0), _re(r"_next/static", 0))),
    Signature("React", "Library", "medium", (_re(r"react"), _re(r"react[.-]?dom")), unless=("Next.js",)),
    Signature("Nuxt.js", "Framework", "high", (_re(r"__nuxt", 0), _re(r"_nuxt/", 0))),
    Signature("Vue.js", "Framework", "medium", (_re(r"vue"), _re(r"vue[.-]?js")), unless=("Nuxt.js",)),
    Signature(
        "Angular",
        "Framework",
        "high",
        (_re(r"ng-version"), _re(r"<[^>]*\sng-[a-z]+[^>]*>")),
        version=_re(r"ng-version=\"([^\"]+)\""),
    ),
    Signature(
        "WordPress",
        "CMS",
        "high",
        (_re(r"wp-content", 0), _re(r"wp-includes", 0), _re(r"/wordpress/", 0)),
        version=_re(r"wp-content/themes/[^/]+/([0-9.]+)"),
    ),
    Signature("Drupal", "CMS", "high", (_re(r"Drupal", 0), _re(r"sites/(default|all)/modules"))),
    Signature("Shopify", "E-commerce", "high", (_re(r"cdn\.shopify\.com"), _re(r"Shopify\.theme", 0))),
    Signature("Svelte", "Framework", "medium", (_re(r"__svelte", 0), _re(r"<script[^>]*src=[\"'][^\"']*svelte[^\"']*[\"']"))),
    Signature("jQuery", "Library", "high", (_re(r"jquery"),), version=_re(r"jquery[.-]?(\d+\.\d+\.\d+)")),
    Signature(
        "Tailwind CSS",
        "CSS Framework",
        "medium",
        (_re(r"tailwind", 0), _re(r"class=[\"'][^\"']*\b(flex|grid|bg-|text-|p-|m-|w-|h-)[^\"']*[\"']", 0)),
    ),
    Signature(
        "Bootstrap",
        "CSS Framework",
        "low",
        (_re(r"class=[\"'][^\"']*\b(container|row|col-|btn|navbar)[^\"']*[\"']", 0),),
        unless=("Tailwind CSS",),
    ),
)


def match_markup(html: str, signatures=SIGNATURES) -> list[Technology]:
    found: list[Technology] = []
    names: set[str] = set()
    for sig in signatures:
        if any(u in names for u in sig.unless):
            continue
        if not any(p.search(html) for p in sig.patterns):
            continue
        version = None
        if sig.version is not None:
            m = sig.version.search(html)
            version = m.group(1) if m else None
        found.append(Technology(name=sig.name, category=sig.category, confidence=sig.confidence, version=version))
        names.add(sig.name)
    return found


def match_headers(headers: dict) -> list[Technology]:
    h = {k.lower(): v for k, v in (headers or {}).items()}
    found: list[Technology] = []

    powered_by = (h.get("x-powered-by") or "").strip()
    if powered_by:
        found.append(Technology(name=powered_by, category="Server", confidence="high"))

    server = (h.get("server") or "").strip()
    if server:
        name, _, version = server.partition("/")
        found.append(
            Technology(
                name=name.strip(),
                category="Web Server",
                confidence="high",
                version=version.split(" ")[0] or None,
            )
        )

    aspnet = h.get("x-aspnet-version") or h.get("x-aspnetmvc-version")
    if aspnet:
        found.append(Technology(name="ASP.NET", category="Framework", confidence="high", version=aspnet))

    generator = (h.get("x-generator") or "").strip()
    if generator:
        found.append(Technology(name=generator, category="CMS", confidence="medium"))

    return found


class TechStackAnalyzer(Analyzer):
    name = "tech_stack"
    label = "Tech detection"
    result_type = TechStackResult

    def analyze(self, ctx: PageContext) -> TechStackResult:
        page = ctx.require_page()
        detected = match_markup(page.body or "") + match_headers(page.headers)
        return TechStackResult(detected=detected, total_detected=len(detected))
