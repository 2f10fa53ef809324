from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from sitescan.analyzers.base import Analyzer, PageContext
from sitescan.analyzers.results import InteractiveResult
from sitescan.core.errors import AnalyzerFailure

logger = logging.getLogger(__name__)

MAX_PRIMARY_ACTIONS = 5

BUTTON_RE = re.compile(r"<button[^>]*>([\s\S]*?)</button>", re.I)
LINK_RE = re.compile(r"<a[^>]*href=[\"']([^\"']*)[\"'][^>]*>", re.I)
FORM_RE = re.compile(r"<form[^>]*>", re.I)
TAG_RE = re.compile(r"<[^>]*>")
SPACE_RE = re.compile(r"\s+")


def _label(text: str) -> str:
    return SPACE_RE.sub(" ", text or "").strip()


class DomElementScanner:
    """Structural count via BeautifulSoup."""

    def __init__(self, features: str = "html.parser"):
        self.features = features

    def scan(self, html: str) -> InteractiveResult:
        soup = BeautifulSoup(html, self.features)
        buttons = soup.find_all("button")
        actions = [a for a in (_label(b.get_text(" ")) for b in buttons) if a]
        return InteractiveResult(
            buttons_found=len(buttons),
            links_found=len(soup.select("a[href]")),
            forms_found=len(soup.find_all("form")),
            primary_actions=actions[:MAX_PRIMARY_ACTIONS],
        )


class RegexElementScanner:
    """Same result shape from plain pattern matching."""

    def scan(self, html: str) -> InteractiveResult:
        buttons = BUTTON_RE.findall(html)
        actions = [a for a in (_label(TAG_RE.sub("", inner)) for inner in buttons) if a]
        return InteractiveResult(
            buttons_found=len(buttons),
            links_found=len(LINK_RE.findall(html)),
            forms_found=len(FORM_RE.findall(html)),
            primary_actions=actions[:MAX_PRIMARY_ACTIONS],
        )


class InteractiveElementsAnalyzer(Analyzer):
    name = "interactive"
    label = "E2E"
    result_type = InteractiveResult

    def __init__(self, scanners=None):
        # first scanner that succeeds wins
        self.scanners = scanners or (DomElementScanner(), RegexElementScanner())

    def analyze(self, ctx: PageContext) -> InteractiveResult:
        page = ctx.require_page()
        if not page.ok:
            raise AnalyzerFailure(f"HTTP {page.status_code}")

        html = page.body or ""
        last_error: Exception | None = None
        for scanner in self.scanners:
            try:
                return scanner.scan(html)
            except Exception as e:
                logger.warning("%s unavailable (%s), trying next scanner", type(scanner).__name__, e)
                last_error = e
        raise AnalyzerFailure(f"no element scanner succeeded: {last_error}")
