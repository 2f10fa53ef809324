# sitescan/services/narrative.py

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field

import httpx

from sitescan.core import config
from sitescan.core.errors import FetchError
from sitescan.ssrf.http import read_bounded

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.I)


@dataclass(frozen=True)
class Narrative:
    summary: str | None = None
    recommendations: list[str] = field(default_factory=list)

    @property
    def present(self) -> bool:
        return bool(self.summary or self.recommendations)


NO_ANALYSIS = Narrative()


def build_prompt(url: str, overall_score: int, results: dict, top_issues: list) -> str:
    security = results.get("security")
    accessibility = results.get("accessibility")
    performance = results.get("performance")

    lines = "\n".join(f"- [{i.severity}] {i.category}: {i.description}" for i in top_issues)
    return f"""Analyze this website scan for {url}:

Overall Score: {overall_score}/100

Security Issues: {len(security.issues) if security else 0}
Accessibility Issues: {accessibility.total_issues if accessibility else 0}
Performance Score: {performance.score if performance else 0}/100

Top Issues:
{lines}

You are a web security and performance expert. Provide concise, actionable technical analysis.

Provide:
1. A brief 2-3 sentence technical summary
2. Top 3-5 actionable recommendations

Format as JSON: {{"summary": "...", "recommendations": ["...", "..."]}}"""


def parse_completion(content: str) -> Narrative:
    """
    Expected: {"summary": str, "recommendations": [str]}, possibly fenced.
    Anything unparseable becomes the summary itself.
    """
    if not isinstance(content, str):
        return NO_ANALYSIS
    text = content.strip()
    if not text:
        return NO_ANALYSIS

    try:
        parsed = json.loads(FENCE_RE.sub("", text))
    except ValueError:
        logger.info("Completion is not JSON, using raw text as summary")
        return Narrative(summary=text, recommendations=[])

    if not isinstance(parsed, dict):
        return Narrative(summary=text, recommendations=[])

    summary = parsed.get("summary")
    if summary is not None and not isinstance(summary, str):
        logger.info("Completion summary is not text, using raw text as summary")
        return Narrative(summary=text, recommendations=[])

    recs = parsed.get("recommendations") or []
    if not isinstance(recs, list):
        recs = [recs]
    return Narrative(
        summary=summary or None,
        recommendations=[r for r in recs if isinstance(r, str) and r.strip()],
    )


class NarrativeService:
    """Keyed text-completion client. Any absence or failure means "no analysis", never an error."""

    def __init__(
        self,
        api_key: str | None = config.AI_API_KEY,
        *,
        base_url: str = config.AI_BASE_URL,
        model: str = config.AI_MODEL,
        timeout: float = config.AI_TIMEOUT_SEC,
        max_bytes: int = config.SERVICE_MAX_BYTES,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def analyze(self, url: str, overall_score: int, results: dict, top_issues: list) -> Narrative:
        if not self.enabled:
            logger.info("Completion API key not configured, skipping narrative analysis")
            return NO_ANALYSIS

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": build_prompt(url, overall_score, results, top_issues)}],
            "temperature": 0.7,
            "max_tokens": 500,
        }
        started = time.perf_counter()
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                with client.stream(
                    "POST",
                    self.base_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                ) as resp:
                    raw = read_bounded(
                        resp, "completion", deadline=started + self.timeout, max_bytes=self.max_bytes
                    )
        except (httpx.HTTPError, FetchError) as e:
            logger.warning("Narrative analysis request failed: %s", e)
            return NO_ANALYSIS

        if resp.status_code != 200:
            logger.warning("Narrative analysis HTTP %s: %s", resp.status_code, raw[:200].decode("utf-8", "replace"))
            return NO_ANALYSIS

        try:
            content = json.loads(raw)["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning("Narrative analysis returned no content")
            return NO_ANALYSIS

        if not isinstance(content, str):
            logger.warning("Narrative analysis content is not text")
            return NO_ANALYSIS

        return parse_completion(content)
