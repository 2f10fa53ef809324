from __future__ import annotations

import logging
from dataclasses import dataclass

from sitescan.analyzers.results import AnalyzerStatus
from sitescan.core.errors import AnalyzerFailure, FetchError
from sitescan.ssrf.http import FetchResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageContext:
    """What every analyzer gets: the target and the outcome of the single page fetch."""

    url: str
    page: FetchResult | None = None
    fetch_error: FetchError | None = None

    def require_page(self) -> FetchResult:
        if self.page is None:
            reason = str(self.fetch_error) if self.fetch_error else "page was not fetched"
            raise AnalyzerFailure(reason)
        return self.page


class Analyzer:
    """
    Common contract: run(ctx) -> typed result with a terminal status.

    Subclasses implement analyze(); run() is the failure boundary, so nothing
    an analyzer raises reaches the orchestrator.
    """

    name = "analyzer"
    label = "Analyzer"
    result_type = None

    def analyze(self, ctx: PageContext):
        raise NotImplementedError

    def run(self, ctx: PageContext):
        try:
            result = self.analyze(ctx)
        except Exception as e:
            logger.warning("%s analyzer failed for %s: %s", self.name, ctx.url, e)
            return self.result_type.failed(f"{self.label} scan failed: {e}")

        if result.status == AnalyzerStatus.PENDING:
            result = result.model_copy(update={"status": AnalyzerStatus.COMPLETED})
        return result
