import httpx
from conftest import TrickleStream, make_page

from sitescan.analyzers.base import PageContext
from sitescan.analyzers.performance import PerformanceAnalyzer, heuristic_score, lighthouse_to_result
from sitescan.analyzers.results import AnalyzerStatus

LIGHTHOUSE = {
    "lighthouseResult": {
        "categories": {
            "performance": {"score": 0.91},
            "accessibility": {"score": 0.85},
            "best-practices": {"score": 1},
            "seo": {"score": 0.7},
        },
        "audits": {
            "metrics": {
                "details": {
                    "items": [
                        {
                            "firstContentfulPaint": 1200.4,
                            "largestContentfulPaint": 2400,
                            "interactive": 3100,
                            "totalBlockingTime": 150,
                            "cumulativeLayoutShift": 0.0512,
                            "speedIndex": 2000,
                            "observedLoad": 2600,
                        }
                    ]
                }
            },
            "render-blocking-resources": {
                "title": "Eliminate render-blocking resources",
                "score": 0.4,
                "details": {"overallSavingsMs": 450},
            },
            "unused-css-rules": {"title": "Reduce unused CSS", "score": 1},
            "dom-size": {"title": "Avoid an excessive DOM size", "score": 0.5},
            "uses-text-compression": {"score": 1},
            "uses-long-cache-ttl": {"score": 0.9},
        },
    }
}


def _ctx(**page_kwargs):
    return PageContext(url="https://example.com", page=make_page(**page_kwargs))


def _transport(status=200, payload=LIGHTHOUSE, seen=None):
    def handler(request: httpx.Request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=payload)

    return httpx.MockTransport(handler)


class TestHeuristic:
    def test_no_key_uses_heuristic_without_vitals(self):
        result = PerformanceAnalyzer(None).run(_ctx())

        assert result.status == AnalyzerStatus.COMPLETED
        assert result.source == "basic-scan"
        assert result.core_web_vitals is None
        assert result.category_scores is None
        # gzip + cache-control + fast page
        assert result.score == 100
        assert result.compression_enabled and result.caching_enabled

    def test_deductions(self):
        assert heuristic_score(3500, 0, 0, 0, True, True) == 70
        assert heuristic_score(2000, 0, 0, 0, True, True) == 85
        assert heuristic_score(100, 21, 16, 6, True, True) == 75
        assert heuristic_score(100, 0, 0, 0, False, False) == 75

    def test_every_deduction_at_once(self):
        assert heuristic_score(9999, 99, 99, 99, False, False) == 20

    def test_counts_from_markup(self):
        html = "<img><img><script></script><link rel='stylesheet' href='a.css'>"
        result = PerformanceAnalyzer(None).run(_ctx(body=html, headers={}))

        assert result.image_count == 2
        assert result.scripts_count == 1
        assert result.stylesheets_count == 1
        assert result.score == 100 - 15 - 10


class TestPageSpeed:
    def test_maps_categories_and_vitals(self):
        seen = []
        analyzer = PerformanceAnalyzer("k3y", transport=_transport(seen=seen))
        result = analyzer.run(_ctx())

        assert result.source == "google-pagespeed"
        assert result.score == 91
        assert result.category_scores.best_practices == 100
        assert result.category_scores.seo == 70
        cwv = result.core_web_vitals
        assert (cwv.fcp, cwv.lcp, cwv.tti, cwv.tbt, cwv.speed_index) == (1200, 2400, 3100, 150, 2000)
        assert cwv.cls == 0.051
        assert result.compression_enabled is True
        assert result.caching_enabled is True
        assert [o.title for o in result.opportunities] == ["Eliminate render-blocking resources"]
        assert result.opportunities[0].savings_ms == 450
        assert [d.title for d in result.diagnostics] == ["Avoid an excessive DOM size"]
        assert seen[0].url.params["strategy"] == "mobile"
        assert seen[0].url.params.get_list("category") == ["performance", "accessibility", "best-practices", "seo"]

    def test_http_error_falls_back_to_heuristic(self):
        result = PerformanceAnalyzer("k3y", transport=_transport(status=500, payload={})).run(_ctx())

        assert result.status == AnalyzerStatus.COMPLETED
        assert result.source == "basic-scan"
        assert result.core_web_vitals is None

    def test_missing_lighthouse_falls_back(self):
        result = PerformanceAnalyzer("k3y", transport=_transport(payload={"error": "quota"})).run(_ctx())
        assert result.source == "basic-scan"

    def test_timeout_falls_back(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = PerformanceAnalyzer("k3y", transport=httpx.MockTransport(handler)).run(_ctx())
        assert result.source == "basic-scan"

    def test_trickling_pagespeed_response_falls_back(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, stream=TrickleStream(chunks=12, delay=0.05)))
        result = PerformanceAnalyzer("k3y", pagespeed_timeout=0.2, transport=transport).run(_ctx())

        assert result.status == AnalyzerStatus.COMPLETED
        assert result.source == "basic-scan"

    def test_non_object_payload_falls_back(self):
        result = PerformanceAnalyzer("k3y", transport=_transport(payload=["lighthouseResult"])).run(_ctx())
        assert result.source == "basic-scan"

    def test_pagespeed_does_not_need_the_page(self):
        ctx = PageContext(url="https://example.com")
        result = PerformanceAnalyzer("k3y", transport=_transport()).run(ctx)

        assert result.status == AnalyzerStatus.COMPLETED
        assert result.source == "google-pagespeed"

    def test_empty_metrics(self):
        result = lighthouse_to_result({"categories": {}, "audits": {}})
        assert result.score == 0
        assert result.core_web_vitals.fcp == 0
