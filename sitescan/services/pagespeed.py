# sitescan/services/pagespeed.py

from __future__ import annotations

import json
import logging
import time

import httpx

from sitescan.core import config
from sitescan.core.errors import FetchError
from sitescan.ssrf.http import read_bounded

PAGESPEED_API = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
CATEGORIES = ("performance", "accessibility", "best-practices", "seo")

logger = logging.getLogger(__name__)


class PageSpeedError(Exception):
    pass


def clamp_score(v) -> int:
    """PSI returns category scores in [0,1]. Convert to 0..100 and clamp."""
    try:
        if v is None:
            return 0
        v = float(v)
    except (TypeError, ValueError):
        return 0
    if v <= 1.0:
        v *= 100.0
    return int(round(max(0.0, min(100.0, v))))


def fetch_lighthouse(
    url: str,
    api_key: str,
    *,
    strategy: str = "mobile",
    timeout: float = config.PAGESPEED_TIMEOUT_SEC,
    transport: httpx.BaseTransport | None = None,
) -> dict:
    """
    Single PageSpeed Insights call. Returns the ``lighthouseResult`` object or
    raises PageSpeedError; the caller owns the fallback.
    """
    params = [("url", url), ("strategy", strategy), ("key", api_key)]
    params += [("category", c) for c in CATEGORIES]

    started = time.perf_counter()
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            with client.stream("GET", PAGESPEED_API, params=params) as resp:
                if resp.status_code != 200:
                    # never echo the request URL, it carries the key
                    raise PageSpeedError(f"PageSpeed API error: HTTP {resp.status_code}")
                content = read_bounded(
                    resp, "PageSpeed", deadline=started + timeout, max_bytes=config.SERVICE_MAX_BYTES
                )
    except httpx.TimeoutException as e:
        raise PageSpeedError(f"PageSpeed timed out after {timeout:g}s") from e
    except httpx.HTTPError as e:
        raise PageSpeedError(f"PageSpeed request failed: {type(e).__name__}") from e
    except FetchError as e:
        raise PageSpeedError(f"PageSpeed response rejected: {e}") from e

    try:
        data = json.loads(content)
    except ValueError as e:
        raise PageSpeedError("PageSpeed returned a non-JSON body") from e

    lighthouse = data.get("lighthouseResult") if isinstance(data, dict) else None
    if not isinstance(lighthouse, dict) or not isinstance(lighthouse.get("categories"), dict):
        raise PageSpeedError("PageSpeed response has no lighthouseResult")

    logger.info("[PSI] lighthouse data received for %s", url)
    return lighthouse
