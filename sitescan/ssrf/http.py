from __future__ import annotations

import time
from dataclasses import dataclass, field

import httpx

from sitescan.core import config
from sitescan.core.errors import FetchNetworkError, FetchTimeout
from sitescan.ssrf.guard import BlockedTarget, validate_url_target

MAX_REDIRECTS = 5


@dataclass(frozen=True)
class FetchResult:
    url: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)  # lower-cased names
    body: str = ""
    elapsed_ms: int = 0
    size_bytes: int = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


def _guard_request(request: httpx.Request):
    # runs for the first request and for every redirect hop
    validate_url_target(str(request.url))


def read_bounded(resp: httpx.Response, url: str, *, deadline: float, max_bytes: int) -> bytes:
    """
    Reads a streamed body against a wall-clock deadline (perf_counter) and a
    size cap. httpx timeouts only bound each read, so a slow trickle would
    otherwise never end.
    """
    if time.perf_counter() > deadline:
        raise FetchTimeout(url, "Deadline passed before the body was read")

    chunks: list[bytes] = []
    size = 0
    for chunk in resp.iter_bytes():
        size += len(chunk)
        if size > max_bytes:
            raise FetchNetworkError(url, f"Response body larger than {max_bytes} bytes")
        if time.perf_counter() > deadline:
            raise FetchTimeout(url, "Response body not received in time")
        chunks.append(chunk)
    return b"".join(chunks)


def decode_body(resp: httpx.Response, content: bytes) -> str:
    try:
        return content.decode(resp.encoding or "utf-8", errors="replace")
    except LookupError:
        return content.decode("utf-8", errors="replace")


def fetch(
    url: str,
    *,
    timeout: float = config.FETCH_TIMEOUT_SEC,
    max_bytes: int = config.FETCH_MAX_BYTES,
    guard: bool = config.SSRF_GUARD,
    transport: httpx.BaseTransport | None = None,
) -> FetchResult:
    """
    One GET, no retry, `timeout` seconds for the whole exchange. Raises
    FetchTimeout or FetchNetworkError; callers decide which analyzers that
    failure takes down.
    """
    hooks = {"request": [_guard_request]} if guard else {}
    headers = {
        "User-Agent": config.USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }

    started = time.perf_counter()
    try:
        with httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            event_hooks=hooks,
            transport=transport,
        ) as client:
            with client.stream("GET", url, headers=headers) as resp:
                content = read_bounded(resp, url, deadline=started + timeout, max_bytes=max_bytes)
                body = decode_body(resp, content)
    except httpx.TimeoutException as e:
        raise FetchTimeout(url, f"Request timed out after {timeout:g}s") from e
    except BlockedTarget as e:
        raise FetchNetworkError(url, str(e)) from e
    except httpx.HTTPError as e:
        raise FetchNetworkError(url, f"{type(e).__name__}: {e}") from e

    return FetchResult(
        url=str(resp.url),
        status_code=resp.status_code,
        headers={k.lower(): v for k, v in resp.headers.items()},
        body=body,
        elapsed_ms=int((time.perf_counter() - started) * 1000),
        size_bytes=len(content),
    )
