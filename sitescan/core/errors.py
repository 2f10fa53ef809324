from __future__ import annotations


class ScanError(Exception):
    """Base class for everything the scan pipeline raises on purpose."""


class FetchError(ScanError):
    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class FetchTimeout(FetchError):
    pass


class FetchNetworkError(FetchError):
    pass


class RateLimitExceeded(ScanError):
    def __init__(self, domain: str, count: int, retry_after: int):
        super().__init__(f"Rate limit exceeded for {domain} ({count} scans in window)")
        self.domain = domain
        self.count = count
        self.retry_after = retry_after


class AnalyzerFailure(ScanError):
    pass


class ReportGenerationFailure(ScanError):
    pass


class PersistenceFailure(ScanError):
    pass


class InvalidTransition(ScanError):
    def __init__(self, scan_id: str, target: str):
        super().__init__(f"Scan {scan_id} cannot move to {target}")
        self.scan_id = scan_id
        self.target = target


class ScanAlreadyExists(PersistenceFailure):
    def __init__(self, scan_id: str):
        super().__init__(f"Scan {scan_id} already exists")
        self.scan_id = scan_id
