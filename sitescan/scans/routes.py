# sitescan/scans/routes.py

import logging
from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from sitescan.core.dates import iso
from sitescan.core.errors import PersistenceFailure, ScanAlreadyExists
from sitescan.core.ratelimit import intake_limit, limiter
from sitescan.scans.models import FAILED
from sitescan.scans.orchestrator import ScanOrchestrator, build_orchestrator
from sitescan.scans.repository import ScanRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scans", tags=["scans"])

_orchestrator: Optional[ScanOrchestrator] = None


def get_orchestrator() -> ScanOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator


def get_repository(orchestrator: ScanOrchestrator = Depends(get_orchestrator)) -> ScanRepository:
    return orchestrator.repo


class ScanIn(BaseModel):
    target_url: str = Field(..., min_length=1, max_length=2048)
    scan_id: Optional[str] = Field(default=None, max_length=64)


def normalize_url(raw: str) -> str:
    raw = (raw or "").strip()
    if not raw:
        raise ValueError("Empty URL")
    if "://" in raw:
        scheme = raw.split("://", 1)[0].lower()
        if scheme not in ("http", "https"):
            raise ValueError("Only http and https URLs can be scanned")
    else:
        raw = "https://" + raw
    p = urlparse(raw)
    if not p.hostname:
        raise ValueError("Invalid URL")
    return raw


def _scan_payload(s: dict) -> dict:
    failed = s["status"] == FAILED
    return {
        "id": s["id"],
        "status": s["status"],
        "target_url": s["target_url"],
        "overall_score": s["overall_score"],
        "results": {
            "security": s["security_results"],
            "performance": s["performance_results"],
            "accessibility": s["accessibility_results"],
            "api": s["api_results"],
            "tech_stack": s["tech_stack"],
            "interactive": s["interactive_results"],
        },
        "top_issues": s["top_issues"] or [],
        "ai_summary": s["ai_summary"],
        "ai_recommendations": s["ai_recommendations"] or [],
        "technologies": s["technologies"] or [],
        "exposed_endpoints": s["exposed_endpoints"] or [],
        "og_image": s["og_image"],
        "report": {
            "available": bool(s["report_size"]),
            "size": s["report_size"],
            "pages": s["report_pages"],
        },
        # internal error text stays in the database
        "error": "Scan failed" if failed else None,
        "created_at": iso(s["created_at"]),
        "started_at": iso(s["started_at"]),
        "finished_at": iso(s["finished_at"]),
    }


@router.post("", status_code=202)
@limiter.limit(intake_limit)
def submit_scan(
    request: Request,  # required by SlowAPI
    body: ScanIn,
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
):
    try:
        url = normalize_url(body.target_url)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        return orchestrator.submit(url, scan_id=body.scan_id)
    except ScanAlreadyExists:
        raise HTTPException(status_code=409, detail="A scan with this id already exists")
    except PersistenceFailure:
        logger.exception("Could not accept scan for %s", url)
        raise HTTPException(status_code=503, detail="Scan could not be accepted, try again later")


@router.get("/{scan_id}")
def get_scan(scan_id: str, repo: ScanRepository = Depends(get_repository)):
    s = repo.read(scan_id)
    if not s:
        raise HTTPException(status_code=404, detail="Scan not found")
    return _scan_payload(s)


@router.get("/{scan_id}/report")
def download_report(scan_id: str, repo: ScanRepository = Depends(get_repository)):
    s = repo.read(scan_id)
    if not s:
        raise HTTPException(status_code=404, detail="Scan not found")

    pdf = repo.read_report(scan_id) if s["report_size"] else None
    if not pdf:
        raise HTTPException(status_code=404, detail="Report not available")

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="scan-{scan_id}.pdf"'},
    )
