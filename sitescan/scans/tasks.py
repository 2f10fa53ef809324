from sitescan.celery_app import celery
from sitescan.scans.orchestrator import build_orchestrator


@celery.task(name="process_scan_task")
def process_scan_task(scan_id: str):
    status = build_orchestrator().process(scan_id)
    return {"ok": status is not None, "scan_id": scan_id, "status": status}
