import logging

from sitescan.core import config

logger = logging.getLogger(__name__)


def schedule_scan(scan_id: str):
    """
    worker: nothing to do, the polling loop in worker.py picks pending scans up
    celery: enqueue process_scan_task
    """
    if config.SCAN_DISPATCH == "celery":
        # local import: tasks -> orchestrator -> dispatch
        from sitescan.scans.tasks import process_scan_task

        process_scan_task.delay(scan_id)
        logger.info("Scan %s queued on celery", scan_id)
        return

    logger.debug("Scan %s left for the worker loop", scan_id)
