# sitescan/scans/worker.py

import asyncio
import logging

from sitescan.core.errors import PersistenceFailure
from sitescan.scans.orchestrator import ScanOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)


def _run_one(orchestrator: ScanOrchestrator) -> bool:
    """
    Picks the oldest pending scan and processes it.
    returns: False when the queue was empty
    """
    scan_id = orchestrator.repo.next_pending()
    if not scan_id:
        return False
    # a concurrent worker may claim it first; process() then returns None
    orchestrator.process(scan_id)
    return True


async def scans_worker_loop(poll_seconds: float = 1.0, orchestrator: ScanOrchestrator | None = None):
    """
    Async loop + thread offloading
    """
    orchestrator = orchestrator or build_orchestrator()
    logger.info("Scan worker loop started (poll=%ss)", poll_seconds)
    while True:
        try:
            worked = await asyncio.to_thread(_run_one, orchestrator)
        except PersistenceFailure:
            logger.exception("Scan worker could not poll the database")
            worked = False

        if not worked:
            await asyncio.sleep(poll_seconds)
