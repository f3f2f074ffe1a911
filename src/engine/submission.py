# src/engine/submission.py
from engine.models import Scan
from engine.queue import JobQueue, ScanJobMessage


def submit_scan(store, job_queue: JobQueue, repository_url: str) -> Scan:
    """Persist a PENDING record, then enqueue exactly one job for it."""
    scan = store.create(repository_url)
    job_queue.enqueue(ScanJobMessage(repository_url=repository_url, scan_id=scan.id))
    return scan
