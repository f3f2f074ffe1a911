# src/engine/scan_worker.py
"""
ScanWorker: consumes scan jobs one at a time and drives each through
sandboxed analysis, ingestion polling, result fetching and scoring.

Every job that gets past the PENDING -> PROCESSING claim ends in exactly one
terminal write: COMPLETED with score and report, or FAILED with neither.
Client handles are injected and live as long as the worker process.
"""

import logging
import time
from typing import Optional

from engine.errors import RecordNotFound, ScanAlreadyClaimed, ScanPipelineError
from engine.models import ScanStatus, utcnow
from engine.queue import JobQueue, ScanJobMessage
from engine.results import ScanResults
from engine.scoring import calculate_score
from utils.scan_utils import calculate_severity_counts, dashboard_url_for, project_key_for

logger = logging.getLogger(__name__)

ERROR_BACKOFF_SECONDS = 5.0


def build_report(results: ScanResults, completed_at=None) -> dict:
    completed_at = completed_at or utcnow()
    return {
        "metrics": dict(results.metrics),
        "findings": list(results.findings),
        "severity_counts": calculate_severity_counts(results.findings),
        "completed_at": completed_at.isoformat(),
    }


class ScanWorker:
    def __init__(
        self,
        store,
        job_queue: JobQueue,
        launcher,
        poller,
        fetcher,
        dashboard_public_url: Optional[str] = None,
        dequeue_timeout: float = 5.0,
        sleep=time.sleep,
    ):
        self.store = store
        self.job_queue = job_queue
        self.launcher = launcher
        self.poller = poller
        self.fetcher = fetcher
        self.dashboard_public_url = dashboard_public_url
        self.dequeue_timeout = dequeue_timeout
        self.sleep = sleep
        self._stopping = False

    def stop(self):
        self._stopping = True

    def process(self, message: ScanJobMessage) -> Optional[str]:
        """
        Run one job. Returns the terminal status written, or None when the
        message was dropped without touching any record.
        """
        scan_id = message.scan_id
        project_key = project_key_for(scan_id)
        try:
            self.store.mark_processing(scan_id)
        except RecordNotFound as e:
            logger.error(f"[scan_id={scan_id}] Dropping job: {e}")
            return None
        except ScanAlreadyClaimed as e:
            logger.warning(f"[scan_id={scan_id}] Skipping duplicate delivery: {e}")
            return None

        logger.info(f"[scan_id={scan_id}] Processing {message.repository_url} as {project_key}")
        try:
            self.launcher.run_scan(message.repository_url, project_key)
            self.poller.wait(project_key)
            results = self.fetcher.fetch(project_key)
            score = calculate_score(results.metrics.get("security_rating"))
            report = build_report(results)
            result_url = dashboard_url_for(self.dashboard_public_url, project_key) if self.dashboard_public_url else None
            written = self.store.mark_completed(scan_id, score, report, result_url)
        except ScanPipelineError as e:
            self._fail(scan_id, e)
            return ScanStatus.FAILED.value
        except Exception as e:
            logger.exception(f"[scan_id={scan_id}] Unexpected error: {e}")
            self._fail(scan_id, e)
            return ScanStatus.FAILED.value

        if not written:
            logger.error(f"[scan_id={scan_id}] Record left PROCESSING before completion, result discarded")
            return None
        logger.info(f"[scan_id={scan_id}] Scan completed. score={score}/100 findings={len(report['findings'])}")
        return ScanStatus.COMPLETED.value

    def _fail(self, scan_id: str, error: Exception):
        logger.error(f"[scan_id={scan_id}] Scan failed: {type(error).__name__}: {error}")
        if not self.store.mark_failed(scan_id, f"{type(error).__name__}: {error}"):
            logger.error(f"[scan_id={scan_id}] Could not mark scan FAILED, record is no longer PROCESSING")

    def _ack(self, message: ScanJobMessage):
        try:
            self.job_queue.ack(message)
        except Exception as e:
            logger.exception(f"[scan_id={message.scan_id}] Ack failed, message stays in flight: {e}")

    def run(self, max_jobs: Optional[int] = None, stop_when_idle: bool = False) -> int:
        """
        Consume jobs until stopped. Returns the number of messages handled.

        A message is acknowledged only once `process` returns. If it raises, no
        terminal write happened, so the message stays in flight for
        reconciliation.
        """
        handled = 0
        while not self._stopping:
            if max_jobs is not None and handled >= max_jobs:
                break
            try:
                message = self.job_queue.dequeue(self.dequeue_timeout)
            except Exception as e:
                logger.exception(f"Dequeue failed: {e}")
                self.sleep(ERROR_BACKOFF_SECONDS)
                continue
            if message is None:
                if stop_when_idle:
                    break
                continue
            try:
                self.process(message)
            except Exception as e:
                logger.exception(f"[scan_id={message.scan_id}] Job not settled, leaving message in flight: {e}")
            else:
                self._ack(message)
            handled += 1
        return handled
