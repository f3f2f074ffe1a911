# src/engine/poller.py
"""
IngestionPoller: waits for the analyzer to finish processing a freshly uploaded
report in its own background task queue.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

import requests

from engine.errors import IngestionTimeout

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_INTERVAL_SECONDS = 2.0


def fixed_delay(seconds: float) -> Callable[[int], float]:
    return lambda attempt: seconds


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay: Callable[[int], float] = field(default=fixed_delay(DEFAULT_INTERVAL_SECONDS))

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


def ingestion_complete(payload) -> bool:
    if not isinstance(payload, dict):
        return False
    pending = payload.get("queue")
    if isinstance(pending, list) and not pending:
        return True
    current = payload.get("current")
    return isinstance(current, dict) and current.get("status") == "SUCCESS"


class IngestionPoller:
    def __init__(self, sonar_client, policy: RetryPolicy = None, sleep=time.sleep):
        self.sonar_client = sonar_client
        self.policy = policy or RetryPolicy()
        self.sleep = sleep

    def wait(self, project_key: str) -> int:
        """Return the attempt number that confirmed ingestion."""
        logger.info(f"[project_key={project_key}] Waiting for analyzer ingestion")
        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                payload = self.sonar_client.component_tasks(project_key)
                if ingestion_complete(payload):
                    logger.info(f"[project_key={project_key}] Ingestion confirmed on attempt {attempt}")
                    return attempt
            except (requests.RequestException, ValueError) as e:
                logger.debug(f"[project_key={project_key}] Poll attempt {attempt} failed: {e}")
            if attempt < self.policy.max_attempts:
                self.sleep(self.policy.delay(attempt))
        raise IngestionTimeout(project_key, self.policy.max_attempts)
