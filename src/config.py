# src/config.py
import logging
import math
import os
import uuid
from dataclasses import dataclass
from typing import Optional

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def parse_number(raw_value, fallback, minimum=None):
    if raw_value is None or raw_value == "":
        return fallback
    try:
        value = int(raw_value)
    except ValueError:
        return fallback
    if minimum is not None and value < minimum:
        return minimum
    return value


def parse_float(raw_value, fallback, minimum=None):
    if raw_value is None or raw_value == "":
        return fallback
    try:
        value = float(raw_value)
    except ValueError:
        return fallback
    if not math.isfinite(value):
        return fallback
    if minimum is not None and value < minimum:
        return minimum
    return value


@dataclass
class Settings:
    database_url: str
    redis_url: str
    queue_name: str
    sonar_api_url: str
    sonar_sandbox_url: str
    sonar_public_url: str
    sonar_token: str
    sonar_request_timeout_seconds: float
    scanner_image: str
    scanner_platform: Optional[str]
    scanner_cpus: float
    scanner_memory: str
    scan_timeout_seconds: int
    poll_interval_seconds: float
    poll_max_attempts: int
    issues_page_size: int
    dequeue_timeout_seconds: int
    worker_id: str
    worker_max_jobs: Optional[int]
    log_level: str


def build_settings(env=None) -> Settings:
    env = os.environ if env is None else env

    log_level = (env.get("LOG_LEVEL") or "INFO").upper()
    if log_level not in VALID_LOG_LEVELS:
        log_level = "INFO"

    sonar_api_url = env.get("SONAR_API_URL") or "http://localhost:9000"

    return Settings(
        database_url=env.get("DATABASE_URL") or "sqlite:///./scans.db",
        redis_url=env.get("REDIS_URL") or "redis://localhost:6379/0",
        queue_name=env.get("SCAN_QUEUE_NAME") or "scan-queue",
        sonar_api_url=sonar_api_url,
        sonar_sandbox_url=env.get("SONAR_HOST") or "http://host.docker.internal:9000",
        sonar_public_url=env.get("SONAR_PUBLIC_URL") or sonar_api_url,
        sonar_token=env.get("SONAR_TOKEN") or "",
        sonar_request_timeout_seconds=parse_float(env.get("SONAR_REQUEST_TIMEOUT_SECONDS"), 10.0, 1.0),
        scanner_image=env.get("SCANNER_IMAGE") or "secure-scanner",
        scanner_platform=env.get("SCANNER_PLATFORM") or None,
        scanner_cpus=parse_float(env.get("SCANNER_CPUS"), 1.0, 0.1),
        scanner_memory=env.get("SCANNER_MEMORY") or "1g",
        scan_timeout_seconds=parse_number(env.get("SCAN_TIMEOUT_SECONDS"), 900, 30),
        poll_interval_seconds=parse_float(env.get("POLL_INTERVAL_SECONDS"), 2.0, 0.0),
        poll_max_attempts=parse_number(env.get("POLL_MAX_ATTEMPTS"), 10, 1),
        issues_page_size=min(parse_number(env.get("ISSUES_PAGE_SIZE"), 100, 1), 500),
        dequeue_timeout_seconds=parse_number(env.get("DEQUEUE_TIMEOUT_SECONDS"), 5, 1),
        worker_id=env.get("WORKER_ID") or f"worker-{uuid.uuid4()}",
        worker_max_jobs=parse_number(env.get("WORKER_MAX_JOBS"), None, 1),
        log_level=log_level,
    )


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )
