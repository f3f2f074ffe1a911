# src/worker.py
import logging
import signal

import docker
import redis

from config import build_settings, configure_logging
from engine.db import create_session_factory
from engine.poller import IngestionPoller, RetryPolicy, fixed_delay
from engine.queue import RedisJobQueue
from engine.results import ResultFetcher
from engine.scan_worker import ScanWorker
from engine.store import ScanStore
from tools.docker_launcher import DockerScanLauncher
from tools.sonar_client import SonarClient

logger = logging.getLogger("worker")


def build_worker(settings, redis_client=None, docker_client=None, sonar_client=None) -> ScanWorker:
    redis_client = redis_client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
    docker_client = docker_client or docker.from_env()
    sonar_client = sonar_client or SonarClient(
        settings.sonar_api_url,
        settings.sonar_token,
        timeout=settings.sonar_request_timeout_seconds,
    )
    launcher = DockerScanLauncher(
        docker_client,
        image=settings.scanner_image,
        sonar_host_url=settings.sonar_sandbox_url,
        sonar_token=settings.sonar_token,
        cpus=settings.scanner_cpus,
        memory=settings.scanner_memory,
        timeout_seconds=settings.scan_timeout_seconds,
        platform=settings.scanner_platform,
    )
    policy = RetryPolicy(
        max_attempts=settings.poll_max_attempts,
        delay=fixed_delay(settings.poll_interval_seconds),
    )
    return ScanWorker(
        store=ScanStore(create_session_factory(settings.database_url)),
        job_queue=RedisJobQueue(redis_client, settings.queue_name),
        launcher=launcher,
        poller=IngestionPoller(sonar_client, policy),
        fetcher=ResultFetcher(sonar_client, page_size=settings.issues_page_size),
        dashboard_public_url=settings.sonar_public_url,
        dequeue_timeout=settings.dequeue_timeout_seconds,
    )


def main():
    settings = build_settings()
    configure_logging(settings)
    sonar_client = SonarClient(
        settings.sonar_api_url,
        settings.sonar_token,
        timeout=settings.sonar_request_timeout_seconds,
    )
    worker = build_worker(settings, sonar_client=sonar_client)

    def handle_signal(_signum, _frame):
        logger.info("Shutdown requested, finishing current job")
        worker.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    logger.info(
        f"Worker {settings.worker_id} listening on {settings.queue_name} "
        f"image={settings.scanner_image} timeout={settings.scan_timeout_seconds}s "
        f"poll={settings.poll_max_attempts}x{settings.poll_interval_seconds}s"
    )
    try:
        handled = worker.run(max_jobs=settings.worker_max_jobs)
    finally:
        sonar_client.close()
    logger.info(f"Worker {settings.worker_id} stopped after {handled} jobs")


if __name__ == "__main__":
    main()
