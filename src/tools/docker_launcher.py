# src/tools/docker_launcher.py
import logging

from docker.errors import DockerException
import requests

from engine.errors import ExecutionFailed, ExecutionTimeout
from utils.scan_utils import sandbox_name_for
from .base import AnalysisLauncher

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 900
LOG_TAIL_LINES = 20

# The repository URL and project key arrive as environment variables so they
# are never parsed by the shell.
SCAN_SCRIPT = (
    'git clone --depth 1 -- "$SCAN_REPOSITORY_URL" code_source'
    ' && cd code_source'
    ' && sonar-scanner -Dsonar.projectKey="$SCAN_PROJECT_KEY" -Dsonar.sources=.'
)


class DockerScanLauncher(AnalysisLauncher):
    def __init__(
        self,
        docker_client,
        image: str,
        sonar_host_url: str,
        sonar_token: str,
        cpus: float = 1.0,
        memory: str = "1g",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        platform: str = None,
    ):
        self.docker_client = docker_client
        self.image = image
        self.sonar_host_url = sonar_host_url
        self.sonar_token = sonar_token
        self.cpus = cpus
        self.memory = memory
        self.timeout_seconds = timeout_seconds
        self.platform = platform

    def _run_options(self, repository_url: str, project_key: str) -> dict:
        options = {
            "command": ["/bin/sh", "-c", SCAN_SCRIPT],
            "name": sandbox_name_for(project_key),
            "detach": True,
            "nano_cpus": int(self.cpus * 1_000_000_000),
            "mem_limit": self.memory,
            "extra_hosts": {"host.docker.internal": "host-gateway"},
            "environment": {
                "SONAR_HOST_URL": self.sonar_host_url,
                "SONAR_TOKEN": self.sonar_token,
                "SCAN_REPOSITORY_URL": repository_url,
                "SCAN_PROJECT_KEY": project_key,
            },
        }
        if self.platform:
            options["platform"] = self.platform
        return options

    def run_scan(self, repository_url: str, project_key: str) -> int:
        options = self._run_options(repository_url, project_key)
        name = options["name"]
        logger.info(f"[project_key={project_key}] Starting sandbox {name} from {self.image}")
        try:
            container = self.docker_client.containers.run(self.image, **options)
        except DockerException as e:
            # a name conflict here means another delivery of the same job is running
            raise ExecutionFailed(project_key, detail=str(e)) from e

        try:
            try:
                result = container.wait(timeout=self.timeout_seconds)
            except (requests.exceptions.ReadTimeout, requests.exceptions.ConnectionError) as e:
                logger.warning(f"[project_key={project_key}] Sandbox {name} timed out, killing it")
                self._kill(container)
                raise ExecutionTimeout(project_key, self.timeout_seconds) from e

            exit_code = result.get("StatusCode")
            if exit_code != 0:
                raise ExecutionFailed(project_key, exit_code=exit_code, detail=self._log_tail(container))
            logger.info(f"[project_key={project_key}] Sandbox {name} exited cleanly")
            return exit_code
        finally:
            self._remove(container)

    def _log_tail(self, container) -> str:
        try:
            logs = container.logs(tail=LOG_TAIL_LINES)
        except DockerException as e:
            return f"logs unavailable ({e})"
        if isinstance(logs, bytes):
            logs = logs.decode("utf-8", errors="replace")
        return logs.strip()

    def _kill(self, container):
        try:
            container.kill()
        except DockerException as e:
            logger.warning(f"Could not kill sandbox {container.name}: {e}")

    def _remove(self, container):
        try:
            container.remove(force=True)
        except DockerException as e:
            logger.warning(f"Could not remove sandbox {container.name}: {e}")
