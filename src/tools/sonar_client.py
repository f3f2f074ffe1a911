# src/tools/sonar_client.py
import logging
from typing import Iterable

import requests

logger = logging.getLogger(__name__)


class SonarClient:
    """
    Thin client for the analyzer's web API. The token is sent on every call as
    the basic-auth user name with an empty password.
    """

    def __init__(self, base_url: str, token: str, session=None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (token or "", "")

    def _get(self, path: str, params: dict) -> dict:
        response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def component_tasks(self, project_key: str) -> dict:
        return self._get("/api/ce/component", {"component": project_key})

    def measures(self, project_key: str, metric_keys: Iterable[str]) -> dict:
        return self._get(
            "/api/measures/component",
            {"component": project_key, "metricKeys": ",".join(metric_keys)},
        )

    def search_issues(self, project_key: str, types: Iterable[str], page_size: int) -> dict:
        return self._get(
            "/api/issues/search",
            {"componentKeys": project_key, "types": ",".join(types), "ps": page_size},
        )

    def close(self):
        self.session.close()
