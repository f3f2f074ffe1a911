# src/engine/results.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List

import requests

from engine.errors import FetchFailed

logger = logging.getLogger(__name__)

METRIC_KEYS = ("security_rating", "vulnerabilities", "bugs", "code_smells")
ISSUE_TYPES = ("VULNERABILITY", "BUG", "CODE_SMELL")
DEFAULT_PAGE_SIZE = 100


@dataclass
class ScanResults:
    metrics: Dict[str, str] = field(default_factory=dict)
    findings: List[dict] = field(default_factory=list)


def to_finding(issue: dict) -> dict:
    severity = issue.get("severity")
    return {
        "key": issue["key"],
        "title": issue.get("message"),
        "description": f"Severity: {severity} - File: {issue.get('component')}",
        "severity": severity,
        "category": issue.get("type"),
    }


class ResultFetcher:
    def __init__(self, sonar_client, page_size: int = DEFAULT_PAGE_SIZE):
        self.sonar_client = sonar_client
        self.page_size = page_size

    def fetch(self, project_key: str) -> ScanResults:
        try:
            measures = self.sonar_client.measures(project_key, METRIC_KEYS)
            issues = self.sonar_client.search_issues(project_key, ISSUE_TYPES, self.page_size)
            metrics = {m["metric"]: m.get("value") for m in measures["component"]["measures"]}
            findings = [to_finding(issue) for issue in issues["issues"]]
        except requests.RequestException as e:
            raise FetchFailed(project_key, str(e)) from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise FetchFailed(project_key, f"malformed analyzer response ({e!r})") from e
        logger.info(f"[project_key={project_key}] Fetched {len(metrics)} metrics and {len(findings)} findings")
        return ScanResults(metrics=metrics, findings=findings)
