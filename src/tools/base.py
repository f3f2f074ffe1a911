# src/tools/base.py
from abc import ABC, abstractmethod


class AnalysisLauncher(ABC):
    @abstractmethod
    def run_scan(self, repository_url: str, project_key: str) -> int:
        """
        Clone `repository_url` into a sandbox and analyze it under `project_key`.
        Returns the sandbox exit status (always 0); raises ExecutionFailed or
        ExecutionTimeout otherwise.
        """
