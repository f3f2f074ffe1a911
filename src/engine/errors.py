# src/engine/errors.py
"""
Error taxonomy for the scan pipeline.

ScanPipelineError subclasses fail the job (record -> FAILED). RecordNotFound and
ScanAlreadyClaimed drop the message without touching any record.
"""


class ScanError(Exception):
    pass


class ScanPipelineError(ScanError):
    pass


class ExecutionFailed(ScanPipelineError):
    def __init__(self, project_key: str, exit_code=None, detail: str = ""):
        self.project_key = project_key
        self.exit_code = exit_code
        self.detail = detail
        message = f"Sandbox for {project_key} failed"
        if exit_code is not None:
            message += f" with exit code {exit_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ExecutionTimeout(ScanPipelineError):
    def __init__(self, project_key: str, timeout_seconds: float):
        self.project_key = project_key
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Sandbox for {project_key} exceeded {timeout_seconds}s")


class IngestionTimeout(ScanPipelineError):
    def __init__(self, project_key: str, attempts: int):
        self.project_key = project_key
        self.attempts = attempts
        super().__init__(f"Analyzer did not finish ingesting {project_key} after {attempts} attempts")


class FetchFailed(ScanPipelineError):
    def __init__(self, project_key: str, detail: str):
        self.project_key = project_key
        super().__init__(f"Could not fetch results for {project_key}: {detail}")


class RecordNotFound(ScanError):
    def __init__(self, scan_id: str):
        self.scan_id = scan_id
        super().__init__(f"Scan record {scan_id} not found")


class ScanAlreadyClaimed(ScanError):
    def __init__(self, scan_id: str, status: str):
        self.scan_id = scan_id
        self.status = status
        super().__init__(f"Scan record {scan_id} is {status}, expected PENDING")
