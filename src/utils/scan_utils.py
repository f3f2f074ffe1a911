from urllib.parse import urlencode

PROJECT_KEY_PREFIX = "scan_"
SANDBOX_PREFIX = "scanner_"


def project_key_for(scan_id: str) -> str:
    return f"{PROJECT_KEY_PREFIX}{scan_id}"


def sandbox_name_for(project_key: str) -> str:
    return f"{SANDBOX_PREFIX}{project_key}"


def dashboard_url_for(public_url: str, project_key: str) -> str:
    return f"{public_url.rstrip('/')}/dashboard?{urlencode({'id': project_key})}"


def calculate_severity_counts(findings):
    """
    Count findings per severity. Severities are whatever the analyzer reports,
    so unknown values get their own bucket.
    """
    severity_counts = {}
    for finding in findings:
        severity = (finding.get("severity") or "UNKNOWN").upper()
        severity_counts[severity] = severity_counts.get(severity, 0) + 1
    return severity_counts
