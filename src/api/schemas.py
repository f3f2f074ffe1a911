# src/api/schemas.py
import re
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

GITHUB_URL_REGEX = re.compile(
    r"^https?://(?:www\.)?github\.com/[a-zA-Z0-9-]+/[a-zA-Z0-9_.-]+?(?:\.git)?/?$"
)

ScanStatusLiteral = Literal['PENDING', 'PROCESSING', 'COMPLETED', 'FAILED']


class ScanSubmission(BaseModel):
    repo_url: str = Field(..., description="Public GitHub repository URL, e.g. https://github.com/org/repo")

    @field_validator("repo_url")
    @classmethod
    def validate_repo_url(cls, value: str) -> str:
        value = value.strip()
        if not GITHUB_URL_REGEX.match(value):
            raise ValueError("Invalid GitHub repository URL")
        return value


class SubmissionResponse(BaseModel):
    scan_id: str
    status: ScanStatusLiteral


class Finding(BaseModel):
    key: str
    title: Optional[str] = None
    description: str
    severity: Optional[str] = None  # analyzer vocabulary, passed through as-is
    category: Optional[str] = None


class ScanReport(BaseModel):
    metrics: Dict[str, Optional[str]] = Field(default_factory=dict)
    findings: List[Finding] = Field(default_factory=list)
    severity_counts: Dict[str, int] = Field(default_factory=dict)
    completed_at: datetime


class ScanSummary(BaseModel):
    id: str
    repository_url: str
    status: ScanStatusLiteral
    score: Optional[int] = None
    grade: Optional[str] = None
    created_at: datetime
    finished_at: Optional[datetime] = None


class ScanDetail(ScanSummary):
    report: Optional[ScanReport] = None
    result_url: Optional[str] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
