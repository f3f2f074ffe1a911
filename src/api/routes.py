# src/api/routes.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.schemas import ScanDetail, ScanStatusLiteral, ScanSubmission, ScanSummary, SubmissionResponse
from engine.scoring import score_grade
from engine.submission import submit_scan

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(request: Request):
    return request.app.state.store


def get_job_queue(request: Request):
    return request.app.state.job_queue


def _with_grade(scan) -> dict:
    data = scan.to_dict()
    data["grade"] = score_grade(scan.score)
    return data


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.post(
    "/scans",
    summary="Submit a repository for scanning",
    response_description="Scan ID and its initial status",
    tags=["Scans"],
    response_model=SubmissionResponse,
    status_code=202,
    responses={
        202: {"description": "Scan queued"},
        422: {"description": "Invalid repository URL"},
        500: {"description": "Internal server error"}
    },
)
def create_scan(submission: ScanSubmission, store=Depends(get_store), job_queue=Depends(get_job_queue)):
    """
    Create a PENDING scan record and queue it for a worker.
    """
    scan = submit_scan(store, job_queue, submission.repo_url)
    logger.info(f"[scan_id={scan.id}] Scan submitted for {submission.repo_url}")
    return {"scan_id": scan.id, "status": scan.status}


@router.get(
    "/scans",
    summary="List scans",
    response_description="Scans, newest first",
    tags=["Scans"],
    response_model=List[ScanSummary],
)
def list_scans(
    status: Optional[ScanStatusLiteral] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store=Depends(get_store),
):
    """
    Query scan history, optionally filtered by status.
    """
    return [_with_grade(scan) for scan in store.list_scans(status=status, limit=limit, offset=offset)]


@router.get(
    "/scans/{scan_id}",
    summary="Get a scan with its report",
    tags=["Scans"],
    response_model=ScanDetail,
    responses={
        404: {"description": "Scan not found"},
    },
)
def get_scan(scan_id: str, store=Depends(get_store)):
    scan = store.find_by_id(scan_id)
    if scan is None:
        raise HTTPException(status_code=404, detail="Scan not found")
    return _with_grade(scan)
