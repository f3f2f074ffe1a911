# src/engine/store.py
"""
ScanStore: durable scan records and their status machine.

Every status change is a conditional UPDATE on the prior status, so a record
only ever moves PENDING -> PROCESSING -> COMPLETED | FAILED, and a duplicate
queue delivery cannot claim a record twice.
"""

import logging
from typing import List, Optional

from sqlalchemy import update as sql_update

from engine.errors import RecordNotFound, ScanAlreadyClaimed
from engine.models import Scan, ScanStatus, utcnow

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = {"status", "score", "report", "result_url", "error", "started_at", "finished_at"}


class ScanStore:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def create(self, repository_url: str) -> Scan:
        with self.session_factory() as db:
            scan = Scan(repository_url=repository_url, status=ScanStatus.PENDING.value)
            db.add(scan)
            db.commit()
            db.refresh(scan)
        logger.info(f"[scan_id={scan.id}] Created scan record for {repository_url}")
        return scan

    def find_by_id(self, scan_id: str) -> Optional[Scan]:
        with self.session_factory() as db:
            return db.get(Scan, scan_id)

    def update(self, scan_id: str, fields: dict, expected_status: Optional[str] = None) -> bool:
        """
        Merge `fields` into the record in a single UPDATE. When `expected_status`
        is given the write only applies if the record still has that status.
        Returns True when a row was written.
        """
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update scan fields: {sorted(unknown)}")
        stmt = sql_update(Scan).where(Scan.id == scan_id)
        if expected_status is not None:
            stmt = stmt.where(Scan.status == expected_status)
        with self.session_factory() as db:
            result = db.execute(stmt.values(**fields))
            db.commit()
            return result.rowcount == 1

    def mark_processing(self, scan_id: str) -> None:
        claimed = self.update(
            scan_id,
            {"status": ScanStatus.PROCESSING.value, "started_at": utcnow()},
            expected_status=ScanStatus.PENDING.value,
        )
        if claimed:
            return
        scan = self.find_by_id(scan_id)
        if scan is None:
            raise RecordNotFound(scan_id)
        raise ScanAlreadyClaimed(scan_id, scan.status)

    def mark_completed(self, scan_id: str, score: int, report: dict, result_url: Optional[str] = None) -> bool:
        return self.update(
            scan_id,
            {
                "status": ScanStatus.COMPLETED.value,
                "score": score,
                "report": report,
                "result_url": result_url,
                "finished_at": utcnow(),
            },
            expected_status=ScanStatus.PROCESSING.value,
        )

    def mark_failed(self, scan_id: str, error: str) -> bool:
        return self.update(
            scan_id,
            {"status": ScanStatus.FAILED.value, "error": error, "finished_at": utcnow()},
            expected_status=ScanStatus.PROCESSING.value,
        )

    def list_scans(self, status: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[Scan]:
        with self.session_factory() as db:
            query = db.query(Scan)
            if status:
                query = query.filter(Scan.status == status)
            return query.order_by(Scan.created_at.desc()).offset(offset).limit(limit).all()
