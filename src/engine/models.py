# src/engine/models.py
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ScanStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATUSES = {ScanStatus.COMPLETED.value, ScanStatus.FAILED.value}


def utcnow():
    return datetime.now(timezone.utc)


def new_scan_id() -> str:
    return str(uuid.uuid4())


class Scan(Base):
    __tablename__ = 'scans'
    id = Column(String(36), primary_key=True, default=new_scan_id)
    repository_url = Column(String, nullable=False)
    status = Column(String(16), nullable=False, default=ScanStatus.PENDING.value, index=True)
    score = Column(Integer, nullable=True)
    report = Column(JSON, nullable=True)  # {metrics, findings, severity_counts, completed_at}
    result_url = Column(String, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "repository_url": self.repository_url,
            "status": self.status,
            "score": self.score,
            "report": self.report,
            "result_url": self.result_url,
            "error": self.error,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }
