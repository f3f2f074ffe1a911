# src/engine/queue.py
"""
Job queue for scan requests.

Messages live on the `scan-queue` topic as `scan-job` payloads
{"url": ..., "dbId": ...}. The Redis implementation moves each message into an
active list while it is being worked on (BLMOVE) and drops it from there on
acknowledgement, so a message is never lost between dequeue and ack.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_NAME = "scan-queue"
JOB_NAME = "scan-job"


@dataclass
class ScanJobMessage:
    repository_url: str
    scan_id: str
    raw: Optional[str] = field(default=None, compare=False, repr=False)

    def to_json(self) -> str:
        return json.dumps({"name": JOB_NAME, "data": {"url": self.repository_url, "dbId": self.scan_id}})

    @classmethod
    def from_json(cls, raw: str) -> "ScanJobMessage":
        payload = json.loads(raw)
        if payload.get("name") != JOB_NAME:
            raise ValueError(f"Unexpected job name: {payload.get('name')!r}")
        data = payload["data"]
        return cls(repository_url=data["url"], scan_id=data["dbId"], raw=raw)


class JobQueue(ABC):
    @abstractmethod
    def enqueue(self, message: ScanJobMessage) -> None:
        pass

    @abstractmethod
    def dequeue(self, timeout: float) -> Optional[ScanJobMessage]:
        """Block up to `timeout` seconds for the next message."""

    @abstractmethod
    def ack(self, message: ScanJobMessage) -> None:
        pass


class RedisJobQueue(JobQueue):
    def __init__(self, redis_client, name: str = DEFAULT_QUEUE_NAME):
        self.redis = redis_client
        self.name = name
        self.wait_key = f"{name}:wait"
        self.active_key = f"{name}:active"

    def enqueue(self, message: ScanJobMessage) -> None:
        self.redis.rpush(self.wait_key, message.to_json())
        logger.info(f"[scan_id={message.scan_id}] Enqueued {JOB_NAME} on {self.name}")

    def dequeue(self, timeout: float) -> Optional[ScanJobMessage]:
        raw = self.redis.blmove(self.wait_key, self.active_key, timeout, "LEFT", "RIGHT")
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return ScanJobMessage.from_json(raw)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            # poison message, nothing downstream can process it
            logger.error(f"Dropping malformed message on {self.name}: {e} raw={raw!r}")
            self.redis.lrem(self.active_key, 1, raw)
            return None

    def ack(self, message: ScanJobMessage) -> None:
        self.redis.lrem(self.active_key, 1, message.raw or message.to_json())

    def pending_count(self) -> int:
        return self.redis.llen(self.wait_key)
