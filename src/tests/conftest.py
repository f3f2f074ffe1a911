import pytest

from engine.db import create_session_factory
from engine.store import ScanStore
from fakes import MemoryJobQueue


@pytest.fixture
def store():
    return ScanStore(create_session_factory("sqlite://"))


@pytest.fixture
def job_queue():
    return MemoryJobQueue()
