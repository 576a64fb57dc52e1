"""
Pytest Configuration for Engagement Monitor Tests
"""
import asyncio
from datetime import datetime

import pytest

from engagement_monitor.clock import ManualClock
from engagement_monitor.attention.heartbeat import HeartbeatTransport, LessonContext


class RecordingTransport(HeartbeatTransport):
    """Heartbeat transport that keeps every payload it receives"""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.payloads = []
        self.fail = fail
        self.delay = delay
        self.completed = 0

    async def send(self, payload):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.payloads.append(payload)
        self.completed += 1
        if self.fail:
            raise ConnectionError("ingestion unavailable")
        return {"success": True}


@pytest.fixture
def clock():
    """Deterministic clock starting at t=0, 2024-01-01T00:00:00"""
    manual = ManualClock(start=0.0, epoch=datetime(2024, 1, 1))
    yield manual
    manual.close()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def failing_transport():
    return RecordingTransport(fail=True)


@pytest.fixture
def slow_transport():
    """Transport that takes 200ms per send"""
    return RecordingTransport(delay=0.2)


@pytest.fixture
def lesson():
    """A 10 minute lesson"""
    return LessonContext(
        course_id="course-1",
        module_id="module-1",
        lesson_id="lesson-1",
        total_duration=600.0
    )
