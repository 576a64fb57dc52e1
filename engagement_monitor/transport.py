"""
Upstream transports for heartbeats and assessment submissions

HTTP implementations post JSON with httpx.AsyncClient so no send blocks
the event loop; local implementations hand the payload to in-process
collaborators (single-process deployments, tests).
"""

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from .attention.events import AttentionEvent
from .attention.heartbeat import HeartbeatTransport
from .config import settings
from .exceptions import DeliveryError
from .proctor.scoring import AssessmentResult, AssessmentSubmitter
from .proctor.state import CapturedAnswer
from .progress.watch_store import LessonWatchStore

logger = logging.getLogger(__name__)


def _build_client(base_url: Optional[str], timeout: Optional[float]) -> httpx.AsyncClient:
    base_url = base_url or settings.INGEST_BASE_URL
    if not base_url:
        raise ValueError("INGEST_BASE_URL is not configured")
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=settings.HTTP_TIMEOUT_SECONDS if timeout is None else timeout
    )


async def _post_json(
    client: httpx.AsyncClient,
    path: str,
    payload: Dict[str, Any],
    user_id: str
) -> Dict[str, Any]:
    try:
        response = await client.post(path, json=payload, headers={"X-User-Id": user_id})
    except httpx.HTTPError as e:
        raise DeliveryError(f"POST {path} failed: {e}") from e

    if response.status_code >= 400:
        raise DeliveryError(
            f"POST {path} returned {response.status_code}",
            status_code=response.status_code
        )

    try:
        return response.json()
    except ValueError as e:
        raise DeliveryError(f"POST {path} returned invalid JSON") from e


class HttpHeartbeatTransport(HeartbeatTransport):
    """Posts heartbeats to the ingestion service."""

    def __init__(
        self,
        user_id: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.user_id = user_id
        self.client = client or _build_client(base_url, timeout)

    async def send(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await _post_json(self.client, "/api/monitor/heartbeat", payload, self.user_id)

    async def aclose(self):
        await self.client.aclose()


class LocalHeartbeatTransport(HeartbeatTransport):
    """Applies heartbeats directly to an in-process LessonWatchStore."""

    def __init__(self, store: LessonWatchStore, user_id: str):
        self.store = store
        self.user_id = user_id

    async def send(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        events = payload.get("events")
        if events is None:
            events = [payload["event"]] if payload.get("event") else []

        ack = self.store.record_heartbeat(
            user_id=self.user_id,
            course_id=payload["courseId"],
            module_id=payload["moduleId"],
            lesson_id=payload["lessonId"],
            current_time=payload.get("currentTime"),
            total_duration=payload.get("totalDuration"),
            events=[AttentionEvent.from_dict(e) for e in events]
        )
        return ack.to_dict()


class HttpAssessmentSubmitter(AssessmentSubmitter):
    """Posts a completed answer batch to the scoring service."""

    def __init__(
        self,
        user_id: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.user_id = user_id
        self.client = client or _build_client(base_url, timeout)

    async def submit(self, course_id: str, answers: Sequence[CapturedAnswer]) -> AssessmentResult:
        payload = {"answers": [a.to_dict() for a in answers]}
        data = await _post_json(
            self.client, f"/api/monitor/assessments/{course_id}/submit", payload, self.user_id
        )
        try:
            return AssessmentResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise DeliveryError(f"Unexpected scoring response: {data!r}") from e

    async def aclose(self):
        await self.client.aclose()
