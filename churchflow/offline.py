"""
Offline queue for check-in kiosks.

Check-ins and attendance recorded while the API is unreachable are stored in
a local SQLite database and replayed, oldest first, once a sync is
triggered. An entry leaves the queue only after the server has answered it.
"""

import logging
from datetime import datetime, timezone
from pydantic import BaseModel
import httpx
from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from churchflow.exceptions import SyncReplayError
from churchflow.settings import settings

logger = logging.getLogger(__name__)

CACHE_NAME = "churchflow-v1"
QUEUE_CHECKINS = "offline-checkins"
QUEUE_ATTENDANCE = "offline-attendance"

# sync tag -> (queue name, API endpoint the queued bodies are posted to)
SYNC_TAGS = {
    "sync-checkins": (QUEUE_CHECKINS, "/api/checkin"),
    "sync-attendance": (QUEUE_ATTENDANCE, "/api/attendance"),
}
QUEUE_ENDPOINTS = {queue: endpoint for queue, endpoint in SYNC_TAGS.values()}

# Rejections that are about the kiosk session, not the queued body
AUTH_FAILURES = {401, 403}

QueueBase = declarative_base()


class QueuedRequest(QueueBase):
    __tablename__ = "queued_requests"

    id = Column(Integer, primary_key=True)
    queue = Column(String(50), nullable=False, index=True)
    body = Column(JSON, nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self):
        return f"<QueuedRequest(id={self.id}, queue='{self.queue}')>"


class SyncResult(BaseModel):
    tag: str
    replayed: int = 0
    dropped: int = 0
    remaining: int = 0
    stopped: bool = False


class OfflineQueue:
    def __init__(self, url: str | None = None):
        self.url = url or settings.OFFLINE_QUEUE_URL
        connect_args = (
            {"check_same_thread": False} if self.url.startswith("sqlite") else {}
        )
        self.engine = create_engine(self.url, connect_args=connect_args)
        QueueBase.metadata.create_all(bind=self.engine)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def enqueue(self, queue: str, body: dict) -> QueuedRequest:
        if queue not in QUEUE_ENDPOINTS:
            raise ValueError(f"Unknown offline queue: {queue}")
        with self.Session() as session:
            entry = QueuedRequest(queue=queue, body=body)
            session.add(entry)
            session.commit()
        logger.info("Queued offline request id=%s queue=%s", entry.id, queue)
        return entry

    def pending(self, queue: str) -> list[QueuedRequest]:
        """Queued entries in replay order."""
        with self.Session() as session:
            return (
                session.query(QueuedRequest)
                .filter(QueuedRequest.queue == queue)
                .order_by(QueuedRequest.id.asc())
                .all()
            )

    def _remove(self, entry_id: int) -> None:
        with self.Session() as session:
            session.query(QueuedRequest).filter(QueuedRequest.id == entry_id).delete()
            session.commit()

    def sync(self, tag: str, client: httpx.Client) -> SyncResult:
        """
        Replays every entry of the tag's queue through `client`.

        A 2xx response removes the entry. Any other 4xx means the server
        rejected the body for good, so the entry is logged and dropped.
        Transport errors, 5xx responses and auth failures stop the sync and
        leave the entry and everything after it queued for the next attempt.
        """
        if tag not in SYNC_TAGS:
            raise SyncReplayError(f"Unknown sync tag: {tag}")
        queue, endpoint = SYNC_TAGS[tag]
        result = SyncResult(tag=tag)

        entries = self.pending(queue)
        for index, entry in enumerate(entries):
            try:
                response = client.post(endpoint, json=entry.body)
            except httpx.TransportError as exc:
                logger.warning("Sync %s stopped at id=%s: %s", tag, entry.id, exc)
                result.stopped = True
                result.remaining = len(entries) - index
                break

            if response.is_success:
                self._remove(entry.id)
                result.replayed += 1
                continue

            if response.is_client_error and response.status_code not in AUTH_FAILURES:
                logger.warning(
                    "Dropped queued request id=%s on %s: %s %s",
                    entry.id, tag, response.status_code, response.text,
                )
                self._remove(entry.id)
                result.dropped += 1
                continue

            logger.error(
                "Sync %s stopped at id=%s with status %s",
                tag, entry.id, response.status_code,
            )
            result.stopped = True
            result.remaining = len(entries) - index
            break

        logger.info(
            "Sync %s replayed=%s dropped=%s remaining=%s",
            tag, result.replayed, result.dropped, result.remaining,
        )
        return result

    def sync_all(self, client: httpx.Client) -> list[SyncResult]:
        return [self.sync(tag, client) for tag in SYNC_TAGS]


def submit_or_queue(
    offline_queue: OfflineQueue, client: httpx.Client, queue: str, body: dict
) -> httpx.Response | None:
    """
    Posts a check-in or attendance body, queueing it if the API is unreachable.

    Returns the server response, or None when the body was queued.
    """
    if queue not in QUEUE_ENDPOINTS:
        raise ValueError(f"Unknown offline queue: {queue}")
    try:
        return client.post(QUEUE_ENDPOINTS[queue], json=body)
    except httpx.TransportError as exc:
        logger.warning("API unreachable, queueing %s request: %s", queue, exc)
        offline_queue.enqueue(queue, body)
        return None


def api_client(token: str, base_url: str | None = None) -> httpx.Client:
    """An httpx client for a kiosk session authenticated with a bearer token."""
    return httpx.Client(
        base_url=base_url or settings.API_BASE_URL,
        headers={"Authorization": f"Bearer {token}"},
    )
