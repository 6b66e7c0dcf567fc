"""Outbound event publisher with exponential backoff retry logic"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Dict, Optional

import httpx
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from quote_engine.config import settings
from quote_engine.domain.exceptions import EventDeliveryError
from quote_engine.infrastructure.database.repositories import OutboundEventRepository
from quote_engine.infrastructure.observability.metrics import event_failure_counter, event_latency_histogram

logger = logging.getLogger(__name__)

CONTRACT_SENT = "contract.sent"
CONTRACT_SIGNED = "contract.signed"
POLICY_CONVERTED = "policy.converted"


class EventPublisher:
    """
    Delivers domain events to the external notification/cache webhook.

    Events are recorded in the request transaction via `record` and sent
    after commit via `deliver`, which runs as a FastAPI background task.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.event_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds
        self.session_factory = session_factory

    def record(self, db: Session, event_type: str, payload: Dict[str, Any]) -> uuid.UUID:
        """Persist the event alongside the state change that produced it"""
        event = OutboundEventRepository(db).create_event(event_type, payload, self.webhook_url)
        return event.id

    async def deliver(self, event_id: uuid.UUID, event_type: str, payload: Dict[str, Any]) -> None:
        """Send the event and record the outcome; failures are logged, never raised to the request"""
        if not self.webhook_url:
            logger.debug("No event webhook configured; %s not sent", event_type)
            return

        try:
            attempts = await self.send(event_type, payload)
            await run_in_threadpool(self._record_outcome, event_id, attempts, True)
        except EventDeliveryError as e:
            logger.error(f"Event delivery failed: {e}", extra={"event_id": str(event_id), "event_type": event_type})
            await run_in_threadpool(self._record_outcome, event_id, self.max_retries, False)

    async def send(self, event_type: str, payload: Dict[str, Any]) -> int:
        """
        POST the event to the webhook with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx/4xx responses and network failures
        - Tracks latency histogram and failure counter

        Returns:
            Number of attempts used

        Raises:
            EventDeliveryError: after the final failed attempt
        """
        body = {"event": event_type, **payload}
        attempt = 0
        async with httpx.AsyncClient() as client:
            while True:
                try:
                    with event_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=body, timeout=self.timeout)
                        response.raise_for_status()
                        return attempt + 1

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    event_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise EventDeliveryError(f"{event_type} not delivered after {attempt} attempts") from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)

    def _record_outcome(self, event_id: uuid.UUID, attempts: int, delivered: bool) -> None:
        if self.session_factory is None:
            return
        db = self.session_factory()
        try:
            OutboundEventRepository(db).record_attempt(event_id, attempts, delivered)
            db.commit()
        finally:
            db.close()
