"""Best-effort project notifications over PostgreSQL NOTIFY."""

import json
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger(__name__)

# PostgreSQL rejects NOTIFY payloads of 8000 bytes or more
MAX_PAYLOAD_BYTES = 7900


class PgNotifyBroadcaster:
    """
    Publishes events with ``pg_notify``.

    Delivery is fire-and-forget: a listener that misses an event re-fetches
    the document. Failures are logged and never propagate to the job that
    triggered the notification.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._log = logger.bind(service="notifications")

    @staticmethod
    def encode(event: str, payload: dict[str, Any]) -> str:
        message = json.dumps({"event": event, "data": payload}, default=str)
        if len(message.encode("utf-8")) <= MAX_PAYLOAD_BYTES:
            return message
        # Too large for NOTIFY; listeners re-fetch by id
        slim = {key: payload.get(key) for key in ("id", "project_id", "type", "processed_at")}
        return json.dumps({"event": event, "data": slim, "truncated": True}, default=str)

    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        try:
            # A savepoint keeps a failed NOTIFY from aborting the job's transaction
            async with self._session.begin_nested():
                await self._session.execute(
                    select(func.pg_notify(channel, self.encode(event, payload)))
                )
        except SQLAlchemyError as e:
            self._log.warning(
                "notification_failed", channel=channel, event_name=event, error=str(e)
            )
            return
        self._log.debug("notification_sent", channel=channel, event_name=event)
