from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..models import NotificationEvent

logger = logging.getLogger(__name__)

Notification = Dict[str, Any]
NotificationHandler = Callable[[Notification], Awaitable[None]]


class NotificationOutbox:
    """
    Persists fired notifications as outbox events and forwards them to an
    optional in-process handler. Consumers (the Telegram bot) claim events
    through the /notifications API.
    """

    def __init__(self) -> None:
        self._handler: Optional[NotificationHandler] = None

    def register_handler(self, handler: Optional[NotificationHandler]) -> None:
        self._handler = handler

    async def emit(self, db: Session, notification: Notification) -> NotificationEvent:
        evt = NotificationEvent(
            channel=notification.get("channel", "default"),
            payload_json=json.dumps(notification, default=str),
            status="PENDING",
        )
        db.add(evt)
        db.commit()

        handler = self._handler
        if handler:
            try:
                await handler(notification)
            except Exception:  # pragma: no cover - handler errors must not stop delivery
                logger.exception("notification handler error")
        return evt
