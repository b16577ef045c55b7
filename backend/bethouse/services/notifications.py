from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from bethouse.domain.enums import NotificationType
from bethouse.models import Notification
from bethouse.services.hub import NotificationHub
from bethouse.utils import utcnow

logger = logging.getLogger(__name__)

EVENTS_TOPIC = "events"
GLOBAL_TOPIC = "global/notifications"
ADMIN_REQUESTS_TOPIC = "admin/requests"


def user_topic(account_id: int) -> str:
    return f"user/{account_id}/notifications"


def enqueue(
    session: Session,
    *,
    topic: str,
    type_: NotificationType,
    message: str = "",
    payload: dict[str, object] | None = None,
    account_id: int | None = None,
) -> Notification:
    """Append a notification to the outbox inside the caller's transaction."""
    notification = Notification(
        topic=topic,
        type=type_.value,
        account_id=account_id,
        message=message,
        payload_json=payload or {},
        created_at=utcnow(),
    )
    session.add(notification)
    return notification


def notify_user(
    session: Session,
    account_id: int,
    type_: NotificationType,
    message: str,
    payload: dict[str, object] | None = None,
) -> Notification:
    return enqueue(
        session,
        topic=user_topic(account_id),
        type_=type_,
        message=message,
        payload=payload,
        account_id=account_id,
    )


def _to_message(notification: Notification) -> dict[str, object]:
    return {
        "id": notification.id,
        "type": notification.type,
        "message": notification.message,
        "data": notification.payload_json,
    }


def deliver_pending(session: Session, hub: NotificationHub, limit: int = 200) -> dict[str, int]:
    """Push undelivered outbox rows to the hub, oldest first.

    Rows are marked delivered even when no subscriber took them: delivery is
    best-effort and at most once per change.
    """
    rows = (
        session.execute(
            select(Notification)
            .where(Notification.delivered_at.is_(None))
            .order_by(Notification.id.asc())
            .limit(limit)
        )
        .scalars()
        .all()
    )
    summary = {"processed": len(rows), "delivered": 0, "unheard": 0}
    now = utcnow()
    for notification in rows:
        # The events topic carries the bare event document, like the client expects.
        if notification.topic == EVENTS_TOPIC:
            message = notification.payload_json
        else:
            message = _to_message(notification)
        received = hub.publish(notification.topic, message)
        if received:
            summary["delivered"] += 1
        else:
            summary["unheard"] += 1
        notification.delivered_at = now
    session.commit()
    if rows:
        logger.debug("Delivered %d notifications (%d unheard)", summary["delivered"], summary["unheard"])
    return summary
