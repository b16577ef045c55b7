from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from bethouse.core.errors import NotFound
from bethouse.db import get_db
from bethouse.services import notifications
from bethouse.services.accounts import get_account, is_admin
from bethouse.services.hub import get_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ws"])


def _topics_for(session: Session, account_id: int | None) -> list[str]:
    topics = [notifications.EVENTS_TOPIC, notifications.GLOBAL_TOPIC]
    if account_id is None:
        return topics
    admin = is_admin(get_account(session, account_id))
    topics.append(notifications.user_topic(account_id))
    if admin:
        topics.append(notifications.ADMIN_REQUESTS_TOPIC)
    return topics


@router.websocket("/ws")
async def push_channel(
    websocket: WebSocket,
    account_id: int | None = Query(None),
    db: Session = Depends(get_db),
) -> None:
    # Topic lookup is blocking I/O; the session is released before the push loop.
    try:
        topics = await run_in_threadpool(_topics_for, db, account_id)
    except NotFound:
        await websocket.close(code=4404)
        return
    finally:
        await run_in_threadpool(db.close)

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[dict[str, object]] = asyncio.Queue()

    # Hub callbacks run on the scheduler thread.
    def forward(topic: str, message: dict[str, object]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, {"topic": f"/topic/{topic}", "body": message})

    hub = get_hub()
    subscription_id = hub.subscribe(topics, forward)
    receiver: asyncio.Task[str] | None = None
    try:
        await websocket.accept()
        logger.info("WebSocket connected: account=%s topics=%s", account_id, topics)
        receiver = asyncio.create_task(websocket.receive_text())
        while True:
            sender = asyncio.create_task(queue.get())
            done, _pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                sender.cancel()
                receiver.result()
                receiver = asyncio.create_task(websocket.receive_text())
                continue
            await websocket.send_json(sender.result())
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected: account=%s", account_id)
    finally:
        if receiver is not None:
            receiver.cancel()
        hub.unsubscribe(subscription_id)
