from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bethouse.db import get_db
from bethouse.services.events import get_event, get_open_events
from bethouse.services.odds import pool_snapshot
from bethouse.services.serializers import serialize_event

router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("")
def open_events(db: Session = Depends(get_db)) -> list[dict[str, object]]:
    return [serialize_event(event) for event in get_open_events(db)]


@router.get("/{event_id}")
def event_detail(event_id: int, db: Session = Depends(get_db)) -> dict[str, object]:
    return serialize_event(get_event(db, event_id))


@router.get("/{event_id}/odds")
def event_odds(event_id: int, db: Session = Depends(get_db)) -> dict[str, object]:
    return pool_snapshot(db, event_id)
