from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bethouse.api.deps import get_current_admin
from bethouse.api.schemas import CreateAccountIn, CreateEventIn, SettleIn, StatusIn
from bethouse.db import get_db
from bethouse.models import Account
from bethouse.services.accounts import create_account
from bethouse.services.events import create_event, get_event, list_all_events, transition_status
from bethouse.services.money_requests import approve_request, list_pending_requests, reject_request
from bethouse.services.serializers import serialize_account, serialize_event, serialize_money_request
from bethouse.services.settlement import settle_event
from bethouse.services.stats import house_statistics

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/events")
def all_events(
    _admin: Account = Depends(get_current_admin), db: Session = Depends(get_db)
) -> list[dict[str, object]]:
    return [serialize_event(event) for event in list_all_events(db)]


@router.post("/events", status_code=201)
def new_event(
    body: CreateEventIn,
    _admin: Account = Depends(get_current_admin),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    event = create_event(
        db,
        title=body.title,
        description=body.description,
        category=body.category,
        pricing_model=body.pricing_model,
        commence_time=body.commence_time,
        options=[option.to_spec() for option in body.options],
    )
    return serialize_event(event)


@router.patch("/events/{event_id}/status")
def change_status(
    event_id: int,
    body: StatusIn,
    _admin: Account = Depends(get_current_admin),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    return serialize_event(transition_status(db, event_id, body.status))


@router.post("/events/{event_id}/settle")
def settle(
    event_id: int,
    body: SettleIn,
    _admin: Account = Depends(get_current_admin),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    summary = settle_event(db, event_id, body.winner_option_id)
    return {"event": serialize_event(get_event(db, event_id)), "summary": summary}


@router.get("/money-requests")
def pending_requests(
    _admin: Account = Depends(get_current_admin), db: Session = Depends(get_db)
) -> list[dict[str, object]]:
    return [serialize_money_request(request) for request in list_pending_requests(db)]


@router.post("/money-requests/{request_id}/approve")
def approve(
    request_id: int, admin: Account = Depends(get_current_admin), db: Session = Depends(get_db)
) -> dict[str, object]:
    return serialize_money_request(approve_request(db, request_id, admin.id))


@router.post("/money-requests/{request_id}/reject")
def reject(
    request_id: int, admin: Account = Depends(get_current_admin), db: Session = Depends(get_db)
) -> dict[str, object]:
    return serialize_money_request(reject_request(db, request_id, admin.id))


@router.get("/dashboard/statistics")
def statistics(_admin: Account = Depends(get_current_admin), db: Session = Depends(get_db)) -> dict[str, object]:
    return house_statistics(db)


@router.post("/accounts", status_code=201)
def new_account(
    body: CreateAccountIn,
    _admin: Account = Depends(get_current_admin),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    account = create_account(
        db,
        email=body.email,
        display_name=body.name,
        role=body.role,
        initial_balance=body.initial_balance,
    )
    return serialize_account(account)
