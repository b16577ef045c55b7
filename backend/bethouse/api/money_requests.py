from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bethouse.api.deps import get_current_account
from bethouse.api.schemas import MoneyRequestIn
from bethouse.db import get_db
from bethouse.models import Account
from bethouse.services.money_requests import create_money_request, list_my_requests
from bethouse.services.serializers import serialize_money_request

router = APIRouter(prefix="/api/money-requests", tags=["money-requests"])


@router.post("", status_code=201)
def request_money(
    body: MoneyRequestIn,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    return serialize_money_request(create_money_request(db, account.id, body.amount, body.reason))


@router.get("")
def my_requests(
    account: Account = Depends(get_current_account), db: Session = Depends(get_db)
) -> list[dict[str, object]]:
    return [serialize_money_request(request) for request in list_my_requests(db, account.id)]
