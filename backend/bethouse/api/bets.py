from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bethouse.api.deps import get_current_account
from bethouse.api.schemas import PlaceBetIn
from bethouse.db import get_db
from bethouse.models import Account
from bethouse.services.bets import get_bets_for_account, place_bet
from bethouse.services.serializers import serialize_bet

router = APIRouter(prefix="/api/bets", tags=["bets"])


@router.post("", status_code=201)
def create_bet(
    body: PlaceBetIn,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    bet = place_bet(db, account.id, body.to_selections(), body.amount)
    return serialize_bet(bet)


@router.get("")
def my_bets(account: Account = Depends(get_current_account), db: Session = Depends(get_db)) -> list[dict[str, object]]:
    return [serialize_bet(bet) for bet in get_bets_for_account(db, account.id)]
