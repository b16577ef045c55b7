from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bethouse.api.deps import get_current_account
from bethouse.db import get_db
from bethouse.models import Account
from bethouse.services.ledger import claim_daily_bonus, get_balance, list_transactions
from bethouse.services.serializers import serialize_transaction

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


@router.get("")
def wallet(account: Account = Depends(get_current_account), db: Session = Depends(get_db)) -> dict[str, object]:
    return {"accountId": account.id, "balance": float(get_balance(db, account.id))}


@router.post("/daily-bonus")
def daily_bonus(account: Account = Depends(get_current_account), db: Session = Depends(get_db)) -> dict[str, object]:
    tx = claim_daily_bonus(db, account.id)
    # Badge rewards may land in the same transaction as the bonus.
    return {"transaction": serialize_transaction(tx), "balance": float(get_balance(db, account.id))}


@router.get("/transactions")
def transactions(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=200),
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    result = list_transactions(db, account.id, page=page, size=size)
    total = int(result["total"])
    return {
        "content": [serialize_transaction(tx) for tx in result["items"]],
        "page": page,
        "size": size,
        "totalElements": total,
        "totalPages": (total + size - 1) // size,
    }
