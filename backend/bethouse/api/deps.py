from __future__ import annotations

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from bethouse.db import get_db
from bethouse.models import Account
from bethouse.services.accounts import get_account, require_admin


def get_current_account(
    x_account_id: int | None = Header(None, alias="X-Account-Id"),
    db: Session = Depends(get_db),
) -> Account:
    if x_account_id is None:
        raise HTTPException(status_code=401, detail="X-Account-Id header is required")
    return get_account(db, x_account_id)


def get_current_admin(account: Account = Depends(get_current_account)) -> Account:
    return require_admin(account)
