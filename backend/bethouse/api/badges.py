from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bethouse.api.deps import get_current_account
from bethouse.db import get_db
from bethouse.models import Account
from bethouse.services.badges import list_catalog, list_earned
from bethouse.services.serializers import serialize_badge, serialize_earned_badge

router = APIRouter(prefix="/api/badges", tags=["badges"])


@router.get("/catalog")
def catalog() -> list[dict[str, object]]:
    return [serialize_badge(badge) for badge in list_catalog()]


@router.get("/my")
def my_badges(
    account: Account = Depends(get_current_account), db: Session = Depends(get_db)
) -> list[dict[str, object]]:
    return [serialize_earned_badge(earned) for earned in list_earned(db, account.id)]
