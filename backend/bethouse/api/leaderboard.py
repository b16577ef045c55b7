from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bethouse.config import get_settings
from bethouse.db import get_db
from bethouse.services.leaderboard import loss_ranking, profit_ranking, wealth_ranking

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])

_RANKINGS = {"wealth": wealth_ranking, "profit": profit_ranking, "loss": loss_ranking}


@router.get("/{kind}")
def ranking(
    kind: Literal["wealth", "profit", "loss"],
    limit: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[dict[str, object]]:
    return _RANKINGS[kind](db, limit=limit or get_settings().leaderboard_limit)
