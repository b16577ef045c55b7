from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bethouse.domain.enums import AccountRole, BetStatus, EventStatus, TransactionOrigin
from bethouse.models import Account, Bet, Event, LedgerTransaction


def _money(value: object) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _sum_origin(session: Session, origin: TransactionOrigin) -> Decimal:
    return _money(
        session.execute(
            select(func.sum(LedgerTransaction.amount)).where(LedgerTransaction.origin == origin.value)
        ).scalar_one()
    )


def _count(session: Session, stmt) -> int:
    return int(session.execute(stmt).scalar_one())


def house_statistics(session: Session) -> dict[str, object]:
    received = _money(session.execute(select(func.sum(Bet.amount))).scalar_one())
    payouts = _sum_origin(session, TransactionOrigin.BET_WIN)
    refunds = _sum_origin(session, TransactionOrigin.REFUND)
    in_wallets = _money(
        session.execute(
            select(func.sum(Account.balance)).where(Account.role != AccountRole.ADMIN.value)
        ).scalar_one()
    )
    return {
        "totalBetsReceived": float(received),
        "totalPayouts": float(payouts),
        "totalRefunds": float(refunds),
        "houseProfit": float(received - payouts - refunds),
        "totalInUserWallets": float(in_wallets),
        "totalBetsCount": _count(session, select(func.count(Bet.id))),
        "pendingBetsCount": _count(
            session, select(func.count(Bet.id)).where(Bet.status == BetStatus.PENDING.value)
        ),
        "totalUsers": _count(
            session, select(func.count(Account.id)).where(Account.role != AccountRole.ADMIN.value)
        ),
        "totalEvents": _count(session, select(func.count(Event.id))),
        "openEvents": _count(
            session, select(func.count(Event.id)).where(Event.status == EventStatus.OPEN.value)
        ),
        "settledEvents": _count(
            session, select(func.count(Event.id)).where(Event.status == EventStatus.SETTLED.value)
        ),
    }
