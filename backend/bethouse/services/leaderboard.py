from __future__ import annotations

from decimal import Decimal

from sqlalchemy import case, desc, func, select
from sqlalchemy.orm import Session

from bethouse.domain.enums import AccountRole, TransactionOrigin
from bethouse.models import Account, LedgerTransaction


def _to_decimal(value: object) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _entries(rows: list[tuple[Account, Decimal]]) -> list[dict[str, object]]:
    return [
        {
            "rank": index,
            "userId": account.id,
            "name": account.display_name,
            "value": float(value),
            "valueLabel": f"{value:.2f}",
        }
        for index, (account, value) in enumerate(rows, start=1)
    ]


def wealth_ranking(session: Session, limit: int = 10) -> list[dict[str, object]]:
    accounts = (
        session.execute(
            select(Account)
            .where(Account.role != AccountRole.ADMIN.value)
            .order_by(desc(Account.balance), Account.id.asc())
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return _entries([(account, account.balance) for account in accounts])


def _betting_results(session: Session) -> list[tuple[Account, Decimal]]:
    returned = (TransactionOrigin.BET_WIN.value, TransactionOrigin.REFUND.value)
    net = func.sum(
        case(
            (LedgerTransaction.origin.in_(returned), LedgerTransaction.amount),
            (LedgerTransaction.origin == TransactionOrigin.BET_ENTRY.value, -LedgerTransaction.amount),
            else_=0,
        )
    )
    rows = session.execute(
        select(Account, net.label("net"))
        .join(LedgerTransaction, LedgerTransaction.account_id == Account.id)
        .where(Account.role != AccountRole.ADMIN.value)
        .group_by(Account.id)
    ).all()
    return [(account, _to_decimal(value)) for account, value in rows]


def profit_ranking(session: Session, limit: int = 10) -> list[dict[str, object]]:
    results = [row for row in _betting_results(session) if row[1] > 0]
    results.sort(key=lambda row: (-row[1], row[0].id))
    return _entries(results[:limit])


def loss_ranking(session: Session, limit: int = 10) -> list[dict[str, object]]:
    results = [row for row in _betting_results(session) if row[1] < 0]
    results.sort(key=lambda row: (row[1], row[0].id))
    return _entries(results[:limit])
