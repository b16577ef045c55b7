"""Append-only wallet ledger.

Balances move only through ``post_transaction``; each call writes one
immutable ``LedgerTransaction`` whose ``balance_after`` snapshots the
account right after it applied. ``credit`` and ``debit`` are the standalone,
self-committing entry points and serialize on the account lock; engines that
move money as part of a larger unit (bet placement, settlement) hold the
account lock themselves and call ``post_transaction`` directly.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from bethouse.config import get_settings
from bethouse.core.errors import AlreadyClaimedToday, InsufficientFunds
from bethouse.core.locks import account_key, get_lock_manager
from bethouse.core.math import validate_amount
from bethouse.domain.enums import BadgeTrigger, TransactionOrigin, TransactionType
from bethouse.models import Account, LedgerTransaction
from bethouse.services import badges
from bethouse.services.repository import atomic, load_account
from bethouse.utils import utcnow

logger = logging.getLogger(__name__)


def post_transaction(
    session: Session,
    account: Account,
    *,
    tx_type: TransactionType,
    origin: TransactionOrigin,
    amount: Decimal,
    reference_type: str | None = None,
    reference_id: int | None = None,
    description: str = "",
) -> LedgerTransaction:
    """Apply one balance change to an already-locked account. Does not commit."""
    amount = validate_amount(amount)
    if tx_type == TransactionType.WITHDRAW:
        if account.balance < amount:
            raise InsufficientFunds(
                f"Balance {account.balance:.2f} is not enough for {amount:.2f}."
            )
        new_balance = account.balance - amount
    else:
        new_balance = account.balance + amount

    account.balance = new_balance
    tx = LedgerTransaction(
        account_id=account.id,
        type=tx_type.value,
        origin=origin.value,
        amount=amount,
        balance_after=new_balance,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        created_at=utcnow(),
    )
    session.add(tx)
    session.flush()
    return tx


def _post_locked(
    session: Session,
    account_id: int,
    *,
    tx_type: TransactionType,
    origin: TransactionOrigin,
    amount: Decimal,
    description: str,
) -> LedgerTransaction:
    amount = validate_amount(amount)
    with get_lock_manager().hold(account_key(account_id)):
        with atomic(session):
            account = load_account(session, account_id, for_update=True)
            tx = post_transaction(
                session,
                account,
                tx_type=tx_type,
                origin=origin,
                amount=amount,
                description=description,
            )
    return tx


def credit(
    session: Session,
    account_id: int,
    amount: Decimal,
    origin: TransactionOrigin,
    description: str = "",
) -> LedgerTransaction:
    return _post_locked(
        session,
        account_id,
        tx_type=TransactionType.DEPOSIT,
        origin=origin,
        amount=amount,
        description=description,
    )


def debit(
    session: Session,
    account_id: int,
    amount: Decimal,
    origin: TransactionOrigin,
    description: str = "",
) -> LedgerTransaction:
    return _post_locked(
        session,
        account_id,
        tx_type=TransactionType.WITHDRAW,
        origin=origin,
        amount=amount,
        description=description,
    )


def get_balance(session: Session, account_id: int) -> Decimal:
    return load_account(session, account_id).balance


def bonus_day_window(now_utc: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """UTC bounds of the calendar day containing ``now_utc`` in ``tz_name``."""
    tz = ZoneInfo(tz_name)
    local_now = now_utc.astimezone(tz)
    local_start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    local_end = local_start + timedelta(days=1)
    return local_start.astimezone(timezone.utc), local_end.astimezone(timezone.utc)


def claim_daily_bonus(session: Session, account_id: int) -> LedgerTransaction:
    settings = get_settings()
    day_start, day_end = bonus_day_window(utcnow(), settings.bonus_timezone)

    with get_lock_manager().hold(account_key(account_id)):
        with atomic(session):
            account = load_account(session, account_id, for_update=True)
            claimed = session.execute(
                select(func.count(LedgerTransaction.id)).where(
                    LedgerTransaction.account_id == account_id,
                    LedgerTransaction.origin == TransactionOrigin.DAILY_BONUS.value,
                    LedgerTransaction.created_at >= day_start,
                    LedgerTransaction.created_at < day_end,
                )
            ).scalar_one()
            if claimed:
                raise AlreadyClaimedToday("Daily bonus already claimed today; come back tomorrow.")
            tx = post_transaction(
                session,
                account,
                tx_type=TransactionType.DEPOSIT,
                origin=TransactionOrigin.DAILY_BONUS,
                amount=settings.daily_bonus_amount,
                description="Daily bonus",
            )
            badges.evaluate(session, account, BadgeTrigger.BONUS_CLAIMED, transaction=tx)
    logger.info("Daily bonus claimed: account=%s amount=%s", account_id, settings.daily_bonus_amount)
    return tx


def list_transactions(session: Session, account_id: int, page: int = 0, size: int = 20) -> dict[str, object]:
    load_account(session, account_id)
    total = session.execute(
        select(func.count(LedgerTransaction.id)).where(LedgerTransaction.account_id == account_id)
    ).scalar_one()
    rows = (
        session.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.account_id == account_id)
            .order_by(desc(LedgerTransaction.created_at), desc(LedgerTransaction.id))
            .offset(page * size)
            .limit(size)
        )
        .scalars()
        .all()
    )
    return {"items": list(rows), "page": page, "size": size, "total": total}


def ledger_balance(session: Session, account_id: int) -> Decimal:
    """Balance recomputed from the ledger alone: credits minus debits."""
    rows = session.execute(
        select(LedgerTransaction.type, LedgerTransaction.amount).where(LedgerTransaction.account_id == account_id)
    ).all()
    total = Decimal("0.00")
    for tx_type, amount in rows:
        total += amount if tx_type == TransactionType.DEPOSIT.value else -amount
    return total
