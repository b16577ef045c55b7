from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bethouse.core.errors import ForbiddenRole, InvalidAmount, InvalidInput
from bethouse.domain.enums import AccountRole, TransactionOrigin, TransactionType
from bethouse.models import Account
from bethouse.services.ledger import post_transaction
from bethouse.services.repository import atomic, load_account

logger = logging.getLogger(__name__)


def create_account(
    session: Session,
    *,
    email: str,
    display_name: str,
    role: AccountRole = AccountRole.USER,
    initial_balance: Decimal = Decimal("0"),
) -> Account:
    email = email.strip().lower()
    if not email or "@" not in email:
        raise InvalidInput("A valid email is required.")
    if initial_balance < 0:
        raise InvalidAmount("Opening balance cannot be negative.")
    if session.execute(select(func.count(Account.id)).where(Account.email == email)).scalar_one():
        raise InvalidInput(f"An account for {email} already exists.")

    with atomic(session):
        account = Account(
            email=email,
            display_name=display_name.strip() or email,
            role=role.value,
            balance=Decimal("0.00"),
        )
        session.add(account)
        session.flush()
        if initial_balance > 0:
            post_transaction(
                session,
                account,
                tx_type=TransactionType.DEPOSIT,
                origin=TransactionOrigin.MANUAL_ADJUSTMENT,
                amount=initial_balance,
                description="Opening balance",
            )
    logger.info("Account created: id=%s role=%s", account.id, account.role)
    return account


def get_account(session: Session, account_id: int) -> Account:
    return load_account(session, account_id)


def is_admin(account: Account) -> bool:
    return account.role == AccountRole.ADMIN.value


def require_admin(account: Account) -> Account:
    if not is_admin(account):
        raise ForbiddenRole("Only administrators can do this.")
    return account
