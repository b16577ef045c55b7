from datetime import datetime, timezone
from decimal import Decimal

import pytest

from bethouse.core.errors import AlreadyClaimedToday, InsufficientFunds, InvalidAmount, NotFound
from bethouse.domain.enums import TransactionOrigin, TransactionType
from bethouse.services import ledger
from bethouse.services.ledger import (
    bonus_day_window,
    claim_daily_bonus,
    credit,
    debit,
    get_balance,
    ledger_balance,
    list_transactions,
)
from factories import make_account


def test_credit_and_debit_record_balance_after(session) -> None:
    account = make_account(session, balance="0")

    deposit = credit(session, account.id, Decimal("50.00"), TransactionOrigin.ADMIN_GIFT)
    withdraw = debit(session, account.id, Decimal("20.25"), TransactionOrigin.MANUAL_ADJUSTMENT)

    assert deposit.type == TransactionType.DEPOSIT.value
    assert deposit.balance_after == Decimal("50.00")
    assert withdraw.type == TransactionType.WITHDRAW.value
    assert withdraw.balance_after == Decimal("29.75")
    assert get_balance(session, account.id) == Decimal("29.75")


def test_debit_beyond_balance_changes_nothing(session) -> None:
    account = make_account(session, balance="10.00")

    with pytest.raises(InsufficientFunds):
        debit(session, account.id, Decimal("10.01"), TransactionOrigin.MANUAL_ADJUSTMENT)

    assert get_balance(session, account.id) == Decimal("10.00")
    assert list_transactions(session, account.id)["total"] == 1


@pytest.mark.parametrize("amount", ["0", "-5", "1.005"])
def test_invalid_amounts_are_rejected(session, amount: str) -> None:
    account = make_account(session)
    with pytest.raises(InvalidAmount):
        credit(session, account.id, amount, TransactionOrigin.ADMIN_GIFT)


def test_unknown_account_is_not_found(session) -> None:
    with pytest.raises(NotFound):
        credit(session, 999, Decimal("1.00"), TransactionOrigin.ADMIN_GIFT)


def test_balance_always_equals_ledger_sum(session) -> None:
    account = make_account(session, balance="100.00")
    credit(session, account.id, Decimal("12.34"), TransactionOrigin.ADMIN_GIFT)
    debit(session, account.id, Decimal("50.00"), TransactionOrigin.MANUAL_ADJUSTMENT)
    credit(session, account.id, Decimal("0.01"), TransactionOrigin.ADMIN_GIFT)

    assert get_balance(session, account.id) == Decimal("62.35")
    assert ledger_balance(session, account.id) == get_balance(session, account.id)


def test_daily_bonus_once_per_day(session, monkeypatch) -> None:
    account = make_account(session, balance="0")
    monkeypatch.setattr(ledger, "utcnow", lambda: datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc))

    tx = claim_daily_bonus(session, account.id)
    assert tx.origin == TransactionOrigin.DAILY_BONUS.value
    assert tx.amount == Decimal("100.00")

    with pytest.raises(AlreadyClaimedToday):
        claim_daily_bonus(session, account.id)
    assert get_balance(session, account.id) == Decimal("100.00")

    monkeypatch.setattr(ledger, "utcnow", lambda: datetime(2026, 3, 2, 0, 5, tzinfo=timezone.utc))
    claim_daily_bonus(session, account.id)
    assert get_balance(session, account.id) == Decimal("200.00")


def test_bonus_day_follows_configured_timezone() -> None:
    now = datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)
    start, end = bonus_day_window(now, "Europe/Bucharest")
    # 01:30 local on March 2nd; the local day began at 22:00 UTC on March 1st.
    assert start == datetime(2026, 3, 1, 22, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 2, 22, 0, tzinfo=timezone.utc)


def test_list_transactions_newest_first_with_pages(session) -> None:
    account = make_account(session, balance="0")
    for cents in ("1.00", "2.00", "3.00"):
        credit(session, account.id, Decimal(cents), TransactionOrigin.ADMIN_GIFT)

    first = list_transactions(session, account.id, page=0, size=2)
    second = list_transactions(session, account.id, page=1, size=2)

    assert first["total"] == 3
    assert [tx.amount for tx in first["items"]] == [Decimal("3.00"), Decimal("2.00")]
    assert [tx.amount for tx in second["items"]] == [Decimal("1.00")]
