from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from bethouse.core.errors import (
    EventNotOpen,
    ForbiddenRole,
    InsufficientFunds,
    InvalidAmount,
    InvalidInput,
    InvalidOption,
)
from bethouse.domain.enums import AccountRole, BetStatus, PricingModel, TransactionOrigin
from bethouse.domain.types import LegSelection
from bethouse.models import Bet, LedgerTransaction
from bethouse.services import bets
from bethouse.services.bets import get_bets_for_account, place_bet
from bethouse.services.events import get_event, lock_event
from bethouse.services.ledger import get_balance, ledger_balance
from bethouse.services.repository import load_account, load_event
from factories import make_account, make_event


def _pick(event, index: int = 0) -> LegSelection:
    return LegSelection(event_id=event.id, option_id=event.options[index].id)


def test_fixed_odds_single_bet_debits_and_locks_odd(session) -> None:
    account = make_account(session, balance="100.00")
    event = make_event(session, odds=("2.00", "3.50"))

    bet = place_bet(session, account.id, [_pick(event)], Decimal("50.00"))

    assert bet.status == BetStatus.PENDING.value
    assert bet.total_odd == Decimal("2.0000")
    assert bet.potential_payout == Decimal("100.00")
    assert [leg.locked_odd for leg in bet.legs] == [Decimal("2.0000")]
    assert get_balance(session, account.id) == Decimal("50.00")

    entry = session.execute(
        select(LedgerTransaction).where(LedgerTransaction.origin == TransactionOrigin.BET_ENTRY.value)
    ).scalar_one()
    assert entry.amount == Decimal("50.00")
    assert entry.reference_type == "bet"
    assert entry.reference_id == bet.id

    refreshed = get_event(session, event.id)
    assert refreshed.options[0].total_staked == Decimal("50.00")
    assert refreshed.options[0].current_odd == Decimal("2.0000")


def test_dynamic_pool_reprices_after_each_stake(session) -> None:
    first = make_account(session, "first@example.com", balance="500.00")
    second = make_account(session, "second@example.com", balance="500.00")
    event = make_event(session, pricing_model=PricingModel.DYNAMIC_PARIMUTUEL, odds=(None, None))

    opening = place_bet(session, first.id, [_pick(event, 0)], Decimal("100.00"))
    assert opening.legs[0].locked_odd == Decimal("2.0000")

    after_one = get_event(session, event.id)
    assert after_one.options[0].current_odd == Decimal("1.0100")
    assert after_one.options[1].current_odd == Decimal("2.0000")

    place_bet(session, second.id, [_pick(event, 1)], Decimal("100.00"))
    after_two = get_event(session, event.id)
    assert [option.current_odd for option in after_two.options] == [Decimal("1.9000"), Decimal("1.9000")]
    # Bets already placed keep the odd they were offered.
    assert opening.legs[0].locked_odd == Decimal("2.0000")


def test_multi_leg_bet_multiplies_odds(session) -> None:
    account = make_account(session, balance="100.00")
    first = make_event(session, title="Semi 1", odds=("1.50", "2.50"))
    second = make_event(session, title="Semi 2", odds=("2.00", "1.80"))

    bet = place_bet(session, account.id, [_pick(first), _pick(second)], Decimal("10.00"))

    assert bet.total_odd == Decimal("3.0000")
    assert bet.potential_payout == Decimal("30.00")
    assert len(bet.legs) == 2
    assert get_bets_for_account(session, account.id)[0].id == bet.id


@pytest.mark.parametrize(
    ("amount", "error"),
    [(Decimal("0"), InvalidAmount), (Decimal("150.00"), InsufficientFunds)],
)
def test_rejected_bets_leave_no_trace(session, amount, error) -> None:
    account = make_account(session, balance="100.00")
    event = make_event(session)

    with pytest.raises(error):
        place_bet(session, account.id, [_pick(event)], amount)

    assert get_balance(session, account.id) == Decimal("100.00")
    assert session.execute(select(func.count(Bet.id))).scalar_one() == 0
    assert get_event(session, event.id).options[0].total_staked == Decimal("0.00")
    assert ledger_balance(session, account.id) == Decimal("100.00")


def test_one_closed_leg_rejects_the_whole_bet(session) -> None:
    account = make_account(session, balance="100.00")
    open_one = make_event(session, title="Open")
    closed = make_event(session, title="Closed")
    lock_event(session, closed.id)

    with pytest.raises(EventNotOpen):
        place_bet(session, account.id, [_pick(open_one), _pick(closed)], Decimal("10.00"))

    assert get_balance(session, account.id) == Decimal("100.00")
    assert get_event(session, open_one.id).options[0].total_staked == Decimal("0.00")


def test_unknown_event_and_foreign_option(session) -> None:
    account = make_account(session)
    event = make_event(session, title="Mine")
    other = make_event(session, title="Other")

    with pytest.raises(EventNotOpen):
        place_bet(session, account.id, [LegSelection(event_id=999, option_id=1)], Decimal("1.00"))
    with pytest.raises(InvalidOption):
        place_bet(
            session,
            account.id,
            [LegSelection(event_id=event.id, option_id=other.options[0].id)],
            Decimal("1.00"),
        )


def test_duplicate_event_and_empty_selection_are_invalid(session) -> None:
    account = make_account(session)
    event = make_event(session)

    with pytest.raises(InvalidInput):
        place_bet(session, account.id, [_pick(event, 0), _pick(event, 1)], Decimal("5.00"))
    with pytest.raises(InvalidInput):
        place_bet(session, account.id, [], Decimal("5.00"))


def test_admin_cannot_bet(session) -> None:
    admin = make_account(session, "boss@example.com", balance="100.00", role=AccountRole.ADMIN)
    event = make_event(session)

    with pytest.raises(ForbiddenRole):
        place_bet(session, admin.id, [_pick(event)], Decimal("5.00"))
    assert get_balance(session, admin.id) == Decimal("100.00")


def test_started_event_rejects_bets_before_auto_lock(session) -> None:
    account = make_account(session, balance="100.00")
    started = make_event(session, commence_time=datetime.now(timezone.utc) - timedelta(minutes=1))

    with pytest.raises(EventNotOpen):
        place_bet(session, account.id, [_pick(started)], Decimal("5.00"))
    assert get_balance(session, account.id) == Decimal("100.00")
    assert get_event(session, started.id).options[0].total_staked == Decimal("0.00")


def test_rows_locked_events_by_id_then_account(session, monkeypatch) -> None:
    account = make_account(session, balance="100.00")
    first = make_event(session, title="First")
    second = make_event(session, title="Second")
    order: list[tuple[str, int]] = []

    def tracked_event(db, event_id, *, for_update=False):
        order.append(("event", event_id))
        return load_event(db, event_id, for_update=for_update)

    def tracked_account(db, account_id, *, for_update=False):
        order.append(("account", account_id))
        return load_account(db, account_id, for_update=for_update)

    monkeypatch.setattr(bets, "load_event", tracked_event)
    monkeypatch.setattr(bets, "load_account", tracked_account)

    bet = place_bet(session, account.id, [_pick(second), _pick(first)], Decimal("5.00"))

    assert order == [("event", first.id), ("event", second.id), ("account", account.id)]
    # Legs keep the order they were picked in.
    assert [leg.event_id for leg in bet.legs] == [second.id, first.id]
