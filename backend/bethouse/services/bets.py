from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from bethouse.config import get_settings
from bethouse.core.errors import (
    EventNotOpen,
    ForbiddenRole,
    InsufficientFunds,
    InvalidInput,
    InvalidOption,
    NotFound,
)
from bethouse.core.locks import account_key, event_key, get_lock_manager
from bethouse.core.math import parlay_decimal_odds, potential_payout, validate_amount
from bethouse.domain.enums import (
    BadgeTrigger,
    BetStatus,
    EventStatus,
    NotificationType,
    TransactionOrigin,
    TransactionType,
)
from bethouse.domain.types import LegSelection
from bethouse.models import Bet, BetLeg, Event, EventOption
from bethouse.services import badges, notifications
from bethouse.services.accounts import is_admin
from bethouse.services.ledger import post_transaction
from bethouse.services.odds import apply_stake
from bethouse.services.repository import atomic, load_account, load_event
from bethouse.services.serializers import serialize_event
from bethouse.utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


def _validate_selections(selections: Sequence[LegSelection]) -> list[LegSelection]:
    if not selections:
        raise InvalidInput("A bet needs at least one selection.")
    seen: set[int] = set()
    for selection in selections:
        if selection.event_id in seen:
            raise InvalidInput(f"Event {selection.event_id} appears in more than one leg.")
        seen.add(selection.event_id)
    return list(selections)


def _resolve_legs(
    session: Session, selections: list[LegSelection]
) -> list[tuple[LegSelection, Event, EventOption]]:
    """Lock the selected events in ascending id order and check each leg.

    Legs come back in the caller's order.
    """
    events: dict[int, Event] = {}
    now = utcnow()
    for event_id in sorted(selection.event_id for selection in selections):
        try:
            event = load_event(session, event_id, for_update=True)
        except NotFound as exc:
            raise EventNotOpen(f"Event {event_id} does not exist or is not open.") from exc
        if event.status != EventStatus.OPEN.value:
            raise EventNotOpen(f"Event '{event.title}' is {event.status} and no longer takes bets.")
        if ensure_utc(event.commence_time) <= now:
            raise EventNotOpen(f"Event '{event.title}' has already started.")
        events[event_id] = event

    resolved: list[tuple[LegSelection, Event, EventOption]] = []
    for selection in selections:
        event = events[selection.event_id]
        option = next((opt for opt in event.options if opt.id == selection.option_id), None)
        if option is None:
            raise InvalidOption(f"Option {selection.option_id} does not belong to event {event.id}.")
        resolved.append((selection, event, option))
    return resolved


def place_bet(
    session: Session,
    account_id: int,
    selections: Sequence[LegSelection],
    amount: Decimal | str | int,
) -> Bet:
    """Place a single or multi-leg bet.

    Odds are locked from each option's current odd before the stake enters
    the pool. The stake debit, the pool updates and the bet row commit
    together, or not at all.
    """
    amount = validate_amount(amount)
    selections = _validate_selections(selections)
    settings = get_settings()

    keys = [event_key(selection.event_id) for selection in selections]
    keys.append(account_key(account_id))
    with get_lock_manager().hold(*keys):
        with atomic(session):
            # Row locks follow the lock manager: events by id, then the account.
            legs = _resolve_legs(session, selections)
            account = load_account(session, account_id, for_update=True)
            if is_admin(account):
                raise ForbiddenRole("Administrators cannot place bets.")
            if account.balance < amount:
                raise InsufficientFunds(
                    f"Balance {account.balance:.2f} is not enough for a {amount:.2f} stake."
                )

            locked_odds = [option.current_odd for _selection, _event, option in legs]
            total_odd = parlay_decimal_odds(locked_odds)
            bet = Bet(
                account_id=account.id,
                amount=amount,
                total_odd=total_odd,
                potential_payout=potential_payout(amount, total_odd),
                status=BetStatus.PENDING.value,
                created_at=utcnow(),
            )
            for position, ((selection, event, option), odd) in enumerate(zip(legs, locked_odds, strict=True)):
                bet.legs.append(
                    BetLeg(
                        position=position,
                        event_id=event.id,
                        chosen_option_id=option.id,
                        locked_odd=odd,
                        status=BetStatus.PENDING.value,
                    )
                )
            session.add(bet)
            session.flush()

            post_transaction(
                session,
                account,
                tx_type=TransactionType.WITHDRAW,
                origin=TransactionOrigin.BET_ENTRY,
                amount=amount,
                reference_type="bet",
                reference_id=bet.id,
                description=f"Bet #{bet.id} ({len(legs)} leg{'s' if len(legs) > 1 else ''})",
            )
            for _selection, event, option in legs:
                apply_stake(event, option, amount, settings)
                notifications.enqueue(
                    session,
                    topic=notifications.EVENTS_TOPIC,
                    type_=NotificationType.EVENT_UPDATED,
                    payload=serialize_event(event),
                )
            badges.evaluate(session, account, BadgeTrigger.BET_PLACED, bet=bet)

    logger.info(
        "Bet placed: id=%s account=%s legs=%d amount=%s total_odd=%s",
        bet.id,
        account_id,
        len(bet.legs),
        amount,
        total_odd,
    )
    return bet


def get_bets_for_account(session: Session, account_id: int) -> list[Bet]:
    load_account(session, account_id)
    rows = (
        session.execute(
            select(Bet)
            .where(Bet.account_id == account_id)
            .order_by(desc(Bet.created_at), desc(Bet.id))
        )
        .scalars()
        .all()
    )
    return list(rows)
