"""Event settlement and cancellation.

Both operations take the event lock first, discover the bets with a leg on
the event, then take every affected bet lock and account lock in one ordered
acquisition (event -> bet -> account), matching bet placement.

A bet is credited at most once: only bets still PENDING when their last leg
resolves are paid, and a second ``settle_event`` on the same event is stopped
by the SETTLED status guard before anything is touched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from decimal import Decimal

from sqlalchemy.orm import Session

from bethouse.core.errors import AlreadySettled, InvalidOption, InvalidStateTransition
from bethouse.core.locks import account_key, bet_key, event_key, get_lock_manager
from bethouse.core.math import ZERO, resolved_credit
from bethouse.domain.enums import (
    BadgeTrigger,
    BetStatus,
    EventStatus,
    NotificationType,
    TransactionOrigin,
    TransactionType,
)
from bethouse.domain.lifecycle import ensure_transition
from bethouse.models import Bet, BetLeg, Event
from bethouse.services import badges, notifications
from bethouse.services.ledger import post_transaction
from bethouse.services.repository import (
    atomic,
    bets_on_event,
    load_account,
    load_bets_for_update,
    load_event,
    lock_accounts,
)
from bethouse.services.serializers import serialize_event
from bethouse.utils import utcnow

logger = logging.getLogger(__name__)

LegDecision = Callable[[BetLeg], BetStatus]

_OUTCOME_NOTICES = {
    BetStatus.WON: NotificationType.BET_WON,
    BetStatus.LOST: NotificationType.BET_LOST,
    BetStatus.VOID: NotificationType.BET_VOID,
}


def _empty_summary(event_id: int) -> dict[str, object]:
    return {
        "event_id": event_id,
        "bets_touched": 0,
        "won": 0,
        "lost": 0,
        "void": 0,
        "still_pending": 0,
        "paid_out": Decimal("0.00"),
        "refunded": Decimal("0.00"),
    }


def _notice_text(bet: Bet, status: BetStatus, credited: Decimal) -> str:
    if status == BetStatus.WON:
        return f"Bet #{bet.id} won! {credited:.2f} credited to your wallet."
    if status == BetStatus.VOID:
        return f"Bet #{bet.id} was voided; your stake of {credited:.2f} was refunded."
    return f"Bet #{bet.id} lost."


def resolve_bet(session: Session, bet: Bet) -> BetStatus:
    """Finalize a bet once its legs allow it and credit the account if owed.

    Bets that already left PENDING are never credited again. The caller
    holds the owner's account lock.
    """
    if bet.status != BetStatus.PENDING.value:
        return BetStatus(bet.status)

    status, credit = resolved_credit(
        bet.amount,
        [(BetStatus(leg.status), leg.locked_odd) for leg in bet.legs],
    )
    if status == BetStatus.PENDING:
        return status

    bet.status = status.value
    bet.resolved_at = utcnow()
    bet.payout = credit
    account = load_account(session, bet.account_id, for_update=True)
    if credit > ZERO:
        origin = TransactionOrigin.BET_WIN if status == BetStatus.WON else TransactionOrigin.REFUND
        post_transaction(
            session,
            account,
            tx_type=TransactionType.DEPOSIT,
            origin=origin,
            amount=credit,
            reference_type="bet",
            reference_id=bet.id,
            description=f"Bet #{bet.id} {status.value.lower()}",
        )
    notifications.notify_user(
        session,
        bet.account_id,
        _OUTCOME_NOTICES[status],
        _notice_text(bet, status, credit),
        payload={"betId": bet.id, "status": status.value, "credited": float(credit)},
    )
    badges.evaluate(session, account, BadgeTrigger.BET_RESOLVED, bet=bet)
    return status


def _resolve_event_legs(
    session: Session,
    event: Event,
    affected: list[tuple[int, int]],
    decide: LegDecision,
) -> dict[str, object]:
    summary = _empty_summary(event.id)
    bets = load_bets_for_update(session, sorted({bet_id for bet_id, _account in affected}))
    lock_accounts(session, [account_id for _bet, account_id in affected])
    for bet in bets:
        for leg in bet.legs:
            if leg.event_id == event.id and leg.status == BetStatus.PENDING.value:
                leg.status = decide(leg).value
        was_pending = bet.status == BetStatus.PENDING.value
        status = resolve_bet(session, bet)
        summary["bets_touched"] += 1
        if status == BetStatus.PENDING:
            summary["still_pending"] += 1
            continue
        if not was_pending:
            continue
        if status == BetStatus.WON:
            summary["won"] += 1
            summary["paid_out"] += bet.payout
        elif status == BetStatus.LOST:
            summary["lost"] += 1
        else:
            summary["void"] += 1
            summary["refunded"] += bet.payout
    return summary


def _affected_keys(affected: list[tuple[int, int]]) -> list[tuple[str, int]]:
    keys = [bet_key(bet_id) for bet_id, _account in affected]
    keys.extend(account_key(account_id) for _bet, account_id in affected)
    return keys


def settle_event(session: Session, event_id: int, winner_option_id: int) -> dict[str, object]:
    locks = get_lock_manager()
    with locks.hold(event_key(event_id)):
        event = load_event(session, event_id, for_update=True)
        if event.status == EventStatus.SETTLED.value:
            session.rollback()
            raise AlreadySettled(f"Event {event_id} was already settled.")
        if event.status != EventStatus.LOCKED.value:
            session.rollback()
            raise InvalidStateTransition(f"Event {event_id} must be LOCKED to settle, it is {event.status}.")
        if winner_option_id not in {option.id for option in event.options}:
            session.rollback()
            raise InvalidOption(f"Option {winner_option_id} does not belong to event {event_id}.")

        affected = bets_on_event(session, event_id)
        with locks.hold(*_affected_keys(affected)):
            with atomic(session):
                ensure_transition(event.status, EventStatus.SETTLED)
                event.status = EventStatus.SETTLED.value
                event.winner_option_id = winner_option_id
                event.settled_at = utcnow()
                event.updated_at = event.settled_at

                def decide(leg: BetLeg) -> BetStatus:
                    return BetStatus.WON if leg.chosen_option_id == winner_option_id else BetStatus.LOST

                summary = _resolve_event_legs(session, event, affected, decide)
                summary["winner_option_id"] = winner_option_id
                notifications.enqueue(
                    session,
                    topic=notifications.EVENTS_TOPIC,
                    type_=NotificationType.EVENT_UPDATED,
                    payload=serialize_event(event),
                )

    logger.info(
        "Event %s settled: winner=%s bets=%s won=%s lost=%s pending=%s paid=%s",
        event_id,
        winner_option_id,
        summary["bets_touched"],
        summary["won"],
        summary["lost"],
        summary["still_pending"],
        summary["paid_out"],
    )
    return summary


def cancel_event(session: Session, event_id: int) -> dict[str, object]:
    """Cancel the event, void its legs and refund bets left with only void legs.

    The option pools are left as they were; a canceled event accepts no more
    stakes, so its odds are never read for pricing again.
    """
    locks = get_lock_manager()
    with locks.hold(event_key(event_id)):
        event = load_event(session, event_id, for_update=True)
        try:
            ensure_transition(event.status, EventStatus.CANCELED)
        except InvalidStateTransition:
            session.rollback()
            raise

        affected = bets_on_event(session, event_id)
        with locks.hold(*_affected_keys(affected)):
            with atomic(session):
                event.status = EventStatus.CANCELED.value
                event.updated_at = utcnow()
                summary = _resolve_event_legs(session, event, affected, lambda _leg: BetStatus.VOID)
                notifications.enqueue(
                    session,
                    topic=notifications.EVENTS_TOPIC,
                    type_=NotificationType.EVENT_UPDATED,
                    payload=serialize_event(event),
                )

    logger.info(
        "Event %s canceled: bets=%s voided=%s refunded=%s pending=%s",
        event_id,
        summary["bets_touched"],
        summary["void"],
        summary["refunded"],
        summary["still_pending"],
    )
    return summary
