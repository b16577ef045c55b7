from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from bethouse.models import Account, Bet, EarnedBadge, Event, EventOption, LedgerTransaction, MoneyRequest
from bethouse.utils import as_utc_iso

if TYPE_CHECKING:
    from bethouse.services.badges import BadgeDefinition


def _num(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value)


def serialize_option(option: EventOption) -> dict[str, object]:
    return {
        "id": option.id,
        "eventId": option.event_id,
        "name": option.name,
        "currentOdd": _num(option.current_odd),
        "totalStaked": _num(option.total_staked),
    }


def serialize_event(event: Event) -> dict[str, object]:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "category": event.category,
        "status": event.status,
        "pricingModel": event.pricing_model,
        "commenceTime": as_utc_iso(event.commence_time),
        "winnerOptionId": event.winner_option_id,
        "totalPool": _num(sum((option.total_staked for option in event.options), Decimal("0"))),
        "options": [serialize_option(option) for option in event.options],
    }


def serialize_bet(bet: Bet) -> dict[str, object]:
    return {
        "id": bet.id,
        "accountId": bet.account_id,
        "type": "MULTIPLE" if len(bet.legs) > 1 else "SINGLE",
        "amount": _num(bet.amount),
        "totalOdd": _num(bet.total_odd),
        "potentialPayout": _num(bet.potential_payout),
        "payout": _num(bet.payout),
        "status": bet.status,
        "createdAt": as_utc_iso(bet.created_at),
        "resolvedAt": as_utc_iso(bet.resolved_at),
        "legs": [
            {
                "eventId": leg.event_id,
                "eventTitle": leg.event.title if leg.event is not None else None,
                "chosenOptionId": leg.chosen_option_id,
                "chosenOptionName": leg.option.name if leg.option is not None else None,
                "lockedOdd": _num(leg.locked_odd),
                "status": leg.status,
            }
            for leg in bet.legs
        ],
    }


def serialize_transaction(tx: LedgerTransaction) -> dict[str, object]:
    return {
        "id": tx.id,
        "accountId": tx.account_id,
        "type": tx.type,
        "origin": tx.origin,
        "amount": _num(tx.amount),
        "balanceAfter": _num(tx.balance_after),
        "referenceType": tx.reference_type,
        "referenceId": tx.reference_id,
        "description": tx.description,
        "createdAt": as_utc_iso(tx.created_at),
    }


def serialize_account(account: Account) -> dict[str, object]:
    return {
        "id": account.id,
        "email": account.email,
        "name": account.display_name,
        "role": account.role,
        "walletBalance": _num(account.balance),
    }


def serialize_money_request(request: MoneyRequest) -> dict[str, object]:
    return {
        "id": request.id,
        "userId": request.account_id,
        "userEmail": request.account.email if request.account is not None else None,
        "amountRequested": _num(request.amount),
        "reason": request.reason,
        "status": request.status,
        "handledBy": request.handled_by,
        "handledAt": as_utc_iso(request.handled_at),
        "createdAt": as_utc_iso(request.created_at),
    }


def serialize_badge(badge: BadgeDefinition) -> dict[str, object]:
    return {
        "code": badge.code,
        "title": badge.title,
        "description": badge.description,
        "category": badge.category.value,
        "rewardAmount": _num(badge.reward),
    }


def serialize_earned_badge(earned: EarnedBadge) -> dict[str, object]:
    return {"code": earned.code, "earnedAt": as_utc_iso(earned.earned_at)}
