from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from decimal import ROUND_DOWN, Decimal

from bethouse.core.errors import InvalidAmount
from bethouse.domain.enums import BetStatus, PricingModel

MONEY_QUANTUM = Decimal("0.01")
ODD_QUANTUM = Decimal("0.0001")
ONE = Decimal("1")
ZERO = Decimal("0")


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_DOWN)


def quantize_odd(value: Decimal) -> Decimal:
    return Decimal(value).quantize(ODD_QUANTUM, rounding=ROUND_DOWN)


def validate_amount(value: Decimal | int | str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except ArithmeticError as exc:
        raise InvalidAmount(f"Amount '{value}' is not a number.") from exc
    if not amount.is_finite() or amount <= ZERO:
        raise InvalidAmount()
    if amount != amount.quantize(MONEY_QUANTUM):
        raise InvalidAmount("Amount must have at most two decimal places.")
    return amount.quantize(MONEY_QUANTUM)


def parlay_decimal_odds(odds: Sequence[Decimal]) -> Decimal:
    if not odds:
        raise ValueError("odds must not be empty")
    product = ONE
    for odd in odds:
        product *= Decimal(odd)
    return quantize_odd(product)


def potential_payout(amount: Decimal, total_odd: Decimal) -> Decimal:
    return quantize_money(Decimal(amount) * Decimal(total_odd))


def _fixed_odds(
    stakes: Mapping[int, Decimal],
    current: Mapping[int, Decimal],
    seeds: Mapping[int, Decimal],
    house_edge: Decimal,
    floor: Decimal,
) -> dict[int, Decimal]:
    return dict(current)


def _parimutuel_odds(
    stakes: Mapping[int, Decimal],
    current: Mapping[int, Decimal],
    seeds: Mapping[int, Decimal],
    house_edge: Decimal,
    floor: Decimal,
) -> dict[int, Decimal]:
    total_pool = sum(stakes.values(), ZERO)
    distributable = total_pool * (ONE - house_edge)
    odds: dict[int, Decimal] = {}
    for option_id, staked in stakes.items():
        if staked <= ZERO:
            odds[option_id] = seeds[option_id]
            continue
        odds[option_id] = max(floor, quantize_odd(distributable / staked))
    return odds


PRICING_STRATEGIES: dict[PricingModel, Callable[..., dict[int, Decimal]]] = {
    PricingModel.FIXED_ODDS: _fixed_odds,
    PricingModel.DYNAMIC_PARIMUTUEL: _parimutuel_odds,
}


def compute_odds(
    model: PricingModel,
    stakes: Mapping[int, Decimal],
    current: Mapping[int, Decimal],
    seeds: Mapping[int, Decimal],
    *,
    house_edge: Decimal,
    floor: Decimal,
) -> dict[int, Decimal]:
    if set(stakes) != set(current) or set(stakes) != set(seeds):
        raise ValueError("stakes, current and seeds must cover the same options")
    return PRICING_STRATEGIES[model](stakes, current, seeds, house_edge, floor)


def derive_bet_status(leg_statuses: Sequence[BetStatus]) -> BetStatus:
    if not leg_statuses:
        raise ValueError("a bet must have at least one leg")
    if any(status == BetStatus.LOST for status in leg_statuses):
        return BetStatus.LOST
    if any(status == BetStatus.PENDING for status in leg_statuses):
        return BetStatus.PENDING
    if all(status == BetStatus.VOID for status in leg_statuses):
        return BetStatus.VOID
    # Every leg is WON or VOID; void legs count as odd 1.0.
    return BetStatus.WON


def resolved_credit(amount: Decimal, legs: Sequence[tuple[BetStatus, Decimal]]) -> tuple[BetStatus, Decimal]:
    """Final status of a bet and the amount owed back to its account."""
    status = derive_bet_status([leg_status for leg_status, _odd in legs])
    if status == BetStatus.WON:
        won_odds = [odd for leg_status, odd in legs if leg_status == BetStatus.WON]
        return status, potential_payout(amount, parlay_decimal_odds(won_odds))
    if status == BetStatus.VOID:
        return status, quantize_money(amount)
    return status, ZERO
