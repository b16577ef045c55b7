from decimal import Decimal

import pytest

from bethouse.core.errors import InvalidAmount
from bethouse.core.math import (
    compute_odds,
    derive_bet_status,
    parlay_decimal_odds,
    potential_payout,
    quantize_money,
    resolved_credit,
    validate_amount,
)
from bethouse.domain.enums import BetStatus, PricingModel

EDGE = Decimal("0.05")
FLOOR = Decimal("1.01")


def _parimutuel(stakes: dict[int, str], seeds: dict[int, str] | None = None) -> dict[int, Decimal]:
    stake_map = {key: Decimal(value) for key, value in stakes.items()}
    seed_map = {key: Decimal((seeds or {}).get(key, "2.00")) for key in stakes}
    return compute_odds(
        PricingModel.DYNAMIC_PARIMUTUEL,
        stake_map,
        dict(seed_map),
        seed_map,
        house_edge=EDGE,
        floor=FLOOR,
    )


def test_validate_amount_accepts_two_decimals() -> None:
    assert validate_amount("10.5") == Decimal("10.50")
    assert validate_amount(3) == Decimal("3.00")


@pytest.mark.parametrize("raw", ["0", "-1", "0.001", "abc", "NaN"])
def test_validate_amount_rejects_bad_values(raw: str) -> None:
    with pytest.raises(InvalidAmount):
        validate_amount(raw)


def test_parlay_odds_and_payout_round_down() -> None:
    total = parlay_decimal_odds([Decimal("1.50"), Decimal("2.00")])
    assert total == Decimal("3.0000")
    assert potential_payout(Decimal("10.00"), total) == Decimal("30.00")
    assert quantize_money(Decimal("1.239")) == Decimal("1.23")


def test_fixed_odds_never_move() -> None:
    current = {1: Decimal("2.00"), 2: Decimal("3.50")}
    odds = compute_odds(
        PricingModel.FIXED_ODDS,
        {1: Decimal("500.00"), 2: Decimal("0")},
        current,
        current,
        house_edge=EDGE,
        floor=FLOOR,
    )
    assert odds == current


def test_parimutuel_single_stake_hits_floor() -> None:
    odds = _parimutuel({1: "100.00", 2: "0"})
    # 100 * 0.95 / 100 = 0.95 is clamped to the floor; unstaked keeps its seed.
    assert odds[1] == Decimal("1.01")
    assert odds[2] == Decimal("2.00")


def test_parimutuel_balanced_pool() -> None:
    odds = _parimutuel({1: "100.00", 2: "100.00"})
    assert odds == {1: Decimal("1.9000"), 2: Decimal("1.9000")}


def test_parimutuel_rounds_down() -> None:
    odds = _parimutuel({1: "30.00", 2: "70.00"})
    # 95 / 30 = 3.1666... and 95 / 70 = 1.357142...
    assert odds[1] == Decimal("3.1666")
    assert odds[2] == Decimal("1.3571")


def test_compute_odds_requires_matching_option_sets() -> None:
    with pytest.raises(ValueError):
        compute_odds(
            PricingModel.DYNAMIC_PARIMUTUEL,
            {1: Decimal("1")},
            {1: Decimal("2"), 2: Decimal("2")},
            {1: Decimal("2")},
            house_edge=EDGE,
            floor=FLOOR,
        )


def test_derive_bet_status_lost_dominates_pending() -> None:
    assert derive_bet_status([BetStatus.PENDING, BetStatus.LOST]) == BetStatus.LOST
    assert derive_bet_status([BetStatus.WON, BetStatus.PENDING]) == BetStatus.PENDING
    assert derive_bet_status([BetStatus.VOID, BetStatus.VOID]) == BetStatus.VOID
    assert derive_bet_status([BetStatus.WON, BetStatus.VOID]) == BetStatus.WON


def test_resolved_credit_treats_void_leg_as_even() -> None:
    status, credit = resolved_credit(
        Decimal("10.00"),
        [(BetStatus.WON, Decimal("1.5000")), (BetStatus.VOID, Decimal("3.0000"))],
    )
    assert status == BetStatus.WON
    assert credit == Decimal("15.00")


def test_resolved_credit_refunds_all_void_and_pays_nothing_on_loss() -> None:
    assert resolved_credit(Decimal("40.00"), [(BetStatus.VOID, Decimal("2.0"))]) == (
        BetStatus.VOID,
        Decimal("40.00"),
    )
    status, credit = resolved_credit(Decimal("40.00"), [(BetStatus.LOST, Decimal("2.0"))])
    assert status == BetStatus.LOST
    assert credit == Decimal("0")
