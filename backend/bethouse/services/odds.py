from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from bethouse.config import Settings, get_settings
from bethouse.core.math import ZERO, compute_odds
from bethouse.domain.enums import PricingModel
from bethouse.models import Event, EventOption
from bethouse.services.repository import load_event


def reprice(event: Event, settings: Settings) -> dict[int, Decimal]:
    """Recompute every option's odd from the event's current pool."""
    stakes = {option.id: option.total_staked for option in event.options}
    current = {option.id: option.current_odd for option in event.options}
    seeds = {option.id: option.seed_odd for option in event.options}
    odds = compute_odds(
        PricingModel(event.pricing_model),
        stakes,
        current,
        seeds,
        house_edge=settings.house_edge,
        floor=settings.odds_floor,
    )
    for option in event.options:
        option.current_odd = odds[option.id]
    return odds


def apply_stake(event: Event, option: EventOption, amount: Decimal, settings: Settings | None = None) -> dict[int, Decimal]:
    """Add a stake to the option's pool and reprice the whole option set.

    The caller must hold the event lock; the pool total changes for every
    option, so a partial recompute would leave stale odds behind.
    """
    settings = settings or get_settings()
    if option.event_id != event.id:
        raise ValueError("option does not belong to event")
    option.total_staked = option.total_staked + amount
    return reprice(event, settings)


def pool_snapshot(session: Session, event_id: int) -> dict[str, object]:
    event = load_event(session, event_id)
    total_pool = sum((option.total_staked for option in event.options), ZERO)
    return {
        "eventId": event.id,
        "pricingModel": event.pricing_model,
        "status": event.status,
        "totalPool": float(total_pool),
        "options": [
            {
                "id": option.id,
                "name": option.name,
                "currentOdd": float(option.current_odd),
                "totalStaked": float(option.total_staked),
            }
            for option in event.options
        ],
    }
