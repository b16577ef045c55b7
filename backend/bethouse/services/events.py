from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from bethouse.config import get_settings
from bethouse.core.errors import Contention, InvalidInput, InvalidStateTransition
from bethouse.core.locks import event_key, get_lock_manager
from bethouse.core.math import quantize_odd
from bethouse.domain.enums import EventCategory, EventStatus, NotificationType, PricingModel
from bethouse.domain.lifecycle import ensure_transition
from bethouse.domain.types import OptionSpec
from bethouse.models import Event, EventOption
from bethouse.services import notifications, settlement
from bethouse.services.repository import atomic, load_event
from bethouse.services.serializers import serialize_event
from bethouse.utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


def _seed_odds(pricing_model: PricingModel, options: Sequence[OptionSpec]) -> list[Decimal]:
    settings = get_settings()
    seeds: list[Decimal] = []
    for spec in options:
        odd = spec.initial_odd
        if odd is None:
            if pricing_model == PricingModel.FIXED_ODDS:
                raise InvalidInput(f"Option '{spec.name}' needs an initial odd for fixed-odds pricing.")
            odd = settings.default_seed_odd
        odd = Decimal(odd)
        if not odd.is_finite() or odd < Decimal("1"):
            raise InvalidInput(f"Option '{spec.name}' odd must be at least 1.0.")
        seeds.append(quantize_odd(odd))
    return seeds


def create_event(
    session: Session,
    *,
    title: str,
    pricing_model: PricingModel,
    commence_time: datetime,
    options: Sequence[OptionSpec],
    category: EventCategory = EventCategory.SPORTS,
    description: str = "",
) -> Event:
    if not title.strip():
        raise InvalidInput("Event title must not be empty.")
    if len(options) < 2:
        raise InvalidInput("An event needs at least two options.")
    names = [spec.name.strip().lower() for spec in options]
    if len(set(names)) != len(names):
        raise InvalidInput("Option names must be unique within an event.")
    seeds = _seed_odds(pricing_model, options)

    with atomic(session):
        event = Event(
            title=title.strip(),
            description=description,
            category=category.value,
            pricing_model=pricing_model.value,
            commence_time=ensure_utc(commence_time),
            status=EventStatus.PENDING.value,
        )
        for position, (spec, seed) in enumerate(zip(options, seeds, strict=True)):
            event.options.append(
                EventOption(
                    position=position,
                    name=spec.name.strip(),
                    seed_odd=seed,
                    current_odd=seed,
                    total_staked=Decimal("0.00"),
                )
            )
        session.add(event)
        session.flush()
        _announce(session, event)
    logger.info("Event created: id=%s model=%s options=%d", event.id, event.pricing_model, len(event.options))
    return event


def _announce(session: Session, event: Event, type_: NotificationType | None = None, message: str = "") -> None:
    notifications.enqueue(
        session,
        topic=notifications.EVENTS_TOPIC,
        type_=NotificationType.EVENT_UPDATED,
        payload=serialize_event(event),
    )
    if type_ is not None:
        notifications.enqueue(
            session,
            topic=notifications.GLOBAL_TOPIC,
            type_=type_,
            message=message,
            payload={"eventId": event.id},
        )


def _transition(session: Session, event_id: int, target: EventStatus) -> Event:
    with get_lock_manager().hold(event_key(event_id)):
        with atomic(session):
            event = load_event(session, event_id, for_update=True)
            ensure_transition(event.status, target)
            event.status = target.value
            event.updated_at = utcnow()
            if target == EventStatus.OPEN:
                _announce(session, event, NotificationType.NEW_EVENT, f"New event open for betting: {event.title}")
            else:
                _announce(session, event, NotificationType.EVENT_LOCKED, f"Betting closed for {event.title}")
    logger.info("Event %s moved to %s", event_id, target.value)
    return event


def open_event(session: Session, event_id: int) -> Event:
    return _transition(session, event_id, EventStatus.OPEN)


def lock_event(session: Session, event_id: int) -> Event:
    return _transition(session, event_id, EventStatus.LOCKED)


def cancel_event(session: Session, event_id: int) -> Event:
    """Cancel a PENDING or OPEN event and void every leg placed on it."""
    settlement.cancel_event(session, event_id)
    return load_event(session, event_id)


def transition_status(session: Session, event_id: int, target: EventStatus) -> Event:
    if target == EventStatus.OPEN:
        return open_event(session, event_id)
    if target == EventStatus.LOCKED:
        return lock_event(session, event_id)
    if target == EventStatus.CANCELED:
        return cancel_event(session, event_id)
    raise InvalidStateTransition(f"Status {target.value} cannot be set directly; settle the event instead.")


def get_event(session: Session, event_id: int) -> Event:
    return load_event(session, event_id)


def get_open_events(session: Session) -> list[Event]:
    rows = (
        session.execute(
            select(Event)
            .where(Event.status == EventStatus.OPEN.value)
            .order_by(Event.commence_time.asc(), Event.id.asc())
        )
        .scalars()
        .all()
    )
    return list(rows)


def list_all_events(session: Session) -> list[Event]:
    rows = session.execute(select(Event).order_by(desc(Event.created_at), desc(Event.id))).scalars().all()
    return list(rows)


def auto_lock_due_events(session: Session, now: datetime | None = None) -> list[int]:
    """Lock OPEN events whose start time has passed."""
    now = now or utcnow()
    due_ids = (
        session.execute(
            select(Event.id)
            .where(Event.status == EventStatus.OPEN.value, Event.commence_time <= now)
            .order_by(Event.id.asc())
        )
        .scalars()
        .all()
    )
    locked: list[int] = []
    for event_id in due_ids:
        try:
            lock_event(session, event_id)
            locked.append(event_id)
        except InvalidStateTransition:
            logger.info("Event %s changed status before auto-lock; skipping", event_id)
        except Contention:
            logger.warning("Event %s busy during auto-lock; will retry next run", event_id)
    return locked
