from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from bethouse.config import get_settings
from bethouse.core.errors import Contention, NotFound
from bethouse.models import Account, Bet, BetLeg, Event, EventOption, MoneyRequest

# PostgreSQL lock_not_available and deadlock_detected.
_LOCK_FAILURE_STATES = frozenset({"55P03", "40P01"})


def is_lock_failure(exc: DBAPIError) -> bool:
    orig = exc.orig
    state = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return state in _LOCK_FAILURE_STATES


@contextmanager
def atomic(session: Session) -> Iterator[None]:
    """Commit everything done inside the block, or nothing at all.

    Row-lock timeouts and deadlocks reported by the database surface as
    ``Contention`` so callers can retry.
    """
    try:
        yield
        session.commit()
    except DBAPIError as exc:
        session.rollback()
        if is_lock_failure(exc):
            raise Contention("The database is busy with the same rows; please retry.") from exc
        raise
    except Exception:
        session.rollback()
        raise


def _bound_lock_wait(session: Session) -> None:
    if session.get_bind().dialect.name != "postgresql":
        return
    timeout_ms = max(1, int(get_settings().lock_timeout_sec * 1000))
    session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))


def _locked(session: Session, stmt):
    """Run ``stmt`` as ``SELECT ... FOR UPDATE`` with a bounded wait."""
    _bound_lock_wait(session)
    try:
        return session.execute(stmt.with_for_update().execution_options(populate_existing=True))
    except DBAPIError as exc:
        if is_lock_failure(exc):
            session.rollback()
            raise Contention("Timed out waiting for a row lock; please retry.") from exc
        raise


def _fetch(session: Session, model: type, ident: int, for_update: bool):
    stmt = select(model).where(model.id == ident)
    if for_update:
        return _locked(session, stmt).scalars().first()
    return session.execute(stmt).scalars().first()


def load_account(session: Session, account_id: int, *, for_update: bool = False) -> Account:
    account = _fetch(session, Account, account_id, for_update)
    if account is None:
        raise NotFound(f"Account {account_id} not found.")
    return account


def lock_accounts(session: Session, account_ids: Iterable[int]) -> list[Account]:
    """Lock several account rows in ascending id order."""
    ids = sorted(set(account_ids))
    if not ids:
        return []
    stmt = select(Account).where(Account.id.in_(ids)).order_by(Account.id.asc())
    return list(_locked(session, stmt).scalars().all())


def load_event(session: Session, event_id: int, *, for_update: bool = False) -> Event:
    event = _fetch(session, Event, event_id, for_update)
    if event is None:
        raise NotFound(f"Event {event_id} not found.")
    if for_update:
        # Option pools move with every stake; reload them along with the event.
        _locked(session, select(EventOption).where(EventOption.event_id == event_id)).scalars().all()
    return event


def load_money_request(session: Session, request_id: int, *, for_update: bool = False) -> MoneyRequest:
    request = _fetch(session, MoneyRequest, request_id, for_update)
    if request is None:
        raise NotFound(f"Money request {request_id} not found.")
    return request


def bets_on_event(session: Session, event_id: int) -> list[tuple[int, int]]:
    """(bet_id, account_id) pairs of every bet with a leg on the event."""
    rows = session.execute(
        select(Bet.id, Bet.account_id)
        .join(BetLeg, BetLeg.bet_id == Bet.id)
        .where(BetLeg.event_id == event_id)
        .order_by(Bet.id.asc())
    ).all()
    return [(bet_id, account_id) for bet_id, account_id in rows]


def load_bets_for_update(session: Session, bet_ids: list[int]) -> list[Bet]:
    if not bet_ids:
        return []
    bets = (
        _locked(session, select(Bet).where(Bet.id.in_(bet_ids)).order_by(Bet.id.asc()))
        .scalars()
        .all()
    )
    # Refresh legs too; another settlement may have resolved some of them.
    _locked(
        session, select(BetLeg).where(BetLeg.bet_id.in_(bet_ids)).order_by(BetLeg.id.asc())
    ).scalars().all()
    return list(bets)
