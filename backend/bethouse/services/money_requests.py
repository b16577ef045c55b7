from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import asc, desc, select
from sqlalchemy.orm import Session

from bethouse.config import get_settings
from bethouse.core.errors import InvalidAmount, InvalidStateTransition
from bethouse.core.locks import account_key, get_lock_manager, money_request_key
from bethouse.core.math import validate_amount
from bethouse.domain.enums import (
    BadgeTrigger,
    MoneyRequestStatus,
    NotificationType,
    TransactionOrigin,
    TransactionType,
)
from bethouse.models import MoneyRequest
from bethouse.services import badges, notifications
from bethouse.services.accounts import require_admin
from bethouse.services.ledger import post_transaction
from bethouse.services.repository import atomic, load_account, load_money_request
from bethouse.utils import utcnow

logger = logging.getLogger(__name__)


def create_money_request(session: Session, account_id: int, amount: Decimal | str, reason: str = "") -> MoneyRequest:
    amount = validate_amount(amount)
    limit = get_settings().money_request_max
    if amount > limit:
        raise InvalidAmount(f"Requests are limited to {limit:.2f}.")

    with atomic(session):
        account = load_account(session, account_id)
        request = MoneyRequest(
            account_id=account.id,
            amount=amount,
            reason=reason.strip(),
            status=MoneyRequestStatus.PENDING.value,
            created_at=utcnow(),
        )
        session.add(request)
        session.flush()
        notifications.enqueue(
            session,
            topic=notifications.ADMIN_REQUESTS_TOPIC,
            type_=NotificationType.NEW_MONEY_REQUEST,
            message=f"New request of {amount:.2f} from {account.email}",
            payload={
                "id": request.id,
                "userId": account.id,
                "userEmail": account.email,
                "amountRequested": float(amount),
            },
        )
    logger.info("Money request %s created by account %s for %s", request.id, account_id, amount)
    return request


def list_my_requests(session: Session, account_id: int) -> list[MoneyRequest]:
    rows = (
        session.execute(
            select(MoneyRequest)
            .where(MoneyRequest.account_id == account_id)
            .order_by(desc(MoneyRequest.created_at), desc(MoneyRequest.id))
        )
        .scalars()
        .all()
    )
    return list(rows)


def list_pending_requests(session: Session) -> list[MoneyRequest]:
    rows = (
        session.execute(
            select(MoneyRequest)
            .where(MoneyRequest.status == MoneyRequestStatus.PENDING.value)
            .order_by(asc(MoneyRequest.created_at), asc(MoneyRequest.id))
        )
        .scalars()
        .all()
    )
    return list(rows)


def _handle(session: Session, request_id: int, admin_id: int, approve: bool) -> MoneyRequest:
    require_admin(load_account(session, admin_id))
    # The requester's account id is needed for the lock before the row is locked.
    requester_id = load_money_request(session, request_id).account_id
    session.rollback()

    with get_lock_manager().hold(account_key(requester_id), money_request_key(request_id)):
        with atomic(session):
            account = load_account(session, requester_id, for_update=True)
            request = load_money_request(session, request_id, for_update=True)
            if request.status != MoneyRequestStatus.PENDING.value:
                raise InvalidStateTransition(f"Money request {request_id} was already {request.status}.")
            request.status = (MoneyRequestStatus.APPROVED if approve else MoneyRequestStatus.REJECTED).value
            request.handled_by = admin_id
            request.handled_at = utcnow()
            if approve:
                post_transaction(
                    session,
                    account,
                    tx_type=TransactionType.DEPOSIT,
                    origin=TransactionOrigin.ADMIN_GIFT,
                    amount=request.amount,
                    reference_type="money_request",
                    reference_id=request.id,
                    description=request.reason or "Admin gift",
                )
                badges.evaluate(session, account, BadgeTrigger.MONEY_REQUEST_APPROVED)
                notice = NotificationType.MONEY_REQUEST_APPROVED
                message = f"Your request of {request.amount:.2f} was approved."
            else:
                notice = NotificationType.MONEY_REQUEST_REJECTED
                message = f"Your request of {request.amount:.2f} was rejected."
            notifications.notify_user(
                session,
                request.account_id,
                notice,
                message,
                payload={"requestId": request.id, "status": request.status},
            )
            notifications.enqueue(
                session,
                topic=notifications.ADMIN_REQUESTS_TOPIC,
                type_=notice,
                payload={"id": request.id, "action": request.status},
            )
    logger.info("Money request %s %s by admin %s", request_id, request.status, admin_id)
    return request


def approve_request(session: Session, request_id: int, admin_id: int) -> MoneyRequest:
    return _handle(session, request_id, admin_id, approve=True)


def reject_request(session: Session, request_id: int, admin_id: int) -> MoneyRequest:
    return _handle(session, request_id, admin_id, approve=False)
