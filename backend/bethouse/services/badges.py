"""Achievement badges.

The catalog is static. Unlock rules run inside the transaction that caused
them (bet placement, bet resolution, bonus claim, money-request approval),
with the account row already locked by that caller. An award writes the
``account_badges`` row, deposits the reward with origin ``BADGE_REWARD`` and
queues a ``BADGE_UNLOCKED`` notice for the owner, all without committing.

Each badge is earned at most once per account; the unique constraint on
``(account_id, code)`` backs the check done here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from bethouse.domain.enums import (
    BadgeCategory,
    BadgeTrigger,
    BetStatus,
    MoneyRequestStatus,
    NotificationType,
    TransactionOrigin,
    TransactionType,
)
from bethouse.models import Account, Bet, EarnedBadge, LedgerTransaction, MoneyRequest
from bethouse.services import ledger, notifications
from bethouse.utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

LOSING_STREAK = 5
BIG_LOSS = Decimal("500.00")
LONGSHOT_WIN_ODD = Decimal("10")
DREAMER_ODD = Decimal("50")
RICH_BALANCE = Decimal("10000.00")
BROKE_BALANCE = Decimal("1.00")
LOYAL_BONUS_CLAIMS = 7
APPROVED_REQUESTS = 3
BUSY_BETTOR_BETS = 10
LAST_MINUTE = timedelta(minutes=10)


@dataclass(frozen=True, slots=True)
class BadgeDefinition:
    code: str
    title: str
    description: str
    category: BadgeCategory
    reward: Decimal


BADGE_CATALOG: tuple[BadgeDefinition, ...] = (
    BadgeDefinition(
        "MICK_JAGGER", "Pé-Frio Mick Jagger",
        f"Perdeu {LOSING_STREAK} apostas seguidas.", BadgeCategory.TRAGEDY, Decimal("50.00"),
    ),
    BadgeDefinition(
        "TITANIC", "Titanic",
        "Apostou o saldo inteiro e afundou junto.", BadgeCategory.TRAGEDY, Decimal("10.00"),
    ),
    BadgeDefinition(
        "VASCO", "Vasco da Gama",
        "Acertou tudo numa múltipla e caiu justo na última perna.", BadgeCategory.TRAGEDY, Decimal("200.00"),
    ),
    BadgeDefinition(
        "ROBIN_HOOD_REVERSO", "Robin Hood Reverso",
        f"Doou {BIG_LOSS:.0f} ou mais para a banca numa aposta só.", BadgeCategory.TRAGEDY, Decimal("5.00"),
    ),
    BadgeDefinition(
        "JULIUS", "Julius",
        f"Resgatou o bônus diário {LOYAL_BONUS_CLAIMS} vezes.", BadgeCategory.FINANCE, Decimal("0.50"),
    ),
    BadgeDefinition(
        "CLT_SOFRIDO", "CLT Sofrido",
        "Precisou do bônus diário com a carteira zerada.", BadgeCategory.FINANCE, Decimal("20.00"),
    ),
    BadgeDefinition(
        "PRIMO_RICO", "Primo Rico",
        f"Chegou a {RICH_BALANCE:.0f} de saldo.", BadgeCategory.FINANCE, Decimal("500.00"),
    ),
    BadgeDefinition(
        "MAE_DINAH", "Mãe Dinah",
        f"Ganhou uma aposta com odd {LONGSHOT_WIN_ODD} ou maior.", BadgeCategory.LUCK, Decimal("1000.00"),
    ),
    BadgeDefinition(
        "INIMIGO_DO_FIM", "Inimigo do Fim",
        "Apostou nos últimos 10 minutos antes do início.", BadgeCategory.LUCK, Decimal("20.00"),
    ),
    BadgeDefinition(
        "ILUDIDO", "Iludido",
        f"Montou uma aposta com odd total {DREAMER_ODD} ou maior.", BadgeCategory.LUCK, Decimal("50.00"),
    ),
    BadgeDefinition(
        "PUXA_SACO", "Puxa-Saco",
        f"Teve {APPROVED_REQUESTS} pedidos de dinheiro aprovados.", BadgeCategory.CORPORATE, Decimal("100.00"),
    ),
    BadgeDefinition(
        "REUNIAO_EMAIL", "Essa Reunião Podia Ser um Email",
        f"Fez {BUSY_BETTOR_BETS} apostas.", BadgeCategory.CORPORATE, Decimal("15.00"),
    ),
    BadgeDefinition(
        "DONO_DA_BANCA", "Dono da Banca",
        "Conquistou todas as outras medalhas.", BadgeCategory.PLATINUM, Decimal("5000.00"),
    ),
)

BADGES_BY_CODE = {badge.code: badge for badge in BADGE_CATALOG}
PLATINUM_CODE = "DONO_DA_BANCA"


@dataclass(slots=True)
class BadgeContext:
    session: Session
    account: Account
    bet: Bet | None = None
    transaction: LedgerTransaction | None = None


def _losing_streak(ctx: BadgeContext) -> bool:
    if ctx.bet is None or ctx.bet.status != BetStatus.LOST.value:
        return False
    recent = ctx.session.execute(
        select(Bet.status)
        .where(Bet.account_id == ctx.account.id, Bet.status != BetStatus.PENDING.value)
        .order_by(desc(Bet.resolved_at), desc(Bet.id))
        .limit(LOSING_STREAK)
    ).scalars().all()
    return len(recent) == LOSING_STREAK and all(status == BetStatus.LOST.value for status in recent)


def _sank_whole_balance(ctx: BadgeContext) -> bool:
    if ctx.bet is None or ctx.bet.status != BetStatus.LOST.value:
        return False
    balance_after = ctx.session.execute(
        select(LedgerTransaction.balance_after).where(
            LedgerTransaction.reference_type == "bet",
            LedgerTransaction.reference_id == ctx.bet.id,
            LedgerTransaction.origin == TransactionOrigin.BET_ENTRY.value,
        )
    ).scalar_one_or_none()
    return balance_after is not None and balance_after == 0


def _lost_on_last_leg(ctx: BadgeContext) -> bool:
    bet = ctx.bet
    if bet is None or bet.status != BetStatus.LOST.value or len(bet.legs) < 2:
        return False
    statuses = [leg.status for leg in bet.legs]
    return statuses.count(BetStatus.LOST.value) == 1 and statuses.count(BetStatus.WON.value) == len(statuses) - 1


def _big_loss(ctx: BadgeContext) -> bool:
    return ctx.bet is not None and ctx.bet.status == BetStatus.LOST.value and ctx.bet.amount >= BIG_LOSS


def _loyal_bonus(ctx: BadgeContext) -> bool:
    claims = ctx.session.execute(
        select(func.count(LedgerTransaction.id)).where(
            LedgerTransaction.account_id == ctx.account.id,
            LedgerTransaction.origin == TransactionOrigin.DAILY_BONUS.value,
        )
    ).scalar_one()
    return claims >= LOYAL_BONUS_CLAIMS


def _broke_at_bonus(ctx: BadgeContext) -> bool:
    tx = ctx.transaction
    if tx is None or tx.balance_after - tx.amount >= BROKE_BALANCE:
        return False
    return _bet_count(ctx) > 0


def _rich(ctx: BadgeContext) -> bool:
    return ctx.account.balance >= RICH_BALANCE


def _longshot_win(ctx: BadgeContext) -> bool:
    bet = ctx.bet
    return bet is not None and bet.status == BetStatus.WON.value and bet.total_odd >= LONGSHOT_WIN_ODD


def _last_minute(ctx: BadgeContext) -> bool:
    if ctx.bet is None:
        return False
    deadline = utcnow() + LAST_MINUTE
    return any(ensure_utc(leg.event.commence_time) <= deadline for leg in ctx.bet.legs)


def _dreamer(ctx: BadgeContext) -> bool:
    return ctx.bet is not None and ctx.bet.total_odd >= DREAMER_ODD


def _favored(ctx: BadgeContext) -> bool:
    approved = ctx.session.execute(
        select(func.count(MoneyRequest.id)).where(
            MoneyRequest.account_id == ctx.account.id,
            MoneyRequest.status == MoneyRequestStatus.APPROVED.value,
        )
    ).scalar_one()
    return approved >= APPROVED_REQUESTS


def _bet_count(ctx: BadgeContext) -> int:
    return ctx.session.execute(
        select(func.count(Bet.id)).where(Bet.account_id == ctx.account.id)
    ).scalar_one()


def _busy_bettor(ctx: BadgeContext) -> bool:
    return _bet_count(ctx) >= BUSY_BETTOR_BETS


UnlockRule = Callable[[BadgeContext], bool]

UNLOCK_RULES: dict[BadgeTrigger, tuple[tuple[str, UnlockRule], ...]] = {
    BadgeTrigger.BET_PLACED: (
        ("INIMIGO_DO_FIM", _last_minute),
        ("ILUDIDO", _dreamer),
        ("REUNIAO_EMAIL", _busy_bettor),
    ),
    BadgeTrigger.BET_RESOLVED: (
        ("MICK_JAGGER", _losing_streak),
        ("TITANIC", _sank_whole_balance),
        ("VASCO", _lost_on_last_leg),
        ("ROBIN_HOOD_REVERSO", _big_loss),
        ("MAE_DINAH", _longshot_win),
        ("PRIMO_RICO", _rich),
    ),
    BadgeTrigger.BONUS_CLAIMED: (
        ("JULIUS", _loyal_bonus),
        ("CLT_SOFRIDO", _broke_at_bonus),
        ("PRIMO_RICO", _rich),
    ),
    BadgeTrigger.MONEY_REQUEST_APPROVED: (
        ("PUXA_SACO", _favored),
        ("PRIMO_RICO", _rich),
    ),
}


def earned_codes(session: Session, account_id: int) -> set[str]:
    return set(
        session.execute(select(EarnedBadge.code).where(EarnedBadge.account_id == account_id)).scalars().all()
    )


def award_badge(session: Session, account: Account, code: str) -> EarnedBadge:
    """Record the badge, pay its reward and notify the owner. Does not commit.

    ``account`` must already be locked by the caller.
    """
    badge = BADGES_BY_CODE[code]
    earned = EarnedBadge(account_id=account.id, code=code, earned_at=utcnow())
    session.add(earned)
    session.flush()
    ledger.post_transaction(
        session,
        account,
        tx_type=TransactionType.DEPOSIT,
        origin=TransactionOrigin.BADGE_REWARD,
        amount=badge.reward,
        reference_type="badge",
        reference_id=earned.id,
        description=f"Badge: {badge.title}",
    )
    notifications.notify_user(
        session,
        account.id,
        NotificationType.BADGE_UNLOCKED,
        f"Nova medalha: {badge.title}! +{badge.reward:.2f}",
        payload={"code": code, "title": badge.title, "rewardAmount": float(badge.reward)},
    )
    logger.info("Badge unlocked: account=%s code=%s reward=%s", account.id, code, badge.reward)
    return earned


def evaluate(
    session: Session,
    account: Account,
    trigger: BadgeTrigger,
    *,
    bet: Bet | None = None,
    transaction: LedgerTransaction | None = None,
) -> list[EarnedBadge]:
    """Award every badge whose rule for ``trigger`` now holds."""
    session.flush()
    owned = earned_codes(session, account.id)
    ctx = BadgeContext(session=session, account=account, bet=bet, transaction=transaction)
    awarded: list[EarnedBadge] = []
    for code, rule in UNLOCK_RULES[trigger]:
        if code in owned or not rule(ctx):
            continue
        awarded.append(award_badge(session, account, code))
        owned.add(code)

    if awarded and PLATINUM_CODE not in owned and owned >= set(BADGES_BY_CODE) - {PLATINUM_CODE}:
        awarded.append(award_badge(session, account, PLATINUM_CODE))
    return awarded


def list_catalog() -> list[BadgeDefinition]:
    return list(BADGE_CATALOG)


def list_earned(session: Session, account_id: int) -> list[EarnedBadge]:
    rows = session.execute(
        select(EarnedBadge)
        .where(EarnedBadge.account_id == account_id)
        .order_by(EarnedBadge.earned_at.asc(), EarnedBadge.id.asc())
    ).scalars().all()
    return list(rows)
