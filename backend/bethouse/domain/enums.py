from enum import StrEnum


class AccountRole(StrEnum):
    USER = "USER"
    ADMIN = "ADMIN"


class TransactionType(StrEnum):
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"


class TransactionOrigin(StrEnum):
    DAILY_BONUS = "DAILY_BONUS"
    BET_ENTRY = "BET_ENTRY"
    BET_WIN = "BET_WIN"
    ADMIN_GIFT = "ADMIN_GIFT"
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"
    REFUND = "REFUND"
    BADGE_REWARD = "BADGE_REWARD"


class EventCategory(StrEnum):
    SPORTS = "SPORTS"
    INTERNAL = "INTERNAL"


class PricingModel(StrEnum):
    FIXED_ODDS = "FIXED_ODDS"
    DYNAMIC_PARIMUTUEL = "DYNAMIC_PARIMUTUEL"


class EventStatus(StrEnum):
    PENDING = "PENDING"
    OPEN = "OPEN"
    LOCKED = "LOCKED"
    SETTLED = "SETTLED"
    CANCELED = "CANCELED"


class BetStatus(StrEnum):
    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"
    VOID = "VOID"


class MoneyRequestStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class NotificationType(StrEnum):
    EVENT_UPDATED = "EVENT_UPDATED"
    NEW_EVENT = "NEW_EVENT"
    EVENT_LOCKED = "EVENT_LOCKED"
    BET_WON = "BET_WON"
    BET_LOST = "BET_LOST"
    BET_VOID = "BET_VOID"
    NEW_MONEY_REQUEST = "NEW_MONEY_REQUEST"
    MONEY_REQUEST_APPROVED = "MONEY_REQUEST_APPROVED"
    MONEY_REQUEST_REJECTED = "MONEY_REQUEST_REJECTED"
    BADGE_UNLOCKED = "BADGE_UNLOCKED"


class BadgeCategory(StrEnum):
    TRAGEDY = "TRAGEDY"
    FINANCE = "FINANCE"
    LUCK = "LUCK"
    CORPORATE = "CORPORATE"
    PLATINUM = "PLATINUM"


class BadgeTrigger(StrEnum):
    BET_PLACED = "BET_PLACED"
    BET_RESOLVED = "BET_RESOLVED"
    BONUS_CLAIMED = "BONUS_CLAIMED"
    MONEY_REQUEST_APPROVED = "MONEY_REQUEST_APPROVED"

