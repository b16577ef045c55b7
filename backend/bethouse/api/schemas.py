from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bethouse.domain.enums import AccountRole, EventCategory, EventStatus, PricingModel
from bethouse.domain.types import LegSelection, OptionSpec


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SelectionIn(_CamelModel):
    event_id: int = Field(alias="eventId")
    option_id: int = Field(alias="optionId")

    def to_selection(self) -> LegSelection:
        return LegSelection(event_id=self.event_id, option_id=self.option_id)


class PlaceBetIn(_CamelModel):
    """Multi-leg body, or the older single-leg form with eventId/optionId at the top level."""

    selections: list[SelectionIn] | None = None
    event_id: int | None = Field(None, alias="eventId")
    option_id: int | None = Field(None, alias="optionId")
    amount: Decimal

    @model_validator(mode="after")
    def _fold_single_leg(self) -> PlaceBetIn:
        if self.selections is None:
            if self.event_id is None or self.option_id is None:
                raise ValueError("either selections or eventId/optionId is required")
            self.selections = [SelectionIn(eventId=self.event_id, optionId=self.option_id)]
        return self

    def to_selections(self) -> list[LegSelection]:
        return [selection.to_selection() for selection in self.selections or []]


class MoneyRequestIn(_CamelModel):
    amount: Decimal
    reason: str = ""


class OptionIn(_CamelModel):
    name: str
    initial_odd: Decimal | None = Field(None, alias="initialOdd")

    def to_spec(self) -> OptionSpec:
        return OptionSpec(name=self.name, initial_odd=self.initial_odd)


class CreateEventIn(_CamelModel):
    title: str
    description: str = ""
    category: EventCategory = EventCategory.SPORTS
    pricing_model: PricingModel = Field(PricingModel.FIXED_ODDS, alias="pricingModel")
    commence_time: datetime = Field(alias="commenceTime")
    options: list[OptionIn]


class StatusIn(_CamelModel):
    status: EventStatus


class SettleIn(_CamelModel):
    winner_option_id: int = Field(alias="winnerOptionId")


class CreateAccountIn(_CamelModel):
    email: str
    name: str = ""
    role: AccountRole = AccountRole.USER
    initial_balance: Decimal = Field(Decimal("0"), alias="initialBalance")
