from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class LegSelection:
    event_id: int
    option_id: int

    def __post_init__(self) -> None:
        if self.event_id <= 0:
            raise ValueError("event_id must be a positive id")
        if self.option_id <= 0:
            raise ValueError("option_id must be a positive id")


@dataclass(frozen=True, slots=True)
class OptionSpec:
    name: str
    initial_odd: Decimal | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("option name must not be empty")
