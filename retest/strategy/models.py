"""Strategy data models — bars and trade directions."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TradeDirection(Enum):
    """Direction the day opened in, relative to the previous close."""

    LONG = "long"
    SHORT = "short"
    NONE = "none"


class OrderSide(Enum):
    """Side of a market order."""

    BUY = "buy"
    SELL = "sell"


_SIDE_FOR_DIRECTION: dict[TradeDirection, OrderSide] = {
    TradeDirection.LONG: OrderSide.BUY,
    TradeDirection.SHORT: OrderSide.SELL,
}


def side_for(direction: TradeDirection) -> OrderSide | None:
    """Map a trade direction onto an order side (``None`` for NONE)."""
    return _SIDE_FOR_DIRECTION.get(direction)


@dataclass(frozen=True)
class Bar:
    """A single price bar, identified by its open time."""

    open_time: datetime
    open: float
    high: float
    low: float
    close: float

