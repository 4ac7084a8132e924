"""Broker data models — typed representations of OANDA v20 API objects."""

from dataclasses import dataclass
from typing import Optional

from retest.strategy.models import OrderSide


@dataclass(frozen=True)
class Candle:
    """A single candlestick bar as returned by the broker."""

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: int
    complete: bool


@dataclass(frozen=True)
class OrderRequest:
    """A directional market order emitted by the strategy.

    ``stop_loss`` and ``take_profit`` are distances in account currency per
    share, not prices.  ``reference_price`` is the ask the decision was
    taken on.  ``price_precision`` is the number of decimals SL/TP prices
    are sent with.
    """

    symbol: str
    side: OrderSide
    quantity: float
    label: str
    stop_loss: float
    take_profit: float
    reference_price: float
    price_precision: int = 1

    @property
    def units(self) -> float:
        """Signed units (positive=buy, negative=sell)."""
        return self.quantity if self.side is OrderSide.BUY else -self.quantity

    @property
    def stop_loss_price(self) -> float:
        if self.side is OrderSide.BUY:
            return self.reference_price - self.stop_loss
        return self.reference_price + self.stop_loss

    @property
    def take_profit_price(self) -> float:
        if self.side is OrderSide.BUY:
            return self.reference_price + self.take_profit
        return self.reference_price - self.take_profit


@dataclass(frozen=True)
class OrderResponse:
    """Response from placing an order."""

    order_id: str
    trade_id: str
    instrument: str
    units: float
    price: float
    time: str


@dataclass(frozen=True)
class Trade:
    """An open trade with SL/TP details and its client tag."""

    trade_id: str
    instrument: str
    units: float
    price: float
    unrealized_pnl: float
    stop_loss_price: Optional[float] = None
    take_profit_price: Optional[float] = None
    open_time: str = ""
    tag: str = ""
