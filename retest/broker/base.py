"""Execution gateway protocol.

Defines what the trading engine needs from a broker: bars, the current
ask, market orders, and closing every trade carrying the strategy label.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from retest.broker.models import OrderRequest, OrderResponse
from retest.strategy.models import Bar


@runtime_checkable
class ExecutionGateway(Protocol):
    """Interface that broker adapters must satisfy."""

    async def fetch_bars(self, symbol: str, granularity: str, count: int = 50) -> list[Bar]:
        """Return bars oldest-first; the last bar may still be forming."""
        ...

    async def get_current_ask(self, symbol: str) -> float:
        ...

    async def place_order(self, order: OrderRequest) -> OrderResponse:
        ...

    async def close_trades_by_label(self, symbol: str, label: str) -> int:
        """Close every open trade on *symbol* tagged with *label*; return the count."""
        ...
