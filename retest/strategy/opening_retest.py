"""Opening retest strategy — one retest entry of yesterday's close per day.

If the day opens above the previous day's close, wait for price to come
back down to that close and buy.  If it opens below, wait for price to
come back up to it and sell.  At most one entry is attempted per day,
entries stop after a configured hour, and all labelled trades are closed
after another.

The host drives the strategy with three explicit calls:

- ``on_tick(bars, ask)`` on every price update; may return an order.
- ``on_bar(bars)`` when a new bar opens; returns whether to close all.
- ``on_position_opened(position)`` once the broker reports the fill.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

from retest.broker.models import OrderRequest
from retest.models.retest_config import RetestConfig
from retest.strategy.day_state import StrategyState, detect_day_boundary
from retest.strategy.models import Bar, OrderSide, side_for
from retest.strategy.movement_filter import MovementFilter
from retest.strategy.session_filter import is_past_close_cutoff, is_past_entry_cutoff

logger = logging.getLogger("retest")


class OpeningRetestStrategy:
    """Decision engine for one symbol.

    Args:
        config: Strategy parameters.
        state: Daily state to drive.  A fresh one is created if omitted.
        movement: Movement filter buffer.  A fresh one is created if omitted.
    """

    def __init__(
        self,
        config: RetestConfig,
        state: Optional[StrategyState] = None,
        movement: Optional[MovementFilter] = None,
    ) -> None:
        self._config = config
        self.state = state if state is not None else StrategyState()
        self.movement = movement if movement is not None else MovementFilter()
        self.last_insight: dict = {}

    @property
    def config(self) -> RetestConfig:
        return self._config

    # ── Tick ─────────────────────────────────────────────────────────────

    def on_tick(self, bars: Sequence[Bar], ask: float) -> Optional[OrderRequest]:
        """Advance the daily state and decide whether to enter.

        Returns:
            An ``OrderRequest`` if an entry passes every check, else ``None``.
        """
        self._roll_day(bars)
        self.state.update_direction(bars)
        self.state.update_entry_price(bars)

        checks = {
            "before_entry_cutoff": False,
            "entry_price_set": False,
            "direction_set": False,
            "price_at_retest": False,
            "not_traded_today": False,
            "movement_ok": False,
        }
        self.last_insight = {
            "strategy": "Opening Retest",
            "pair": self._config.symbol,
            "ask": ask,
            "checks": checks,
            "result": "",
        }

        if is_past_entry_cutoff(bars, self._config.no_entry_after_hour):
            self.last_insight["result"] = "after_entry_cutoff"
            return None
        checks["before_entry_cutoff"] = True

        entry_price = self.state.entry_price
        if entry_price == 0:
            self.last_insight["result"] = "entry_price_not_set"
            return None
        checks["entry_price_set"] = True

        side = side_for(self.state.direction)
        checks["direction_set"] = side is not None
        checks["not_traded_today"] = not self.state.traded_today

        if side is OrderSide.BUY and ask <= entry_price:
            checks["price_at_retest"] = True
        elif side is OrderSide.SELL and ask >= entry_price:
            checks["price_at_retest"] = True

        if not (checks["direction_set"] and checks["price_at_retest"]
                and checks["not_traded_today"]):
            self.last_insight["result"] = (
                "already_traded" if self.state.traded_today else "waiting_for_retest"
            )
            return None

        # The day's single attempt is spent even if a filter vetoes it.
        self.state.mark_traded()

        if self._filters_veto(bars):
            self.last_insight["result"] = "movement_veto"
            return None
        checks["movement_ok"] = True

        order = OrderRequest(
            symbol=self._config.symbol,
            side=side,
            quantity=self._config.shares,
            label=self._config.label,
            stop_loss=self._config.stop_loss,
            take_profit=self._config.take_profit,
            reference_price=ask,
            price_precision=self._config.price_precision,
        )
        logger.info(
            "[ORDER]: %s %s x%s at ask %s (retest of %s)",
            side.value.upper(), order.symbol, order.quantity, ask, entry_price,
        )
        self.last_insight["result"] = "order"
        return order

    def _roll_day(self, bars: Sequence[Bar]) -> None:
        self.state.reset_if_new_day(bars)
        if (
            self._config.reset_movement_daily
            and len(self.movement)
            and detect_day_boundary(bars)
        ):
            self.movement.reset()
            logger.info("[RESET]: Movement samples cleared")

    def _filters_veto(self, bars: Sequence[Bar]) -> bool:
        """Return True if either max movement filter blocks the entry."""
        cfg = self._config
        from_open = self.movement.is_out_of_max_move_from_open(
            cfg.use_max_move_from_open,
            bars[-1].close,
            cfg.max_move_from_open,
            self.state.entry_price,
        )
        high_to_low = self.movement.is_out_of_max_move_high_to_lowest(
            cfg.use_max_move_high_to_low,
            cfg.max_move_high_to_low,
        )
        return from_open or high_to_low

    # ── Bar close ────────────────────────────────────────────────────────

    def on_bar(self, bars: Sequence[Bar]) -> bool:
        """Handle a new bar opening (the previous one just closed).

        Returns:
            ``True`` if every labelled position should now be closed.
        """
        close_all = is_past_close_cutoff(bars, self._config.close_all_trades_hour)
        if close_all:
            logger.info(
                "[CLOSE ALL]: It's past %d; all trades have been closed.",
                self._config.close_all_trades_hour,
            )

        if len(bars) >= 2:
            closed = bars[-2]
            try:
                self.movement.add(closed.high, closed.low)
            except ValueError as exc:
                logger.error("[ERROR] %s", exc)

        return close_all

    # ── Position events ──────────────────────────────────────────────────

    def on_position_opened(self, position: Any) -> None:
        self.state.update_position(position)

    def snapshot(self) -> dict:
        """Current day state plus the latest insight, for the status API."""
        return {
            **self.state.snapshot(),
            "samples": len(self.movement),
            "insight": dict(self.last_insight),
        }
