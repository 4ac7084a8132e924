"""Opening Retest — trading engine (orchestration loop).

Connects the broker gateway and the opening retest strategy in a single
polling loop.  Each cycle pulls bars and the current ask, turns a change of
the latest bar into a bar-close event, lets the strategy decide, and
forwards its orders and close-all requests to the broker.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from retest.api.routers import record_decision, update_bot_status, update_strategy_state
from retest.broker.base import ExecutionGateway
from retest.config import Config
from retest.strategy.opening_retest import OpeningRetestStrategy

logger = logging.getLogger("retest")

_BAR_HISTORY = 50


class TradingEngine:
    """Orchestrates one poll-evaluate-execute cycle per call.

    Args:
        config: Application configuration.
        broker: An ``ExecutionGateway`` (``OandaClient`` or a test double).
        strategy: Strategy instance.  Built from ``config.strategy`` if None.
    """

    def __init__(
        self,
        config: Config,
        broker: ExecutionGateway,
        strategy: Optional[OpeningRetestStrategy] = None,
    ) -> None:
        self._config = config
        self._broker = broker
        self._strategy = strategy or OpeningRetestStrategy(config.strategy)
        self._running: bool = False
        self._cycle_count: int = 0
        self._last_bar_time: Optional[datetime] = None

    @property
    def symbol(self) -> str:
        return self._strategy.config.symbol

    @property
    def strategy(self) -> OpeningRetestStrategy:
        return self._strategy

    # ── Lifecycle ────────────────────────────────────────────────────────

    def initialize(self, mode: str = "paper") -> None:
        """Mark the engine as running and publish the initial status."""
        self._running = True
        update_bot_status(
            mode=mode,
            running=True,
            symbol=self.symbol,
            granularity=self._config.bar_granularity,
            started_at=datetime.now(timezone.utc).isoformat(),
        )

    def stop(self) -> None:
        """Signal the engine to stop after the current cycle."""
        self._running = False

    # ── Polling loop ─────────────────────────────────────────────────────

    async def run(
        self,
        poll_interval: int | None = None,
        max_cycles: int = 0,
    ) -> list[dict]:
        """Run the trading loop until stopped.

        Args:
            poll_interval: Seconds between cycles.  Defaults to config.
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            List of per-cycle result dicts.
        """
        if poll_interval is None:
            poll_interval = self._config.poll_interval_seconds
        results: list[dict] = []
        cycle = 0

        while self._running:
            cycle += 1
            self._cycle_count += 1
            try:
                result = await self.run_once()
            except Exception as exc:
                logger.error("Cycle %d error: %s", cycle, exc)
                result = {"action": "error", "reason": str(exc)}
                record_decision({
                    **result,
                    "symbol": self.symbol,
                    "evaluated_at": datetime.now(timezone.utc).isoformat(),
                })
            results.append(result)
            logger.debug("Cycle %d: %s", cycle, result.get("action", "unknown"))
            update_bot_status(
                cycle_count=self._cycle_count,
                last_cycle_at=datetime.now(timezone.utc).isoformat(),
            )

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep: checks _running every second
            for _ in range(poll_interval):
                if not self._running:
                    break
                await asyncio.sleep(1)

        update_bot_status(running=False)
        return results

    # ── Single cycle ─────────────────────────────────────────────────────

    async def run_once(self, utc_now: Optional[datetime] = None) -> dict:
        """Execute one trading cycle.

        Returns a dict describing the action taken:

        - ``{"action": "skipped", "reason": "..."}``
        - ``{"action": "order_placed", ...}``

        Either may carry ``"closed_trades"`` when the close-all cutoff fired
        on this cycle.

        Args:
            utc_now: Current UTC datetime, used for status timestamps.
        """
        if utc_now is None:
            utc_now = datetime.now(timezone.utc)

        bars = await self._broker.fetch_bars(
            self.symbol, self._config.bar_granularity, count=_BAR_HISTORY,
        )
        if len(bars) < 2:
            return {"action": "skipped", "reason": "insufficient_bars"}

        result: dict = {}

        # 1 ── Bar close: the latest bar changed since the previous cycle
        latest_open = bars[-1].open_time
        if self._last_bar_time is not None and latest_open != self._last_bar_time:
            if self._strategy.on_bar(bars):
                closed = await self._broker.close_trades_by_label(
                    self.symbol, self._strategy.config.label,
                )
                logger.info("[CLOSE ALL]: closed %d trade(s) on %s", closed, self.symbol)
                result["closed_trades"] = closed
                update_bot_status(last_close_all_time=utc_now.isoformat())
        self._last_bar_time = latest_open
        update_bot_status(last_bar_time=latest_open.isoformat())

        # 2 ── Tick: daily state + entry decision
        ask = await self._broker.get_current_ask(self.symbol)
        order = self._strategy.on_tick(bars, ask)

        if order is None:
            result.update({
                "action": "skipped",
                "reason": self._strategy.last_insight.get("result", "no_signal"),
            })
            update_strategy_state(self._strategy.snapshot())
            self._record(result, utc_now)
            return result

        # 3 ── Place order
        try:
            response = await self._broker.place_order(order)
        except Exception as exc:
            logger.error(
                "[ERROR] Order for %s failed; today's entry is spent without a fill: %s",
                self.symbol, exc,
            )
            update_strategy_state(self._strategy.snapshot())
            raise
        self._strategy.on_position_opened(response.trade_id or response.order_id)
        update_strategy_state(self._strategy.snapshot())
        update_bot_status(last_order_time=utc_now.isoformat())

        result.update({
            "action": "order_placed",
            "order_id": response.order_id,
            "trade_id": response.trade_id,
            "direction": order.side.value,
            "units": order.units,
            "entry": self._strategy.state.entry_price,
            "fill_price": response.price,
            "sl": round(order.stop_loss_price, order.price_precision),
            "tp": round(order.take_profit_price, order.price_precision),
        })
        self._record(result, utc_now)
        return result

    def _record(self, result: dict, utc_now: datetime) -> None:
        record_decision({
            **result,
            "symbol": self.symbol,
            "evaluated_at": utc_now.isoformat(),
        })
