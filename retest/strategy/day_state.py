"""Daily state machine — direction, retest level, and one-trade-per-day gate.

Tracks, for the current trading day:

- the direction the day opened in (LONG / SHORT / NONE),
- the entry price, which is the previous day's final close,
- whether the day's single entry has already been taken,
- the reference of the position that entry opened.

All updates are driven by the bar history.  Day boundaries are found by
comparing the calendar dates of consecutive bar open times.  Too little
history is never an error; the update simply does nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from retest.strategy.models import Bar, TradeDirection

logger = logging.getLogger("retest")


def detect_day_boundary(bars: Sequence[Bar], offset: int = 1) -> bool:
    """Return True if ``bars[-offset]`` opens on a later date than the bar before it.

    Args:
        bars: Bar history, oldest-first.
        offset: Position from the end of the bar to test (1 = latest bar).

    Returns:
        ``False`` when fewer than ``offset + 1`` bars exist.
    """
    if len(bars) < offset + 1:
        return False
    newer = bars[-offset].open_time.date()
    older = bars[-offset - 1].open_time.date()
    return newer != older


@dataclass
class DailyState:
    """Mutable per-day trade data.  ``entry_price == 0`` means unset."""

    direction: TradeDirection = TradeDirection.NONE
    entry_price: float = 0.0
    traded_today: bool = False
    position: Optional[Any] = None


class StrategyState:
    """Owns one symbol's ``DailyState`` and applies the daily transitions."""

    def __init__(self) -> None:
        self._day = DailyState()

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def direction(self) -> TradeDirection:
        return self._day.direction

    @property
    def entry_price(self) -> float:
        return self._day.entry_price

    @property
    def traded_today(self) -> bool:
        return self._day.traded_today

    @property
    def position(self) -> Optional[Any]:
        return self._day.position

    def snapshot(self) -> dict:
        """Plain-dict view of the current day, for status reporting."""
        position = self._day.position
        return {
            "direction": self._day.direction.value,
            "entry_price": self._day.entry_price,
            "traded_today": self._day.traded_today,
            "position": None if position is None else str(position),
        }

    # ── Mutation ─────────────────────────────────────────────────────────

    def reset_if_new_day(self, bars: Sequence[Bar]) -> bool:
        """Clear the day's data when a new day starts.

        Only resets if the latest bar opens a new day AND an entry price is
        held.  A state that never got an entry price is already clean.

        Returns:
            ``True`` if the state was reset.
        """
        if not detect_day_boundary(bars) or self._day.entry_price == 0:
            return False

        self._day = DailyState()
        logger.info("[RESET]: Trade data Reset")
        return True

    def update_direction(self, bars: Sequence[Bar]) -> None:
        """Set today's direction from the opening bar's close.

        Acts only on the first bar of a new day while the direction is
        still NONE.  The live close of that bar is compared with the
        previous day's last close; an equal close leaves NONE.
        """
        if not detect_day_boundary(bars):
            return
        if self._day.direction is not TradeDirection.NONE:
            return

        last_close = bars[-1].close
        previous_close = bars[-2].close

        if last_close > previous_close:
            self._day.direction = TradeDirection.LONG
            logger.info("[TRADE DIRECTION]: LONG")
        elif last_close < previous_close:
            self._day.direction = TradeDirection.SHORT
            logger.info("[TRADE DIRECTION]: SHORT")

    def update_entry_price(self, bars: Sequence[Bar]) -> None:
        """Fix the retest level once the new day's first bar has closed.

        When ``bars[-2]`` is the first bar of a new day, ``bars[-3]`` is the
        previous day's last bar and its close becomes the entry price.
        Never overwrites a price already set today.
        """
        if not detect_day_boundary(bars, offset=2):
            return
        if self._day.entry_price != 0:
            return

        self._day.entry_price = bars[-3].close
        logger.info("[ENTRY PRICE]: %s", self._day.entry_price)

    def mark_traded(self) -> None:
        self._day.traded_today = True

    def update_position(self, position: Any) -> None:
        """Store the reference of the position opened by today's entry."""
        self._day.position = position
