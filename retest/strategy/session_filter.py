"""Session cutoffs — pure functions on the latest bar's open hour."""

from collections.abc import Sequence

from retest.strategy.models import Bar


def _latest_hour(bars: Sequence[Bar]) -> int | None:
    if not bars:
        return None
    return bars[-1].open_time.hour


def is_past_entry_cutoff(bars: Sequence[Bar], no_entry_after_hour: int) -> bool:
    """Return True if the latest bar opened at or after *no_entry_after_hour*.

    Hours are compared in whatever timezone the bar timestamps carry.
    An empty history is never past the cutoff.
    """
    hour = _latest_hour(bars)
    return hour is not None and hour >= no_entry_after_hour


def is_past_close_cutoff(bars: Sequence[Bar], close_all_trades_hour: int) -> bool:
    """Return True if the latest bar opened at or after *close_all_trades_hour*."""
    hour = _latest_hour(bars)
    return hour is not None and hour >= close_all_trades_hour
